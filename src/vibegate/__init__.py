"""VibeGate — policy evaluation and regression gating for security scan artifacts."""

__version__ = "0.1.0"
