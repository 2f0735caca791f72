"""Starter .vibegate.toml template."""

DEFAULT_TOML = """\
# VibeGate policy configuration

[policy]
profile = "startup"        # startup | growth | strict | enterprise | compliance-lite
# waivers = "vibegate-waivers.json"

[thresholds]
# Any subset; merged over the profile.
# fail_on_severity = "high"          # info | low | medium | high | critical
# warn_on_severity = "medium"
# min_confidence_for_fail = 0.7
# min_confidence_for_warn = 0.5
# min_confidence_critical = 0.5
# max_findings = 0                   # 0 = unlimited
# max_critical = 0
# max_high = 0

# [[overrides]]
# rule_id = "VC-HALL-*"              # exact id or trailing-* prefix
# path_pattern = "tests/**"
# action = "ignore"                  # ignore | downgrade
# comment = "Test fixtures"

# [[overrides]]
# category = "config"
# action = "downgrade"
# severity = "low"

[regression]
# fail_on_new_high_critical = true
# fail_on_severity_regression = false
# fail_on_net_increase = false
# warn_on_new_findings = true
# fail_on_protection_removed = false
# warn_on_protection_removed = true
# fail_on_semantic_regression = false
"""
