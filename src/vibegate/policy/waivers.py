"""Waivers — audited, attributable, optionally time-bounded exceptions.

Waivers file format (``vibegate-waivers.json`` or ``.yaml``)::

    version: "0.1"
    waivers:
      - id: w-lx2k9f-a1b2c3
        match: {ruleId: "VC-AUTH-*", pathPattern: "app/api/health/**"}
        reason: Health check is intentionally public
        createdBy: alice@example.com
        createdAt: "2026-01-05T10:00:00+00:00"
        expiresAt: "2026-07-01T00:00:00+00:00"   # optional
        ticketRef: SEC-142                         # optional

Creation validates eagerly; evaluation treats an expired waiver as absent.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from vibegate.findings.models import Finding
from vibegate.policy.matching import MatchSpec, matches_exception

logger = logging.getLogger(__name__)

WAIVERS_FILE_VERSION = "0.1"
DEFAULT_WAIVERS_FILE = "vibegate-waivers.json"

_ID_ALPHABET = string.ascii_lowercase + string.digits


class WaiverError(Exception):
    """Raised when a waiver or waivers file is invalid."""


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as exc:
        raise WaiverError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Waiver:
    id: str
    match: MatchSpec
    reason: str
    created_by: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    ticket_ref: Optional[str] = None


@dataclass(frozen=True)
class WaivedFinding:
    finding: Finding
    waiver: Waiver


@dataclass(frozen=True)
class WaiverResult:
    active: Tuple[Finding, ...] = field(default_factory=tuple)
    waived: Tuple[WaivedFinding, ...] = field(default_factory=tuple)
    expired_waivers: Tuple[str, ...] = field(default_factory=tuple)


def is_waiver_expired(waiver: Waiver, now: datetime) -> bool:
    return waiver.expires_at is not None and waiver.expires_at < now


def find_waiver(finding: Finding, waivers: Sequence[Waiver]) -> Optional[Waiver]:
    """First waiver whose match spec matches *finding*."""
    for waiver in waivers:
        if matches_exception(finding, waiver.match):
            return waiver
    return None


def apply_waivers(
    findings: Iterable[Finding],
    waivers: Sequence[Waiver],
    now: datetime,
) -> WaiverResult:
    """Split *findings* into active and waived. Expired waivers are dropped first."""
    live: List[Waiver] = []
    expired: List[str] = []
    for waiver in waivers:
        if is_waiver_expired(waiver, now):
            logger.debug("Waiver %s expired at %s; skipping", waiver.id, waiver.expires_at)
            expired.append(waiver.id)
        else:
            live.append(waiver)

    active: List[Finding] = []
    waived: List[WaivedFinding] = []
    for finding in findings:
        waiver = find_waiver(finding, live)
        if waiver is None:
            active.append(finding)
        else:
            logger.debug("Waiver %s covers %s (%s)", waiver.id, finding.id, finding.rule_id)
            waived.append(WaivedFinding(finding=finding, waiver=waiver))

    return WaiverResult(active=tuple(active), waived=tuple(waived), expired_waivers=tuple(expired))


# ---- creation ----


def generate_waiver_id(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    stamp = ""
    while millis:
        millis, rem = divmod(millis, 36)
        stamp = _ID_ALPHABET[rem] + stamp
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"w-{stamp or '0'}-{suffix}"


def create_waiver(
    *,
    reason: str,
    created_by: str,
    fingerprint: Optional[str] = None,
    rule_id: Optional[str] = None,
    path_pattern: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    ticket_ref: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Waiver:
    """Create a waiver, validating it eagerly.

    Exactly one of *fingerprint* or *rule_id* must be given; *path_pattern*
    narrows a rule-id waiver; *expires_at* must lie in the future.
    """
    now = now or datetime.now(timezone.utc)
    if bool(fingerprint) == bool(rule_id):
        raise WaiverError("Specify exactly one of fingerprint or rule_id")
    if path_pattern and not rule_id:
        raise WaiverError("path_pattern can only narrow a rule_id waiver")
    if not reason or not reason.strip():
        raise WaiverError("A waiver requires a reason")
    if not created_by or not created_by.strip():
        raise WaiverError("A waiver requires created_by")
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= now:
            raise WaiverError("Expiry date must be in the future")

    return Waiver(
        id=generate_waiver_id(now),
        match=MatchSpec(fingerprint=fingerprint, rule_id=rule_id, path_pattern=path_pattern),
        reason=reason,
        created_by=created_by,
        created_at=now,
        expires_at=expires_at,
        ticket_ref=ticket_ref,
    )


# ---- serialisation ----


def waiver_to_dict(waiver: Waiver) -> Dict[str, Any]:
    match: Dict[str, str] = {}
    if waiver.match.fingerprint is not None:
        match["fingerprint"] = waiver.match.fingerprint
    if waiver.match.rule_id is not None:
        match["ruleId"] = waiver.match.rule_id
    if waiver.match.path_pattern is not None:
        match["pathPattern"] = waiver.match.path_pattern
    return {
        "id": waiver.id,
        "match": match,
        "reason": waiver.reason,
        "createdBy": waiver.created_by,
        "createdAt": waiver.created_at.isoformat(),
        **({"expiresAt": waiver.expires_at.isoformat()} if waiver.expires_at else {}),
        **({"ticketRef": waiver.ticket_ref} if waiver.ticket_ref else {}),
    }


def waiver_from_dict(data: Mapping[str, Any]) -> Waiver:
    if not isinstance(data, Mapping):
        raise WaiverError("Waiver entry must be a mapping")
    match = data.get("match") or {}
    spec = MatchSpec(
        fingerprint=match.get("fingerprint"),
        rule_id=match.get("ruleId"),
        path_pattern=match.get("pathPattern"),
    )
    if spec.fingerprint is None and spec.rule_id is None:
        raise WaiverError(f"Waiver {data.get('id', '?')}: must specify fingerprint or ruleId")
    for key in ("id", "reason", "createdBy", "createdAt"):
        if not data.get(key):
            raise WaiverError(f"Waiver {data.get('id', '?')}: missing '{key}'")

    expires = data.get("expiresAt")
    return Waiver(
        id=data["id"],
        match=spec,
        reason=data["reason"],
        created_by=data["createdBy"],
        created_at=parse_timestamp(str(data["createdAt"])),
        expires_at=parse_timestamp(str(expires)) if expires else None,
        ticket_ref=data.get("ticketRef"),
    )


@dataclass(frozen=True)
class WaiversFile:
    version: str = WAIVERS_FILE_VERSION
    waivers: Tuple[Waiver, ...] = field(default_factory=tuple)


def add_waiver(file: WaiversFile, waiver: Waiver) -> WaiversFile:
    return replace(file, waivers=file.waivers + (waiver,))


def remove_waiver(file: WaiversFile, waiver_id: str) -> WaiversFile:
    return replace(file, waivers=tuple(w for w in file.waivers if w.id != waiver_id))


def _is_yaml(path: Path) -> bool:
    return path.suffix in (".yaml", ".yml")


def load_waivers_file(path: Path) -> WaiversFile:
    """Load a JSON or YAML waivers file."""
    if not path.is_file():
        raise WaiverError(f"Waivers file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) if _is_yaml(path) else json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise WaiverError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(data, Mapping):
        raise WaiverError(f"{path}: waivers file must be a mapping")
    version = str(data.get("version", ""))
    if version != WAIVERS_FILE_VERSION:
        raise WaiverError(f"{path}: unsupported waivers file version {version!r}")
    entries = data.get("waivers") or []
    if not isinstance(entries, list):
        raise WaiverError(f"{path}: 'waivers' must be a list")

    waivers = tuple(waiver_from_dict(entry) for entry in entries)
    logger.debug("Loaded %d waiver(s) from %s", len(waivers), path)
    return WaiversFile(version=version, waivers=waivers)


def save_waivers_file(path: Path, file: WaiversFile) -> None:
    data = {"version": file.version, "waivers": [waiver_to_dict(w) for w in file.waivers]}
    path.parent.mkdir(parents=True, exist_ok=True)
    if _is_yaml(path):
        text = yaml.safe_dump(data, sort_keys=False)
    else:
        text = json.dumps(data, indent=2) + "\n"
    path.write_text(text, encoding="utf-8")
