"""Certification matching: which grants are valid now, and which are required."""

import json
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

from libs.common.datetime_utils import ensure_utc

# Certification type id -> human-readable name
CERTIFICATION_NAMES: dict[str, str] = {
    "cert-type-nmo": "New Member Orientation (NMO)",
    "cert-type-nmse": "New Member Safety Evaluation (NMSE)",
    "cert-type-rso": "Range Safety Officer (RSO)",
    "cert-type-instructor": "Instructor Certification",
}


class CertificationGrant(Protocol):
    certification_type_id: str
    expires_at: Optional[datetime]


def is_valid(certification: CertificationGrant, now: datetime) -> bool:
    """A grant is valid while ``expires_at`` is unset or still in the future."""
    expires_at = ensure_utc(certification.expires_at)
    return expires_at is None or expires_at > ensure_utc(now)


def valid_ids(certifications: Iterable[CertificationGrant], now: datetime) -> frozenset[str]:
    """Certification type ids the member holds at ``now``.

    Renewed certifications produce several grants for the same type; they
    collapse into one id.
    """
    return frozenset(
        cert.certification_type_id for cert in certifications if is_valid(cert, now)
    )


def parse_required_certifications(raw: Any) -> tuple[str, ...]:
    """Decode an event's certification requirement.

    The column holds a JSON list of type ids. Anything else (bad JSON, a JSON
    object, a bare string) means "no requirement": a data-entry defect on the
    event must not block registration. Order is preserved, duplicates and
    non-string items are dropped.
    """
    if raw is None:
        return ()

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError):
            return ()

    if not isinstance(raw, (list, tuple)):
        return ()

    required: list[str] = []
    for item in raw:
        if isinstance(item, str) and item and item not in required:
            required.append(item)
    return tuple(required)


def missing_certifications(
    required: Iterable[str], held: frozenset[str]
) -> list[str]:
    """Required ids not in ``held``, in requirement order."""
    return [cert_id for cert_id in required if cert_id not in held]


def certification_display_name(cert_id: str) -> str:
    return CERTIFICATION_NAMES.get(cert_id, cert_id)


def certification_display_names(cert_ids: Iterable[str]) -> list[str]:
    """Human-readable names for certification ids, falling back to the id."""
    return [certification_display_name(cert_id) for cert_id in cert_ids]
