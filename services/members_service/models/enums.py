"""Enum definitions for members service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class MemberStatus(str, enum.Enum):
    """Membership lifecycle status. The single source of truth for eligibility."""

    PROSPECT = "prospect"
    PROBATIONARY = "probationary"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


# Statuses that grant full access (subject to certifications)
ACTIVE_MEMBER_STATUSES = frozenset({MemberStatus.PROBATIONARY, MemberStatus.ACTIVE})

# Statuses that keep a profile but restrict participation
RESTRICTED_MEMBER_STATUSES = frozenset(
    {MemberStatus.INACTIVE, MemberStatus.SUSPENDED, MemberStatus.TERMINATED}
)
