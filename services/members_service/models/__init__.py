"""Members Service models package.

Re-exports all models and enums so that:
  - ``from services.members_service.models import Member`` works
  - Alembic env.py sees every model class on import

Model definitions are split across:
  - models/member.py: Member identity and status
  - models/certification.py: Certification types and member grants
  - models/board.py: Board seats
"""

from services.members_service.models.board import BoardMembership  # noqa: F401
from services.members_service.models.certification import (  # noqa: F401
    CertificationType,
    MemberCertification,
)
from services.members_service.models.enums import (  # noqa: F401
    ACTIVE_MEMBER_STATUSES,
    RESTRICTED_MEMBER_STATUSES,
    MemberStatus,
)
from services.members_service.models.member import Member  # noqa: F401
