"""Fatal error classes for the registration engine.

These are never used for eligibility or state-conflict outcomes; those come
back as values on the result objects. Anything raised from here means the
caller must not interpret the failure as "you are not eligible".
"""

from libs.common.error_handler import ServiceError


class RegistrationStorageError(ServiceError):
    """The registration store or ledger could not be read or written."""

    status_code = 503
    error_code = "registration_storage_unavailable"


class CapacityInvariantError(ServiceError):
    """More registered participants than capacity. Should be impossible."""

    status_code = 500
    error_code = "capacity_invariant_violated"


class InvalidTransitionError(ServiceError):
    """A registration state transition that the state table does not allow."""

    status_code = 500
    error_code = "invalid_registration_transition"
