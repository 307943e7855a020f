from dataclasses import dataclass

from app.models.swap import SWAP_PENDING

ROLE_TA = "ta"
ROLE_STAFF = "staff"
ROLE_DEPARTMENT_CHAIR = "department_chair"
ROLE_DEAN = "dean"
ROLE_ADMIN = "admin"

VALID_ROLES = {ROLE_TA, ROLE_STAFF, ROLE_DEPARTMENT_CHAIR, ROLE_DEAN, ROLE_ADMIN}
SWAP_OVERRIDE_ROLES = {ROLE_STAFF, ROLE_DEPARTMENT_CHAIR, ROLE_ADMIN}


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, already verified by the auth layer."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def can_override_swaps(self) -> bool:
        return self.role in SWAP_OVERRIDE_ROLES


def normalize_role(raw_role: object) -> str:
    role = str(raw_role or "").strip().lower()
    if role not in VALID_ROLES:
        return ""
    return role


def can_view_swap(identity: Identity, swap) -> bool:
    if identity.can_override_swaps:
        return True
    return identity.user_id in {swap.requester_id, swap.target_id}


def can_review_swap(identity: Identity, swap) -> bool:
    if identity.can_override_swaps:
        return True
    return identity.user_id == swap.target_id


def can_delete_swap(identity: Identity, swap) -> bool:
    # Admins may remove decided swaps for audit correction.
    if identity.is_admin:
        return True
    return identity.user_id == swap.requester_id and swap.status == SWAP_PENDING
