"""
Role checks

Approving, rejecting, verifying and editing the ledger belong to the
treasurer (SUPER_ADMIN). Proposals are managed by their requester.
"""

from core.errors import PermissionDenied
from core.types import Actor


def require_super_admin(actor: Actor, action: str) -> None:
    """Raise PermissionDenied unless the actor is SUPER_ADMIN"""
    if not actor.is_super_admin:
        raise PermissionDenied(
            f"{actor.actor_id} ({actor.role.value}) may not {action}"
        )


def require_owner_or_super_admin(actor: Actor, owner_id: str, action: str) -> None:
    """Raise PermissionDenied unless the actor owns the record or is SUPER_ADMIN"""
    if actor.actor_id != owner_id and not actor.is_super_admin:
        raise PermissionDenied(
            f"{actor.actor_id} ({actor.role.value}) may not {action} "
            f"a request owned by {owner_id}"
        )


def require_admin(actor: Actor, action: str) -> None:
    """Raise PermissionDenied unless the actor is MEMBER_ADMIN or SUPER_ADMIN"""
    if not actor.is_admin:
        raise PermissionDenied(
            f"{actor.actor_id} ({actor.role.value}) may not {action}"
        )
