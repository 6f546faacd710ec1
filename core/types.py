"""
Type definitions

Core Enums and Dataclasses.
Every Enum subclasses str so it serialises as a plain string.
Raw strings coming from storage or the UI are normalised here; the rest of
the code only sees the canonical members.
"""

from dataclasses import dataclass
from enum import Enum


class DeploymentMode(str, Enum):
    """Deployment mode (live / staging)"""

    PRODUCTION = "production"
    STAGING = "staging"


class Role(str, Enum):
    """Member role"""

    SUPER_ADMIN = "SUPER_ADMIN"
    MEMBER_ADMIN = "MEMBER_ADMIN"
    MEMBER = "MEMBER"


# Spellings found in existing user records
_ROLE_ALIASES: dict[str, Role] = {
    "super_admin": Role.SUPER_ADMIN,
    "superadmin": Role.SUPER_ADMIN,
    "member_admin": Role.MEMBER_ADMIN,
    "admin": Role.MEMBER_ADMIN,
    "member": Role.MEMBER,
    "user": Role.MEMBER,
}


def normalize_role(raw: str | Role | None) -> Role:
    """Map a stored role string to the canonical Role

    Args:
        raw: Role string ('SUPER_ADMIN', 'super_admin', 'admin', 'USER', ...)

    Returns:
        Role

    Raises:
        ValueError: unknown or empty role
    """
    if isinstance(raw, Role):
        return raw
    if not raw:
        raise ValueError("role must not be empty")

    role = _ROLE_ALIASES.get(raw.strip().lower())
    if role is None:
        raise ValueError(f"Unknown role: '{raw}'")
    return role


@dataclass(frozen=True)
class Actor:
    """Acting user (immutable)

    Identifies who issues a ledger or workflow operation.
    """

    actor_id: str
    name: str
    role: Role

    @classmethod
    def create(cls, actor_id: str, name: str, role: str | Role) -> "Actor":
        """Actor helper accepting raw role strings"""
        if not actor_id:
            raise ValueError("actor_id must not be empty")
        return cls(actor_id=actor_id, name=name or actor_id, role=normalize_role(role))

    @property
    def is_super_admin(self) -> bool:
        """May approve, reject, verify and edit the ledger"""
        return self.role == Role.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        """May propose projects"""
        return self.role in (Role.SUPER_ADMIN, Role.MEMBER_ADMIN)
