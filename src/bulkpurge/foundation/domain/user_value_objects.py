"""User value objects and target-selection rules.

A :class:`TargetUser` is the minimal view of an account the purge needs:
its identifier, its email (what operators recognise in reports) and its
roles (system administrators can never be permanently deleted).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

SYSTEM_ADMIN_ROLE = "system_admin"


@dataclass(frozen=True, slots=True)
class TargetUser:
    """An account selected for permanent removal.

    Attributes:
        id: Unique account identifier.
        email: Account email address.
        roles: Space-separated role names, as stored by the account service.
        delete_at: Deactivation timestamp in milliseconds (0 when active).
    """

    id: str
    email: str
    roles: str = ""
    delete_at: int = 0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> TargetUser:
        """Build a TargetUser from an account service user payload."""
        return cls(
            id=payload["id"],
            email=payload.get("email", ""),
            roles=payload.get("roles", ""),
            delete_at=int(payload.get("delete_at", 0) or 0),
        )

    def as_dict(self) -> dict[str, Any]:
        """Serializable form, used as background task arguments."""
        return {
            "id": self.id,
            "email": self.email,
            "roles": self.roles,
            "delete_at": self.delete_at,
        }

    def is_in_role(self, role: str) -> bool:
        return role in self.roles.split()

    @property
    def is_system_admin(self) -> bool:
        return self.is_in_role(SYSTEM_ADMIN_ROLE)

    @property
    def is_active(self) -> bool:
        return self.delete_at == 0


def email_matches(
    user: TargetUser,
    target_suffixes: Iterable[str],
    target_addresses: Iterable[str],
) -> bool:
    """Check whether a user's email matches any suffix or exact address.

    Args:
        user: Candidate user.
        target_suffixes: Email suffixes (e.g. "@old.test").
        target_addresses: Exact email addresses.

    Returns:
        True when the email ends with a suffix or equals an address.
    """
    if any(user.email.endswith(suffix) for suffix in target_suffixes):
        return True
    return any(user.email == exact for exact in target_addresses)


def filter_users_by_emails(
    users: Iterable[TargetUser],
    target_suffixes: Sequence[str],
    target_addresses: Sequence[str],
) -> list[TargetUser]:
    """Select users whose email matches the targets, skipping system admins.

    Args:
        users: All candidate users.
        target_suffixes: Email suffixes to match.
        target_addresses: Exact email addresses to match.

    Returns:
        Matching users in input order.
    """
    return [
        user
        for user in users
        # System administrators can't be permanently deleted
        if not user.is_system_admin and email_matches(user, target_suffixes, target_addresses)
    ]
