"""
handover_tracker.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

# Roles that may read and edit every handover regardless of ownership.
PRIVILEGED_ROLES = frozenset({"admin", "hr"})


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity. `subject` is the caller's email address.
    """

    subject: str
    roles: frozenset[str]

    @property
    def email(self) -> str:
        return self.subject.lower()

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    @property
    def is_privileged(self) -> bool:
        return bool(self.roles & PRIVILEGED_ROLES)

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles & frozenset(roles))
