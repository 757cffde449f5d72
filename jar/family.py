"""
family.py -- Family circle membership and access levels.

Access level is the only field that changes after an invite. The free
plan caps the circle size; premium plans do not.
"""

from __future__ import annotations

import logging
from typing import Callable

from jar.errors import (
    CapacityExceeded,
    DuplicateFamilyMember,
    InvalidAccessLevel,
    UnknownFamilyMember,
)
from jar.mirror import FAMILY_TABLE, family_row
from jar.models import VALID_ACCESS_LEVELS, FamilyMember
from jar.persistence import PersistenceAdapter

logger = logging.getLogger(__name__)


class FamilyCircle:
    def __init__(
        self,
        persistence: PersistenceAdapter,
        is_premium: Callable[[], bool] = lambda: False,
        free_limit: int = 2,
    ) -> None:
        self._persistence = persistence
        self._is_premium = is_premium
        self.free_limit = free_limit
        self._members: list[FamilyMember] = persistence.load_family()

    def all(self) -> list[FamilyMember]:
        return list(self._members)

    def invite(self, name: str, email: str, access_level: str = "viewer") -> FamilyMember:
        email = email.strip().lower()
        if access_level not in VALID_ACCESS_LEVELS:
            raise InvalidAccessLevel(f"Access level must be one of {sorted(VALID_ACCESS_LEVELS)}")
        if any(m.email == email for m in self._members):
            raise DuplicateFamilyMember(f"{email} is already in your family circle")
        if not self._is_premium() and len(self._members) >= self.free_limit:
            raise CapacityExceeded(
                f"The free plan shares with {self.free_limit} family members. Upgrade to invite more."
            )
        member = FamilyMember(name=name.strip() or email, email=email, access_level=access_level)
        snapshot = [*self._members, member]
        self._persistence.save_family(snapshot)
        self._members = snapshot
        self._persistence.mirror_insert(FAMILY_TABLE, family_row(member, self._persistence.user_id))
        logger.info("Invited %s as %s", email, access_level)
        return member

    def set_access(self, member_id: str, access_level: str) -> FamilyMember:
        if access_level not in VALID_ACCESS_LEVELS:
            raise InvalidAccessLevel(f"Access level must be one of {sorted(VALID_ACCESS_LEVELS)}")
        member = next((m for m in self._members if m.id == member_id), None)
        if member is None:
            raise UnknownFamilyMember(f"No family member with id {member_id}")
        if member.access_level == access_level:
            return member
        updated = member.model_copy(update={"access_level": access_level})
        snapshot = [updated if m.id == member_id else m for m in self._members]
        self._persistence.save_family(snapshot)
        self._members = snapshot
        self._persistence.mirror_update(FAMILY_TABLE, member_id, {"access_level": access_level})
        logger.info("Family member %s now has %s access", member_id, access_level)
        return updated

    def toggle_access(self, member_id: str) -> FamilyMember:
        member = next((m for m in self._members if m.id == member_id), None)
        if member is None:
            raise UnknownFamilyMember(f"No family member with id {member_id}")
        flipped = "contributor" if member.access_level == "viewer" else "viewer"
        return self.set_access(member_id, flipped)
