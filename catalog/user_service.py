"""
User and role service.
"""

from typing import List, Mapping, Optional, Set

import structlog

from .database import CatalogDatabase
from .models import Role, User
from .validation import selected_enum_members

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user listing and role assignment."""

    def __init__(self, database: CatalogDatabase):
        self.database = database

    async def get_user_list(self) -> List[User]:
        return await self.database.list_users()

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.database.get_user(user_id)

    @staticmethod
    def get_selected_roles_from_form(form: Mapping[str, str]) -> Set[Role]:
        """Collect the role checkboxes ticked in a submitted form."""
        return selected_enum_members(form, Role)

    async def update_user_roles(self, user: User, roles: Set[Role]) -> None:
        """
        Replace the user's whole role set.

        Callers skip empty selections; an empty set here would clear all roles.
        """
        previous = sorted(role.value for role in user.roles)
        user.roles = set(roles)
        await self.database.save_user(user)
        logger.info(
            "User roles updated",
            user_id=user.id,
            previous_roles=previous,
            roles=sorted(role.value for role in user.roles)
        )
