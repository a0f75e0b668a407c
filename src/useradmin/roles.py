"""Role lookup and default role seeding."""

import logging
from typing import Iterable, List, Optional, Set

from .models import DEFAULT_ROLES, Role
from .repository import RoleRepository


logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, roles: RoleRepository):
        self.roles = roles

    def ensure_default_roles(self) -> None:
        """Create ``ROLE_ADMIN`` and ``ROLE_USER`` when they are missing."""
        for name in DEFAULT_ROLES:
            if self.roles.find_by_name(name) is None:
                self.roles.save(Role(name=name))
                logger.info("created role %s", name)

    def resolve_roles(self, ids: Iterable[int]) -> Set[Role]:
        """Return the roles for ``ids``; unknown ids are skipped without error."""
        return set(self.roles.find_by_ids(set(ids or ())))

    def list_roles(self) -> List[Role]:
        return self.roles.find_all()

    def find_by_name(self, name: str) -> Optional[Role]:
        return self.roles.find_by_name(name)

    def save_role(self, role: Role) -> Role:
        return self.roles.save(role)
