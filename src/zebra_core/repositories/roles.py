import logging

import pendulum

from typing import List, Optional

from zebra_core.api import UserApiService
from zebra_core.exceptions import InvalidEntity
from zebra_core.models import Role
from zebra_core.storage import TomlFile

logger = logging.getLogger(__name__)


class RoleRepository:
    """Roles of the configured Zebra user, cached on disk."""

    def __init__(self, cache: TomlFile, api: Optional[UserApiService] = None,
                 user_id: Optional[int] = None, default_role_id: Optional[int] = None):
        self.cache = cache
        self.api = api
        self.user_id = user_id
        self.default_role_id = default_role_id

    def refresh(self) -> List[Role]:
        if self.api is None or self.user_id is None:
            raise InvalidEntity("Zebra user is not configured, cannot refresh roles.")
        data = self.api.fetch_by_id(self.user_id)
        roles = [Role.from_dict(r) for r in data.get("roles") or []]
        self.cache.save({
            "refreshed_at": pendulum.now("UTC"),
            "user": {k: v for k, v in data["user"].items() if isinstance(v, (str, int, float, bool))},
            "roles": [r.to_dict() for r in roles],
        })
        logger.info("Refreshed %d roles for user %s", len(roles), self.user_id)
        return roles

    def all(self) -> List[Role]:
        data = self.cache.load()
        if "roles" not in data and self.api is not None and self.user_id is not None:
            return self.refresh()
        return [Role.from_dict(r) for r in data.get("roles", [])]

    def get(self, role_id: int) -> Optional[Role]:
        return next((r for r in self.all() if r.id == role_id), None)

    def find_by_name(self, name: str) -> List[Role]:
        name = name.lower()
        return [r for r in self.all() if name in r.name.lower() or name in r.full_name.lower()]

    def resolve(self, reference: str) -> Optional[Role]:
        """Look a role up by id, or by a name matching exactly one role."""
        if reference.isdigit():
            return self.get(int(reference))
        matches = self.find_by_name(reference)
        return matches[0] if len(matches) == 1 else None

    def cached(self) -> List[Role]:
        return [Role.from_dict(r) for r in self.cache.load().get("roles", [])]

    def default_role(self) -> Optional[Role]:
        """The configured default role, without asking Zebra."""
        if self.default_role_id is None:
            return None
        cached = next((r for r in self.cached() if r.id == self.default_role_id), None)
        return cached or Role(self.default_role_id)
