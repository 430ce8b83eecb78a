from __future__ import annotations

from zebra_core.entity_key import EntityKey
from zebra_core.models.activity import Activity

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Tuple


class ProjectStatus(IntEnum):
    INACTIVE = 0
    ACTIVE = 1
    OTHER = 2


@dataclass(frozen=True)
class Project:
    entity_key: EntityKey
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    activities: Tuple[Activity, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        key = EntityKey.from_dict(data["key"])
        activities = tuple(Activity.from_dict(a) for a in data.get("activities", []))
        return cls(key, data["name"], data.get("desc", ""),
                   ProjectStatus(data.get("status", ProjectStatus.ACTIVE)), activities)

    def to_dict(self) -> dict:
        return {
            "key": self.entity_key.to_dict(),
            "name": self.name,
            "desc": self.description,
            "status": int(self.status),
            "activities": [a.to_dict() for a in self.activities],
        }

    def with_activity(self, activity: Activity) -> Project:
        """Return a copy with the activity added, or replaced if its key already exists."""
        others = tuple(a for a in self.activities if a.entity_key != activity.entity_key)
        return replace(self, activities=others + (activity,))

    def without_activity(self, key: EntityKey) -> Project:
        return replace(self, activities=tuple(a for a in self.activities if a.entity_key != key))
