from __future__ import annotations

from zebra_core.entity_key import EntityKey

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Activity:
    """Something time can be booked against. Belongs to exactly one project."""
    entity_key: EntityKey
    name: str
    description: str
    project_key: EntityKey
    alias: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Activity:
        return cls(
            entity_key=EntityKey.from_dict(data["key"]),
            name=data["name"],
            description=data.get("desc", ""),
            project_key=EntityKey.from_dict(data["project"]),
            alias=data.get("alias"),
        )

    def to_dict(self) -> dict:
        return {
            "key": self.entity_key.to_dict(),
            "name": self.name,
            "desc": self.description,
            "project": self.project_key.to_dict(),
            "alias": self.alias,
        }

    @property
    def display_name(self) -> str:
        return self.alias or self.name
