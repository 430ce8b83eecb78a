from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Role:
    id: int
    name: str = ""
    full_name: str = ""
    type: Optional[str] = None
    status: Optional[int] = None
    parent_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> Role:
        """Accepts both the stored form and the user payload of the Zebra API."""
        parent_id = data.get("parent_id", data.get("parentId"))
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            full_name=data.get("full_name", data.get("fullName", "")),
            type=data.get("type"),
            status=data.get("status"),
            parent_id=int(parent_id) if parent_id is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "name": self.name,
            "full_name": self.full_name,
            "type": self.type,
            "status": self.status,
        }
