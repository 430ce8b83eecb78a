from __future__ import annotations

from zebra_core.exceptions import InvalidEntity
from zebra_core.models.activity import Activity
from zebra_core.models.role import Role

import uuid as uuidlib
import pendulum

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

QUARTER_HOUR = 0.25


def is_quarter_multiple(hours: float) -> bool:
    return abs(hours * 4 - round(hours * 4)) < 1e-9


@dataclass(frozen=True)
class Timesheet:
    """
    A day's booked hours against one Zebra activity and role. A timesheet
    with a zebra_id mirrors a record on the Zebra server.
    """
    activity: Activity
    date: pendulum.Date
    time: float
    description: str = ""
    client_description: Optional[str] = None
    role: Optional[Role] = None
    individual_action: bool = False
    frame_uuids: Tuple[str, ...] = field(default_factory=tuple)
    zebra_id: Optional[int] = None
    updated_at: Optional[pendulum.DateTime] = None
    do_not_sync: bool = False
    uuid: str = field(default_factory=lambda: uuidlib.uuid4().hex)

    def __post_init__(self):
        if not self.activity.entity_key.is_zebra or not self.activity.project_key.is_zebra:
            raise InvalidEntity(
                f"Timesheets can only be recorded against Zebra activities, got {self.activity.entity_key}.")
        if self.time < 0:
            raise ValueError(f"Timesheet time cannot be negative: {self.time}")
        if not is_quarter_multiple(self.time):
            raise ValueError(f"Timesheet time must be a multiple of {QUARTER_HOUR} hours, got {self.time}.")
        if self.individual_action != (self.role is None):
            raise ValueError("A timesheet has a role if and only if it is not an individual action.")
        if len(set(self.frame_uuids)) != len(self.frame_uuids):
            raise ValueError("Timesheet frame uuids must be unique.")
        # Lists are accepted for convenience but stored as tuples.
        object.__setattr__(self, "frame_uuids", tuple(self.frame_uuids))

    @property
    def is_synced(self) -> bool:
        return self.zebra_id is not None

    def with_changes(self, **changes) -> Timesheet:
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict) -> Timesheet:
        role = data.get("role")
        updated_at = data.get("updated_at")
        return cls(
            uuid=data["uuid"],
            activity=Activity.from_dict(data["activity"]),
            date=pendulum.parse(data["date"]).date(),
            time=float(data["time"]),
            description=data.get("description", ""),
            client_description=data.get("client_description"),
            role=Role.from_dict(role) if role else None,
            individual_action=data.get("individual_action", False),
            frame_uuids=tuple(data.get("frame_uuids", [])),
            zebra_id=data.get("zebra_id"),
            updated_at=pendulum.parse(updated_at) if updated_at else None,
            do_not_sync=data.get("do_not_sync", False),
        )

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "activity": self.activity.to_dict(),
            "date": self.date,
            "time": self.time,
            "description": self.description,
            "client_description": self.client_description,
            "role": self.role.to_dict() if self.role else None,
            "individual_action": self.individual_action,
            "frame_uuids": list(self.frame_uuids),
            "zebra_id": self.zebra_id,
            "updated_at": self.updated_at,
            "do_not_sync": self.do_not_sync,
        }
