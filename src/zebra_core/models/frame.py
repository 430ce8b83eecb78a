from __future__ import annotations

from zebra_core.exceptions import InvalidTime
from zebra_core.formatting import extract_issue_keys
from zebra_core.models.activity import Activity
from zebra_core.models.role import Role

import uuid as uuidlib
import pendulum

from dataclasses import dataclass, field, replace
from typing import List, Optional


@dataclass(frozen=True)
class Frame:
    """
    One recorded interval of work. A frame without a stop time is the
    currently running one.
    """
    start_time: pendulum.DateTime
    activity: Activity
    stop_time: Optional[pendulum.DateTime] = None
    role: Optional[Role] = None
    is_individual: bool = False
    gap: bool = True
    description: str = ""
    uuid: str = field(default_factory=lambda: uuidlib.uuid4().hex)
    updated_at: Optional[pendulum.DateTime] = None

    def __post_init__(self):
        if self.stop_time is not None and self.stop_time <= self.start_time:
            raise InvalidTime(
                f"Frame stop time {self.stop_time} must be after its start time {self.start_time}.")
        if self.is_individual and self.role is not None:
            raise ValueError("Individual frames cannot have a role.")
        if not self.is_individual and self.role is None:
            raise ValueError("A role is required unless the frame is individual.")

    @property
    def is_active(self) -> bool:
        return self.stop_time is None

    @property
    def issue_keys(self) -> List[str]:
        return extract_issue_keys(self.description)

    def duration(self, now: Optional[pendulum.DateTime] = None) -> pendulum.Duration:
        end = self.stop_time or now or pendulum.now("UTC")
        return end - self.start_time

    def stop(self, stop_time: pendulum.DateTime, updated_at: Optional[pendulum.DateTime] = None) -> Frame:
        return replace(self, stop_time=stop_time, updated_at=updated_at or pendulum.now("UTC"))

    @classmethod
    def from_dict(cls, data: dict) -> Frame:
        stop = data.get("stop")
        updated_at = data.get("updated_at")
        role = data.get("role")
        return cls(
            uuid=data["uuid"],
            start_time=pendulum.parse(data["start"]),
            stop_time=pendulum.parse(stop) if stop else None,
            activity=Activity.from_dict(data["activity"]),
            role=Role.from_dict(role) if role else None,
            is_individual=data.get("is_individual", False),
            gap=data.get("gap", True),
            description=data.get("desc", ""),
            updated_at=pendulum.parse(updated_at) if updated_at else None,
        )

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "start": self.start_time,
            "stop": self.stop_time,
            "activity": self.activity.to_dict(),
            "role": self.role.to_dict() if self.role else None,
            "is_individual": self.is_individual,
            "gap": self.gap,
            "desc": self.description,
            "issues": self.issue_keys,
            "updated_at": self.updated_at,
        }
