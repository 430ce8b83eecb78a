from __future__ import annotations

import os

import pendulum

from dataclasses import dataclass
from typing import Optional

from zebra_core.timesheets import ZEBRA_TIMEZONE


@dataclass
class Config:
    """Configuration for the zebra CLI. This object includes the default values for the CLI."""
    timezone: pendulum.Timezone = pendulum.now().timezone
    base_uri: Optional[str] = None
    token: Optional[str] = None
    zebra_timezone: str = ZEBRA_TIMEZONE
    timeout: float = 30.0
    user_id: Optional[int] = None
    default_role_id: Optional[int] = None
    log_level: str = "WARNING"

    @property
    def zebra_configured(self) -> bool:
        return bool(self.base_uri and self.token)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        if "timezone" in data:
            timezone = pendulum.timezone(data.get("timezone"))
        else:
            timezone = pendulum.now().timezone

        zebra = data.get("zebra", {})
        user = data.get("user", {})
        log = data.get("log", {})
        return cls(
            timezone=timezone,
            base_uri=os.getenv("ZEBRA_BASE_URI") or zebra.get("base_uri"),
            token=os.getenv("ZEBRA_TOKEN") or zebra.get("token"),
            zebra_timezone=zebra.get("timezone", ZEBRA_TIMEZONE),
            timeout=float(zebra.get("timeout", 30.0)),
            user_id=user.get("id"),
            default_role_id=user.get("default_role_id"),
            log_level=log.get("level", "WARNING"),
        )
