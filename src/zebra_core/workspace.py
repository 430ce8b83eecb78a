import tomllib

import pendulum

from functools import cached_property
from pathlib import Path
from typing import Optional

from zebra_core.api import ProjectApiService, TimesheetApiService, UserApiService, ZebraClient
from zebra_core.config import Config
from zebra_core.file_system import FileSystem
from zebra_core.repositories import (
    ActivityRepository, FrameRepository, LocalActivityRepository, LocalProjectRepository,
    LocalTimesheetRepository, ProjectRepository, RoleRepository, ZebraActivityRepository,
    ZebraProjectRepository, ZebraTimesheetRepository)
from zebra_core.storage import TomlFile
from zebra_core.sync import TimesheetSyncService
from zebra_core.track import Track


class Workspace:
    """Everything one invocation of the CLI needs, built on demand."""

    def __init__(self, root: Optional[Path] = None):
        self.fs = FileSystem(root)
        if not self.fs.is_initialised():
            raise FileNotFoundError(f"No zebra data directory at {self.fs.ROOT}. Run 'zebra init' first.")
        self.config = Config.from_dict(tomllib.loads(self.fs.CONFIG_PATH.read_text()))

    def now(self) -> pendulum.DateTime:
        """
        Get the current time in the configured timezone
        """
        return pendulum.now(self.config.timezone)

    def today(self) -> pendulum.Date:
        return self.now().date()

    @cached_property
    def client(self) -> Optional[ZebraClient]:
        if not self.config.zebra_configured:
            return None
        return ZebraClient(self.config.base_uri, self.config.token, self.config.timeout)

    def require_client(self) -> ZebraClient:
        if self.client is None:
            # Let the client report what is missing.
            return ZebraClient(self.config.base_uri, self.config.token)
        return self.client

    @cached_property
    def frames(self) -> FrameRepository:
        return FrameRepository(TomlFile(self.fs.FRAMES_PATH), TomlFile(self.fs.CURRENT_FRAME_PATH))

    @cached_property
    def projects(self) -> ProjectRepository:
        api = ProjectApiService(self.client) if self.client else None
        return ProjectRepository(
            LocalProjectRepository(TomlFile(self.fs.LOCAL_PROJECTS_PATH)),
            ZebraProjectRepository(TomlFile(self.fs.PROJECTS_CACHE_PATH), api),
        )

    @cached_property
    def activities(self) -> ActivityRepository:
        return ActivityRepository(
            LocalActivityRepository(self.projects.local, self.frames),
            ZebraActivityRepository(self.projects.zebra),
        )

    @cached_property
    def roles(self) -> RoleRepository:
        api = UserApiService(self.client) if self.client else None
        return RoleRepository(TomlFile(self.fs.USER_CACHE_PATH), api,
                              self.config.user_id, self.config.default_role_id)

    @cached_property
    def track(self) -> Track:
        return Track(self.frames, self.roles.default_role(), clock=self.now)

    @cached_property
    def timesheets(self) -> LocalTimesheetRepository:
        return LocalTimesheetRepository(TomlFile(self.fs.TIMESHEETS_PATH))

    @cached_property
    def zebra_timesheets(self) -> ZebraTimesheetRepository:
        return ZebraTimesheetRepository(TimesheetApiService(self.require_client()), self.activities,
                                        self.roles, self.config.zebra_timezone)

    @cached_property
    def sync(self) -> TimesheetSyncService:
        return TimesheetSyncService(self.timesheets, self.zebra_timesheets)
