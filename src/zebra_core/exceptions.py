from __future__ import annotations

from typing import Optional


class ZebraError(Exception):
    """Base class for every error raised by zebra_core."""


class TrackError(ZebraError):
    pass


class FrameAlreadyStarted(TrackError):

    def __init__(self, frame=None):
        self.frame = frame
        message = "A frame is already started."
        if frame is not None:
            message = f"A frame for '{frame.activity.name}' is already started at {frame.start_time}."
        super().__init__(message)


class NoFrameStarted(TrackError):

    def __init__(self):
        super().__init__("No frame is currently started.")


class InvalidTime(TrackError):
    pass


class InvalidEntity(ZebraError, ValueError):
    pass


class IncompatibleTimesheets(ZebraError):
    """Raised when timesheets that differ in activity or role are merged."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Cannot merge timesheets with different {field}.")


class StorageError(ZebraError):
    pass


class ZebraApiError(ZebraError):
    """A transport or API level failure talking to Zebra."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SyncFailure(ZebraError):

    def __init__(self, timesheet_uuid: str, cause: Exception):
        self.timesheet_uuid = timesheet_uuid
        self.cause = cause
        super().__init__(f"Failed to sync timesheet {timesheet_uuid}: {cause}")


class ConflictSkipped(ZebraError):
    """
    Not a failure: the remote timesheet was modified after the local one was
    last synced, so the remote copy wins for this cycle.
    """

    def __init__(self, timesheet_uuid: str, local_updated_at, remote_updated_at):
        self.timesheet_uuid = timesheet_uuid
        self.local_updated_at = local_updated_at
        self.remote_updated_at = remote_updated_at
        super().__init__(
            f"Remote timesheet is newer ({remote_updated_at} > {local_updated_at}), skipping {timesheet_uuid}.")
