"""
Reconciliation of local timesheets with their counterparts on Zebra.
"""
from __future__ import annotations

import logging

import pendulum

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from zebra_core.exceptions import ConflictSkipped, InvalidEntity, SyncFailure, ZebraApiError
from zebra_core.models import Timesheet
from zebra_core.repositories.timesheets import LocalTimesheetRepository
from zebra_core.repositories.zebra_timesheets import ZebraTimesheetRepository

logger = logging.getLogger(__name__)


@dataclass
class PushReport:
    pushed: List[Timesheet] = field(default_factory=list)
    conflicts: List[ConflictSkipped] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    excluded: List[Timesheet] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class PullReport:
    created: List[Timesheet] = field(default_factory=list)
    updated: List[Timesheet] = field(default_factory=list)
    unchanged: List[Timesheet] = field(default_factory=list)


class TimesheetSyncService:

    def __init__(self, local: LocalTimesheetRepository, remote: ZebraTimesheetRepository,
                 clock: Optional[Callable[[], pendulum.DateTime]] = None):
        self.local = local
        self.remote = remote
        self.clock = clock or (lambda: pendulum.now("UTC"))

    def _write_back(self, local: Timesheet, remote: Timesheet) -> Timesheet:
        synced = local.with_changes(
            zebra_id=remote.zebra_id,
            updated_at=remote.updated_at or self.clock(),
        )
        return self.local.save(synced)

    def _create(self, local: Timesheet) -> Timesheet:
        created = self.remote.create(local)
        logger.info("Created Zebra timesheet %s for %s", created.zebra_id, local.uuid)
        return self._write_back(local, created)

    def push_local_to_zebra(self, local: Timesheet, remote_hint: Optional[Timesheet] = None) -> Timesheet:
        """
        Push one local timesheet to Zebra and return it as stored locally
        afterwards.

        Unlinked timesheets are created remotely. Linked ones are updated,
        unless Zebra's copy changed after our last sync, in which case
        ConflictSkipped is raised and nothing is touched. A linked timesheet
        that no longer exists remotely is created again. API errors and remote
        records that cannot be read surface as SyncFailure.
        """
        try:
            if local.zebra_id is None:
                return self._create(local)

            remote = remote_hint or self.remote.get_by_zebra_id(local.zebra_id, strict=True)
            if remote is None:
                logger.warning("Zebra timesheet %s no longer exists, recreating it", local.zebra_id)
                return self._create(local.with_changes(zebra_id=None))

            if (remote.updated_at is not None and local.updated_at is not None
                    and remote.updated_at > local.updated_at):
                raise ConflictSkipped(local.uuid, local.updated_at, remote.updated_at)

            updated = self.remote.update(local)
            logger.info("Updated Zebra timesheet %s from %s", local.zebra_id, local.uuid)
            return self._write_back(local, updated)
        except (ZebraApiError, InvalidEntity, ValueError) as e:
            raise SyncFailure(local.uuid, e) from e

    def push_many(self, timesheets: Iterable[Timesheet]) -> PushReport:
        """
        Push each timesheet in turn. Timesheets marked do_not_sync are left
        out; a failure or conflict on one never stops the others.
        """
        report = PushReport()
        for timesheet in timesheets:
            if timesheet.do_not_sync:
                report.excluded.append(timesheet)
                continue
            try:
                report.pushed.append(self.push_local_to_zebra(timesheet))
            except ConflictSkipped as e:
                report.conflicts.append(e)
            except SyncFailure as e:
                logger.error("%s", e)
                report.failures[timesheet.uuid] = str(e.cause)
        return report

    def pull_from_zebra(self, from_date: pendulum.Date, to_date: pendulum.Date) -> PullReport:
        """
        Bring Zebra timesheets in the date range into local storage. Known
        timesheets are only replaced when Zebra's copy is newer; their local
        uuid, frames, and sync flag are kept.
        """
        report = PullReport()
        for remote in self.remote.get_by_date_range(from_date, to_date):
            local = self.local.get_by_zebra_id(remote.zebra_id)
            if local is None:
                report.created.append(self.local.save(remote))
            elif remote.updated_at is not None and (
                    local.updated_at is None or remote.updated_at > local.updated_at):
                refreshed = remote.with_changes(
                    uuid=local.uuid,
                    frame_uuids=local.frame_uuids,
                    do_not_sync=local.do_not_sync,
                )
                report.updated.append(self.local.update(refreshed))
            else:
                report.unchanged.append(local)
        logger.info("Pulled timesheets %s..%s: %d new, %d updated",
                    from_date, to_date, len(report.created), len(report.updated))
        return report

    def delete(self, local: Timesheet, confirm: Callable[[int], bool]) -> bool:
        """
        Delete a timesheet locally and, when linked, on Zebra too. Returns
        False if the remote deletion was not confirmed.
        """
        if local.zebra_id is not None:
            try:
                if not self.remote.delete(local.zebra_id, confirm):
                    return False
            except ZebraApiError as e:
                raise SyncFailure(local.uuid, e) from e
        self.local.remove(local.uuid)
        return True
