import logging

import pendulum

from typing import Iterable, List, Optional

from zebra_core.models import Timesheet
from zebra_core.storage import TomlFile

logger = logging.getLogger(__name__)


class LocalTimesheetRepository:
    """Timesheets stored in a single TOML file, keyed by uuid."""

    def __init__(self, file: TomlFile):
        self.file = file

    def _load(self) -> dict:
        return self.file.load().get("timesheets", {})

    def _store(self, timesheets: dict) -> None:
        self.file.save({"timesheets": timesheets})

    def all(self) -> List[Timesheet]:
        timesheets = [Timesheet.from_dict(data) for data in self._load().values()]
        return sorted(timesheets, key=lambda t: (t.date, t.uuid))

    def get(self, uuid: str) -> Optional[Timesheet]:
        """Look up a timesheet by uuid, or by a prefix matching exactly one uuid."""
        timesheets = self._load()
        if uuid in timesheets:
            return Timesheet.from_dict(timesheets[uuid])
        matches = [data for key, data in timesheets.items() if key.startswith(uuid)]
        if len(matches) == 1:
            return Timesheet.from_dict(matches[0])
        return None

    def get_by_zebra_id(self, zebra_id: int) -> Optional[Timesheet]:
        for timesheet in self.all():
            if timesheet.zebra_id == zebra_id:
                return timesheet
        return None

    def get_by_date_range(self, from_date: pendulum.Date, to_date: pendulum.Date) -> List[Timesheet]:
        return [t for t in self.all() if from_date <= t.date <= to_date]

    def get_by_frame_uuids(self, frame_uuids: Iterable[str]) -> List[Timesheet]:
        wanted = set(frame_uuids)
        return [t for t in self.all() if wanted & set(t.frame_uuids)]

    def get_unsynced(self) -> List[Timesheet]:
        return [t for t in self.all() if t.zebra_id is None and not t.do_not_sync]

    def save(self, timesheet: Timesheet) -> Timesheet:
        timesheets = self._load()
        if timesheet.zebra_id is not None:
            for uuid, data in timesheets.items():
                if uuid != timesheet.uuid and data.get("zebra_id") == timesheet.zebra_id:
                    raise ValueError(
                        f"Zebra timesheet {timesheet.zebra_id} is already linked to local timesheet {uuid}.")
        timesheets[timesheet.uuid] = timesheet.to_dict()
        self._store(timesheets)
        logger.debug("Saved timesheet %s", timesheet.uuid)
        return timesheet

    def update(self, timesheet: Timesheet) -> Timesheet:
        if timesheet.uuid not in self._load():
            raise KeyError(f"Timesheet {timesheet.uuid} does not exist.")
        return self.save(timesheet)

    def remove(self, uuid: str) -> None:
        timesheets = self._load()
        if timesheets.pop(uuid, None) is None:
            raise KeyError(f"Timesheet {uuid} does not exist.")
        self._store(timesheets)
        logger.debug("Removed timesheet %s", uuid)
