import logging

import pendulum

from typing import Any, Callable, Dict, List, Optional

from zebra_core.api import TimesheetApiService
from zebra_core.entity_key import EntityKey
from zebra_core.exceptions import InvalidEntity, ZebraApiError
from zebra_core.models import Role, Timesheet
from zebra_core.repositories.activities import ActivityRepository
from zebra_core.repositories.roles import RoleRepository
from zebra_core.timesheets import ZEBRA_TIMEZONE

logger = logging.getLogger(__name__)


class ZebraTimesheetRepository:
    """Timesheets as stored on the Zebra server."""

    def __init__(self, api: TimesheetApiService, activities: ActivityRepository,
                 roles: RoleRepository, timezone: str = ZEBRA_TIMEZONE):
        self.api = api
        self.activities = activities
        self.roles = roles
        self.timezone = timezone

    def from_api(self, data: Dict[str, Any], uuid: Optional[str] = None) -> Timesheet:
        """
        Build a timesheet from an API record. GET responses name the activity
        "occupation_id", POST responses "occupid".
        """
        occupation_id = data.get("occupation_id", data.get("occupid"))
        if occupation_id is None:
            raise InvalidEntity("Invalid API data: 'occupation_id' or 'occupid' is required")
        for required in ("date", "time", "description"):
            if data.get(required) is None:
                raise InvalidEntity(f"Invalid API data: '{required}' is required")

        activity = self.activities.get(EntityKey.zebra(occupation_id))
        if activity is None:
            raise InvalidEntity(f"Activity not found for occupation_id: {occupation_id}")

        role = None
        if data.get("role_id") not in (None, ""):
            role_id = int(data["role_id"])
            role = self.roles.get(role_id) or Role(role_id)

        updated_at = None
        modified = data.get("lu_date") or data.get("modified")
        if modified:
            updated_at = pendulum.parse(modified, tz=self.timezone).in_timezone("UTC")

        extra = {"uuid": uuid} if uuid else {}
        return Timesheet(
            activity=activity,
            date=pendulum.parse(data["date"]).date(),
            time=float(data["time"]),
            description=data["description"],
            client_description=data.get("client_description") or None,
            role=role,
            individual_action=role is None,
            zebra_id=int(data["id"]) if data.get("id") is not None else None,
            updated_at=updated_at,
            **extra,
        )

    def to_api(self, timesheet: Timesheet) -> Dict[str, Any]:
        fields = {
            "project_id": timesheet.activity.project_key.id,
            "activity_id": timesheet.activity.entity_key.id,
            "description": timesheet.description,
            "time": timesheet.time,
            "date": timesheet.date.isoformat(),
            "individual_action": timesheet.individual_action,
        }
        if timesheet.client_description is not None:
            fields["client_description"] = timesheet.client_description
        if timesheet.role is not None:
            fields["role_id"] = timesheet.role.id
        return fields

    def _parse(self, data: Dict[str, Any]) -> Optional[Timesheet]:
        try:
            return self.from_api(data)
        except (InvalidEntity, ValueError) as e:
            logger.warning("Skipping Zebra timesheet %s: %s", data.get("id"), e)
            return None

    def get_by_zebra_id(self, zebra_id: int, strict: bool = False) -> Optional[Timesheet]:
        """
        Fetch one timesheet. A record that cannot be read as a timesheet,
        e.g. one for an activity missing from the project cache, counts as
        not found unless strict is set, in which case the error propagates.
        """
        data = self.api.fetch_by_id(zebra_id)
        if data is None:
            return None
        if strict:
            return self.from_api(data)
        return self._parse(data)

    def get_by_date_range(self, from_date: pendulum.Date, to_date: pendulum.Date) -> List[Timesheet]:
        records = self.api.fetch_all({
            "start_date": from_date.isoformat(),
            "end_date": to_date.isoformat(),
        })
        timesheets = []
        for data in records:
            timesheet = self._parse(data)
            if timesheet is not None:
                timesheets.append(timesheet)
        return timesheets

    def create(self, timesheet: Timesheet) -> Timesheet:
        response = self.api.create(self.to_api(timesheet))
        data = response.get("data") or {}

        if isinstance(data.get("timesheet"), dict):
            created = self._parse(data["timesheet"])
            if created is not None:
                return created
        if isinstance(data.get("id"), int):
            created = self.get_by_zebra_id(data["id"])
            if created is not None:
                return created
        if data.get("id") is not None and (data.get("occupation_id") or data.get("occupid")):
            created = self._parse(data)
            if created is not None:
                return created

        # The response did not identify the new record, find it by content.
        for candidate in self.get_by_date_range(timesheet.date, timesheet.date):
            if (candidate.activity.entity_key == timesheet.activity.entity_key
                    and candidate.description == timesheet.description):
                return candidate
        raise ZebraApiError(
            "Failed to retrieve created timesheet from Zebra. It may have been created but could not be fetched.")

    def update(self, timesheet: Timesheet) -> Timesheet:
        if timesheet.zebra_id is None:
            raise ValueError("Cannot update a timesheet without a zebra id.")
        self.api.update(timesheet.zebra_id, self.to_api(timesheet))
        updated = self.get_by_zebra_id(timesheet.zebra_id)
        if updated is None:
            raise ZebraApiError(f"Timesheet {timesheet.zebra_id} disappeared after updating it.", status_code=404)
        return updated

    def delete(self, zebra_id: int, confirm: Callable[[int], bool]) -> bool:
        if not confirm(zebra_id):
            return False
        self.api.delete(zebra_id)
        return True
