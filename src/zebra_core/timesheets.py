"""
Timesheet construction, merging, and derivation from recorded frames.
"""
from __future__ import annotations

import logging
import math

import pendulum

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from zebra_core.exceptions import IncompatibleTimesheets
from zebra_core.models import Activity, Frame, Role, Timesheet

logger = logging.getLogger(__name__)

ZEBRA_TIMEZONE = "Europe/Zurich"
DEFAULT_DESCRIPTION = "Time entry"


def create_timesheet(activity: Activity,
                     date: pendulum.Date,
                     time: float,
                     description: str = "",
                     role: Optional[Role] = None,
                     client_description: Optional[str] = None,
                     frame_uuids: Iterable[str] = (),
                     do_not_sync: bool = False,
                     now: Optional[pendulum.DateTime] = None) -> Timesheet:
    """
    Build a new local timesheet. The time must already be a multiple of a
    quarter hour; it is never rounded here.
    """
    return Timesheet(
        activity=activity,
        date=date,
        time=time,
        description=description,
        client_description=client_description or None,
        role=role,
        individual_action=role is None,
        frame_uuids=tuple(frame_uuids),
        do_not_sync=do_not_sync,
        updated_at=now or pendulum.now("UTC"),
    )


def round_hours(seconds: float, alias: Optional[str] = None) -> float:
    """
    Convert a duration into quarter hours. Anything up to a quarter counts as
    one quarter. Activities whose alias starts with "_" are rounded down,
    everything else to the nearest quarter.
    """
    hours = seconds / 3600
    if hours <= 0.25:
        return 0.25
    if alias and alias.startswith("_"):
        return math.floor(hours * 4) / 4
    return math.floor(hours * 4 + 0.5) / 4


@dataclass(frozen=True)
class MergeResult:
    merged: Timesheet
    removed: List[Timesheet]
    was_synced: bool


def _join(values: Iterable[Optional[str]]) -> str:
    return " | ".join(v for v in values if v)


def merge_timesheets(timesheets: Sequence[Timesheet]) -> MergeResult:
    """
    Combine several timesheets for the same activity and role into one. The
    first timesheet keeps its uuid; the others are to be removed. Any link to
    Zebra is dropped, so the result needs pushing again.
    """
    if len(timesheets) < 2:
        raise ValueError("At least two timesheets are needed to merge.")

    first = timesheets[0]
    role_id = first.role.id if first.role else None
    for timesheet in timesheets[1:]:
        if timesheet.activity.entity_key != first.activity.entity_key:
            raise IncompatibleTimesheets(
                "activity",
                f"Cannot merge timesheets with different activities: "
                f"{first.activity.entity_key} and {timesheet.activity.entity_key}.")
        other_role_id = timesheet.role.id if timesheet.role else None
        if other_role_id != role_id:
            raise IncompatibleTimesheets(
                "role", f"Cannot merge timesheets with different roles: {role_id} and {other_role_id}.")

    frame_uuids = []
    for timesheet in timesheets:
        for frame_uuid in timesheet.frame_uuids:
            if frame_uuid not in frame_uuids:
                frame_uuids.append(frame_uuid)

    merged = first.with_changes(
        time=sum(t.time for t in timesheets),
        description=_join(t.description for t in timesheets),
        client_description=_join(t.client_description for t in timesheets) or None,
        frame_uuids=tuple(frame_uuids),
        zebra_id=None,
        updated_at=None,
        do_not_sync=False,
    )
    return MergeResult(
        merged=merged,
        removed=list(timesheets[1:]),
        was_synced=any(t.zebra_id is not None for t in timesheets),
    )


def apply_merge(result: MergeResult, repository) -> Timesheet:
    repository.update(result.merged)
    for timesheet in result.removed:
        repository.remove(timesheet.uuid)
    logger.info("Merged %d timesheets into %s", len(result.removed) + 1, result.merged.uuid)
    return result.merged


def day_bounds(date: pendulum.Date, timezone: str = ZEBRA_TIMEZONE):
    start = pendulum.datetime(date.year, date.month, date.day, tz=timezone)
    return start, start.add(days=1)


def _most_common_role(frames: Sequence[Frame]) -> Optional[Role]:
    roles = {f.role.id: f.role for f in frames if f.role is not None}
    if not roles:
        return None
    counts = Counter(f.role.id for f in frames if f.role is not None)
    return roles[counts.most_common(1)[0][0]]


def derive_timesheets(frames: Iterable[Frame], date: pendulum.Date,
                      timezone: str = ZEBRA_TIMEZONE,
                      now: Optional[pendulum.DateTime] = None) -> List[Timesheet]:
    """
    Group the completed Zebra frames overlapping the given day by issue keys
    and activity, producing one candidate timesheet per group.
    """
    day_start, day_end = day_bounds(date, timezone)
    groups = {}
    for frame in frames:
        if frame.is_active or not frame.activity.entity_key.is_zebra:
            continue
        if frame.stop_time <= day_start or frame.start_time >= day_end:
            continue
        key = (tuple(sorted(frame.issue_keys)), frame.activity.entity_key)
        groups.setdefault(key, []).append(frame)

    timesheets = []
    for group in groups.values():
        activity = group[0].activity
        seconds = sum((f.stop_time - f.start_time).total_seconds() for f in group)

        descriptions = []
        for frame in group:
            if frame.description and frame.description not in descriptions:
                descriptions.append(frame.description)

        individual = any(f.is_individual for f in group)
        timesheets.append(create_timesheet(
            activity=activity,
            date=date,
            time=round_hours(seconds, activity.alias),
            description=" ".join(descriptions) or DEFAULT_DESCRIPTION,
            role=None if individual else _most_common_role(group),
            frame_uuids=[f.uuid for f in group],
            now=now,
        ))
    return timesheets


class ReconcileAction(str, Enum):
    SKIP = "skip"
    UPDATE = "update"
    INSERT = "insert"


@dataclass(frozen=True)
class Reconciliation:
    action: ReconcileAction
    timesheet: Timesheet
    existing: Optional[Timesheet] = None
    new_frame_uuids: List[str] = field(default_factory=list)


def reconcile_derived(candidate: Timesheet, existing: Iterable[Timesheet]) -> Reconciliation:
    """
    Decide what to do with a timesheet derived from frames, given the
    timesheets already stored for the same day:

    - its frames are all covered by an existing timesheet: skip it
    - it shares some frames with an existing timesheet and brings new ones:
      add the new frames to the existing timesheet, keeping its time and uuid
    - it shares no frames with any existing timesheet: insert it
    """
    candidate_frames = set(candidate.frame_uuids)
    for timesheet in existing:
        if timesheet.date != candidate.date:
            continue
        if timesheet.activity.entity_key != candidate.activity.entity_key:
            continue
        existing_frames = set(timesheet.frame_uuids)
        if not candidate_frames & existing_frames:
            continue

        new_frames = [u for u in candidate.frame_uuids if u not in existing_frames]
        if not new_frames:
            return Reconciliation(ReconcileAction.SKIP, timesheet, existing=timesheet)

        updated = timesheet.with_changes(frame_uuids=timesheet.frame_uuids + tuple(new_frames))
        return Reconciliation(ReconcileAction.UPDATE, updated, existing=timesheet, new_frame_uuids=new_frames)

    return Reconciliation(ReconcileAction.INSERT, candidate, new_frame_uuids=list(candidate.frame_uuids))


def timesheets_from_frames(frame_repository, timesheet_repository, date: pendulum.Date,
                           timezone: str = ZEBRA_TIMEZONE,
                           dry_run: bool = False) -> List[Reconciliation]:
    """
    Derive timesheets for the day from recorded frames and store the outcome
    of reconciling each with the timesheets already present.
    """
    day_start, day_end = day_bounds(date, timezone)
    frames = frame_repository.filter(from_time=day_start, to_time=day_end, include_partial=True)
    existing = list(timesheet_repository.get_by_date_range(date, date))

    results = []
    for candidate in derive_timesheets(frames, date, timezone):
        result = reconcile_derived(candidate, existing)
        results.append(result)
        if dry_run:
            continue
        if result.action == ReconcileAction.UPDATE:
            timesheet_repository.update(result.timesheet)
            existing = [result.timesheet if t.uuid == result.timesheet.uuid else t for t in existing]
        elif result.action == ReconcileAction.INSERT:
            timesheet_repository.save(result.timesheet)
            existing.append(result.timesheet)
    return results
