import logging

import pendulum

from typing import Iterable, List, Optional

from zebra_core.entity_key import EntityKey
from zebra_core.exceptions import FrameAlreadyStarted
from zebra_core.models import Activity, Frame, Role
from zebra_core.storage import TomlFile

logger = logging.getLogger(__name__)


class FrameRepository:
    """
    Completed frames live in the history file keyed by uuid. The running
    frame, if any, lives on its own in the current frame file.
    """

    def __init__(self, history: TomlFile, current: TomlFile):
        self.history = history
        self.current = current

    def _load(self) -> dict:
        return self.history.load().get("frames", {})

    def _store(self, frames: dict) -> None:
        self.history.save({"frames": frames})

    def all(self) -> List[Frame]:
        frames = [Frame.from_dict(data) for data in self._load().values()]
        return sorted(frames, key=lambda f: f.start_time)

    def get(self, uuid: str) -> Optional[Frame]:
        data = self._load().get(uuid)
        if data is None:
            matches = [v for k, v in self._load().items() if k.startswith(uuid)]
            if len(matches) != 1:
                return None
            data = matches[0]
        return Frame.from_dict(data)

    def save(self, frame: Frame) -> Frame:
        if frame.is_active:
            raise ValueError("Only stopped frames can be saved to the frame history.")
        frames = self._load()
        frames[frame.uuid] = frame.to_dict()
        self._store(frames)
        logger.debug("Saved frame %s", frame.uuid)
        return frame

    def update(self, frame: Frame) -> Frame:
        if frame.uuid not in self._load():
            raise KeyError(f"Frame {frame.uuid} does not exist.")
        return self.save(frame)

    def remove(self, uuid: str) -> None:
        frames = self._load()
        if frames.pop(uuid, None) is None:
            raise KeyError(f"Frame {uuid} does not exist.")
        self._store(frames)

    def filter(self,
               from_time: Optional[pendulum.DateTime] = None,
               to_time: Optional[pendulum.DateTime] = None,
               include_partial: bool = False,
               project_keys: Optional[Iterable[EntityKey]] = None,
               ignore_project_keys: Optional[Iterable[EntityKey]] = None,
               issue_keys: Optional[Iterable[str]] = None,
               ignore_issue_keys: Optional[Iterable[str]] = None) -> List[Frame]:
        """
        Return completed frames matching every given criterion. Without
        include_partial a frame must lie entirely inside [from_time, to_time];
        with it, any overlap is enough.
        """
        project_keys = set(project_keys or [])
        ignore_project_keys = set(ignore_project_keys or [])
        issue_keys = set(issue_keys or [])
        ignore_issue_keys = set(ignore_issue_keys or [])

        result = []
        for frame in self.all():
            if include_partial:
                if from_time is not None and frame.stop_time <= from_time:
                    continue
                if to_time is not None and frame.start_time >= to_time:
                    continue
            else:
                if from_time is not None and frame.start_time < from_time:
                    continue
                if to_time is not None and frame.stop_time > to_time:
                    continue
            project = frame.activity.project_key
            if project_keys and project not in project_keys:
                continue
            if project in ignore_project_keys:
                continue
            keys = set(frame.issue_keys)
            if issue_keys and not keys & issue_keys:
                continue
            if keys & ignore_issue_keys:
                continue
            result.append(frame)
        return result

    def get_by_date_range(self, from_time: pendulum.DateTime, to_time: pendulum.DateTime,
                          include_partial: bool = True) -> List[Frame]:
        return self.filter(from_time=from_time, to_time=to_time, include_partial=include_partial)

    def get_current(self) -> Optional[Frame]:
        data = self.current.load().get("frame")
        return Frame.from_dict(data) if data else None

    def save_current(self, frame: Frame) -> Frame:
        if not frame.is_active:
            raise ValueError("The current frame must not be stopped.")
        existing = self.get_current()
        if existing is not None and existing.uuid != frame.uuid:
            raise FrameAlreadyStarted(existing)
        self.current.save({"frame": frame.to_dict()})
        return frame

    def clear_current(self) -> None:
        self.current.delete()

    def last_frame(self, now: Optional[pendulum.DateTime] = None) -> Optional[Frame]:
        """
        The most recently started frame. Frames stopping after now are
        ignored.
        """
        frames = [f for f in self.all() if now is None or f.stop_time <= now]
        if not frames:
            return None
        return max(frames, key=lambda f: f.start_time)

    def has_frames_for_activity(self, key: EntityKey) -> bool:
        return any(f.activity.entity_key == key for f in self.all())

    def get_last_used_role_for_activity(self, activity: Activity) -> Optional[Role]:
        for frame in sorted(self.all(), key=lambda f: f.stop_time, reverse=True):
            if frame.activity.entity_key == activity.entity_key and not frame.is_individual:
                return frame.role
        return None

    def get_last_activity_for_issue_keys(self, issue_keys: Iterable[str]) -> Optional[Activity]:
        wanted = sorted(set(issue_keys))
        if not wanted:
            return None
        for frame in sorted(self.all(), key=lambda f: f.stop_time, reverse=True):
            if sorted(frame.issue_keys) == wanted:
                return frame.activity
        return None
