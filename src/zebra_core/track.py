from __future__ import annotations

import logging

import pendulum

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from zebra_core.exceptions import FrameAlreadyStarted, InvalidTime, NoFrameStarted
from zebra_core.models import Activity, Frame, Role
from zebra_core.repositories.frames import FrameRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackState:
    """
    The current frame slot. Idle when current is None, active otherwise.
    Transitions return a new state along with the frame they affected.
    """
    current: Optional[Frame] = None

    @property
    def is_started(self) -> bool:
        return self.current is not None

    def start(self, activity: Activity, now: pendulum.DateTime,
              description: str = "",
              at: Optional[pendulum.DateTime] = None,
              with_gap: bool = True,
              role: Optional[Role] = None,
              is_individual: bool = False,
              last_frame: Optional[Frame] = None) -> Tuple[TrackState, Frame]:
        if self.current is not None:
            raise FrameAlreadyStarted(self.current)

        start_time = at or now
        if not with_gap and last_frame is not None:
            start_time = last_frame.stop_time

        if start_time > now:
            raise InvalidTime(f"Cannot start a frame in the future ({start_time}).")
        if with_gap and last_frame is not None and start_time < last_frame.stop_time:
            raise InvalidTime(
                f"Start time {start_time} is before the end of the previous frame ({last_frame.stop_time}).")

        frame = Frame(
            start_time=start_time,
            activity=activity,
            role=None if is_individual else role,
            is_individual=is_individual,
            gap=with_gap,
            description=description,
            updated_at=now,
        )
        return TrackState(frame), frame

    def stop(self, now: pendulum.DateTime,
             at: Optional[pendulum.DateTime] = None) -> Tuple[TrackState, Frame]:
        if self.current is None:
            raise NoFrameStarted()

        stop_time = at or now
        if stop_time <= self.current.start_time:
            raise InvalidTime(
                f"Stop time {stop_time} must be after the frame start time {self.current.start_time}.")
        return TrackState(None), self.current.stop(stop_time, now)

    def cancel(self) -> Tuple[TrackState, Frame]:
        if self.current is None:
            raise NoFrameStarted()
        return TrackState(None), self.current


class Track:
    """
    Records frames while keeping at most one of them running. Each call reads
    the current frame slot from the repository and persists the outcome
    before returning.
    """

    def __init__(self, frames: FrameRepository,
                 default_role: Optional[Role] = None,
                 clock: Optional[Callable[[], pendulum.DateTime]] = None):
        self.frames = frames
        self.default_role = default_role
        self.clock = clock or (lambda: pendulum.now("UTC"))

    def state(self) -> TrackState:
        return TrackState(self.frames.get_current())

    def is_started(self) -> bool:
        return self.state().is_started

    def get_current(self) -> Optional[Frame]:
        return self.state().current

    def resolve_role(self, activity: Activity, role: Optional[Role], is_individual: bool) -> Optional[Role]:
        if is_individual:
            return None
        role = role or self.default_role or self.frames.get_last_used_role_for_activity(activity)
        if role is None:
            raise ValueError(
                f"No role given for '{activity.display_name}' and no default role is configured.")
        return role

    def start(self, activity: Activity,
              description: str = "",
              at: Optional[pendulum.DateTime] = None,
              with_gap: bool = True,
              is_individual: bool = False,
              role: Optional[Role] = None) -> Frame:
        state = self.state()
        if state.is_started:
            raise FrameAlreadyStarted(state.current)

        now = self.clock()
        _, frame = state.start(
            activity,
            now=now,
            description=description,
            at=at,
            with_gap=with_gap,
            role=self.resolve_role(activity, role, is_individual),
            is_individual=is_individual,
            last_frame=self.frames.last_frame(now),
        )
        self.frames.save_current(frame)
        logger.info("Started frame %s for %s", frame.uuid, activity.entity_key)
        return frame

    def stop(self, at: Optional[pendulum.DateTime] = None) -> Frame:
        _, frame = self.state().stop(now=self.clock(), at=at)
        self.frames.save(frame)
        self.frames.clear_current()
        logger.info("Stopped frame %s", frame.uuid)
        return frame

    def cancel(self) -> Frame:
        _, frame = self.state().cancel()
        self.frames.clear_current()
        logger.info("Cancelled frame %s", frame.uuid)
        return frame

    def add(self, activity: Activity,
            start_time: pendulum.DateTime,
            stop_time: pendulum.DateTime,
            description: str = "",
            is_individual: bool = False,
            role: Optional[Role] = None) -> Frame:
        """
        Record an already finished frame without touching the current slot.
        """
        if stop_time > self.clock():
            raise InvalidTime(f"Cannot add a frame ending in the future ({stop_time}).")
        frame = Frame(
            start_time=start_time,
            stop_time=stop_time,
            activity=activity,
            role=self.resolve_role(activity, role, is_individual),
            is_individual=is_individual,
            description=description,
            updated_at=self.clock(),
        )
        return self.frames.save(frame)
