import logging

from dataclasses import replace
from typing import List, Optional, Sequence

from slugify import slugify

from zebra_core.entity_key import EntityKey, EntitySource
from zebra_core.exceptions import InvalidEntity
from zebra_core.models import Activity, ProjectStatus
from zebra_core.repositories.frames import FrameRepository
from zebra_core.repositories.projects import (
    DEFAULT_STATUSES, LocalProjectRepository, ZebraProjectRepository, match_name_like)

logger = logging.getLogger(__name__)


class _ProjectBackedActivities:
    """Activities are stored inside their projects; this walks them."""

    def __init__(self, projects):
        self.projects = projects

    def all(self, statuses: Optional[Sequence[ProjectStatus]] = DEFAULT_STATUSES) -> List[Activity]:
        return [a for p in self.projects.all(statuses) for a in p.activities]

    def get(self, key: EntityKey) -> Optional[Activity]:
        project = self.projects.get_by_activity(key)
        if project is None:
            return None
        return next(a for a in project.activities if a.entity_key == key)

    def get_by_alias(self, alias: str) -> Optional[Activity]:
        return next((a for a in self.all(statuses=None) if a.alias == alias), None)

    def search_by_alias(self, query: str) -> List[Activity]:
        query = query.lower()
        return [a for a in self.all() if a.alias and query in a.alias.lower()]

    def get_by_name_like(self, query: str) -> List[Activity]:
        return match_name_like(self.all(), query, lambda a: a.name)


class ZebraActivityRepository(_ProjectBackedActivities):

    def __init__(self, projects: ZebraProjectRepository):
        super().__init__(projects)


class LocalActivityRepository(_ProjectBackedActivities):

    def __init__(self, projects: LocalProjectRepository, frames: FrameRepository):
        super().__init__(projects)
        self.frames = frames

    def create(self, project_key: EntityKey, name: str, description: str = "",
               alias: Optional[str] = None) -> Activity:
        if not project_key.is_local:
            raise InvalidEntity(f"Local activities must belong to a local project, got {project_key}.")
        project = self.projects.get(project_key)
        if project is None:
            raise KeyError(f"Project {project_key} does not exist.")

        alias = alias or slugify(name)
        if self.get_by_alias(alias) is not None:
            raise ValueError(f"An activity with alias '{alias}' already exists.")

        activity = Activity(EntityKey.local(), name, description, project_key, alias)
        self.projects.save(project.with_activity(activity))
        logger.info("Created local activity %s (%s)", activity.entity_key, alias)
        return activity

    def update(self, activity: Activity) -> Activity:
        project = self.projects.get(activity.project_key)
        if project is None or self.get(activity.entity_key) is None:
            raise KeyError(f"Activity {activity.entity_key} does not exist.")
        self.projects.save(project.with_activity(activity))
        return activity

    def delete(self, key: EntityKey, force: bool = False) -> None:
        activity = self.get(key)
        if activity is None:
            raise KeyError(f"Activity {key} does not exist.")
        if not force and self.frames.has_frames_for_activity(key):
            raise ValueError(
                f"Activity '{activity.display_name}' has recorded frames. Use force to delete it anyway.")
        project = self.projects.get(activity.project_key)
        self.projects.save(project.without_activity(key))


class ActivityRepository:
    """
    Routes activity lookups by key source. Lookups by alias prefer local
    activities; mutations are only possible for local ones.
    """

    def __init__(self, local: LocalActivityRepository, zebra: ZebraActivityRepository):
        self.local = local
        self.zebra = zebra

    def get(self, key: EntityKey) -> Optional[Activity]:
        if key.source == EntitySource.LOCAL:
            return self.local.get(key)
        return self.zebra.get(key)

    def get_by_alias(self, alias: str) -> Optional[Activity]:
        return self.local.get_by_alias(alias) or self.zebra.get_by_alias(alias)

    def all(self, statuses: Optional[Sequence[ProjectStatus]] = DEFAULT_STATUSES) -> List[Activity]:
        return self.local.all(statuses) + self.zebra.all(statuses)

    def search_by_alias(self, query: str) -> List[Activity]:
        return self.local.search_by_alias(query) + self.zebra.search_by_alias(query)

    def get_by_name_like(self, query: str) -> List[Activity]:
        return match_name_like(self.all(), query, lambda a: a.name)

    def search_by_name_or_alias(self, query: str) -> List[Activity]:
        results = self.search_by_alias(query)
        for activity in self.get_by_name_like(query):
            if activity not in results:
                results.append(activity)
        return results

    def resolve(self, reference: str) -> Optional[Activity]:
        """
        Find an activity from user input: an entity key, an alias, or a name
        matching exactly one activity.
        """
        if reference.startswith(("local:", "zebra:")):
            return self.get(EntityKey.parse(reference))
        activity = self.get_by_alias(reference)
        if activity is not None:
            return activity
        matches = self.get_by_name_like(reference)
        return matches[0] if len(matches) == 1 else None

    def create(self, project_key: EntityKey, name: str, description: str = "",
               alias: Optional[str] = None) -> Activity:
        return self.local.create(project_key, name, description, alias)

    def update(self, activity: Activity, **changes) -> Activity:
        if activity.entity_key.source != EntitySource.LOCAL:
            raise InvalidEntity(f"Zebra activities cannot be modified locally: {activity.entity_key}")
        return self.local.update(replace(activity, **changes))

    def delete(self, key: EntityKey, force: bool = False) -> None:
        if key.source != EntitySource.LOCAL:
            raise InvalidEntity(f"Zebra activities cannot be deleted locally: {key}")
        self.local.delete(key, force)
