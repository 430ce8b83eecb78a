import logging

import pendulum

from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from zebra_core.api import ProjectApiService
from zebra_core.entity_key import EntityKey, EntitySource
from zebra_core.exceptions import InvalidEntity
from zebra_core.models import Activity, Project, ProjectStatus
from zebra_core.storage import TomlFile

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STATUSES = (ProjectStatus.ACTIVE,)


def match_name_like(items: Iterable[T], query: str, name: Callable[[T], str]) -> List[T]:
    """
    Case-insensitive name search. Names starting with the query win; only if
    there are none are names merely containing it returned.
    """
    query = query.lower()
    items = list(items)
    starts = sorted((i for i in items if name(i).lower().startswith(query)), key=name)
    if starts:
        return starts
    return sorted((i for i in items if query in name(i).lower()), key=name)


def project_from_api(data: dict) -> Project:
    key = EntityKey.zebra(data["id"])
    activities = tuple(
        Activity(
            entity_key=EntityKey.zebra(a["id"]),
            name=a.get("name", ""),
            description=a.get("description") or "",
            project_key=key,
            alias=a.get("alias") or None,
        )
        for a in data.get("activities") or []
    )
    return Project(key, data.get("name", ""), data.get("description") or "",
                   ProjectStatus(int(data.get("status", ProjectStatus.ACTIVE))), activities)


class ZebraProjectRepository:
    """
    Projects mirrored from Zebra. They are read from a cache file which is
    filled from the API on first use or on refresh().
    """

    def __init__(self, cache: TomlFile, api: Optional[ProjectApiService] = None):
        self.cache = cache
        self.api = api
        self._projects: Optional[List[Project]] = None

    def refresh(self) -> List[Project]:
        if self.api is None:
            raise InvalidEntity("Zebra is not configured, cannot refresh projects.")
        projects = [project_from_api(data) for data in self.api.fetch_all()]
        self.cache.save({
            "refreshed_at": pendulum.now("UTC"),
            "projects": {str(p.entity_key.id): p.to_dict() for p in projects},
        })
        logger.info("Refreshed %d Zebra projects", len(projects))
        self._projects = projects
        return projects

    def _all(self) -> List[Project]:
        if self._projects is None:
            data = self.cache.load().get("projects")
            if data is None and self.api is not None:
                return self.refresh()
            self._projects = [Project.from_dict(p) for p in (data or {}).values()]
        return self._projects

    def all(self, statuses: Optional[Sequence[ProjectStatus]] = DEFAULT_STATUSES) -> List[Project]:
        projects = self._all()
        if statuses:
            projects = [p for p in projects if p.status in statuses]
        return sorted(projects, key=lambda p: p.name)

    def get(self, key: EntityKey) -> Optional[Project]:
        return next((p for p in self._all() if p.entity_key == key), None)

    def get_by_name_like(self, query: str) -> List[Project]:
        return match_name_like(self._all(), query, lambda p: p.name)

    def get_by_activity(self, key: EntityKey) -> Optional[Project]:
        for project in self._all():
            if any(a.entity_key == key for a in project.activities):
                return project
        return None

    def get_by_activity_alias(self, alias: str) -> Optional[Project]:
        for project in self._all():
            if any(a.alias == alias for a in project.activities):
                return project
        return None


class LocalProjectRepository:

    def __init__(self, file: TomlFile):
        self.file = file

    def _load(self) -> dict:
        return self.file.load().get("projects", {})

    def all(self, statuses: Optional[Sequence[ProjectStatus]] = DEFAULT_STATUSES) -> List[Project]:
        projects = [Project.from_dict(p) for p in self._load().values()]
        if statuses:
            projects = [p for p in projects if p.status in statuses]
        return sorted(projects, key=lambda p: p.name)

    def get(self, key: EntityKey) -> Optional[Project]:
        data = self._load().get(str(key.raw_id))
        return Project.from_dict(data) if data else None

    def get_by_name_like(self, query: str) -> List[Project]:
        return match_name_like(self.all(statuses=None), query, lambda p: p.name)

    def get_by_activity(self, key: EntityKey) -> Optional[Project]:
        for project in self.all(statuses=None):
            if any(a.entity_key == key for a in project.activities):
                return project
        return None

    def save(self, project: Project) -> Project:
        if not project.entity_key.is_local:
            raise InvalidEntity(f"Only local projects can be stored locally, got {project.entity_key}.")
        projects = self._load()
        projects[str(project.entity_key.raw_id)] = project.to_dict()
        self.file.save({"projects": projects})
        return project

    def create(self, name: str, description: str = "",
               status: ProjectStatus = ProjectStatus.ACTIVE) -> Project:
        return self.save(Project(EntityKey.local(), name, description, status))

    def update(self, project: Project) -> Project:
        if self.get(project.entity_key) is None:
            raise KeyError(f"Project {project.entity_key} does not exist.")
        return self.save(project)

    def delete(self, key: EntityKey) -> None:
        projects = self._load()
        if projects.pop(str(key.raw_id), None) is None:
            raise KeyError(f"Project {key} does not exist.")
        self.file.save({"projects": projects})


class ProjectRepository:
    """Routes project lookups to the local or the Zebra repository by key source."""

    def __init__(self, local: LocalProjectRepository, zebra: ZebraProjectRepository):
        self.local = local
        self.zebra = zebra

    def _for(self, key: EntityKey):
        if key.source == EntitySource.LOCAL:
            return self.local
        return self.zebra

    def get(self, key: EntityKey) -> Optional[Project]:
        return self._for(key).get(key)

    def all(self, statuses: Optional[Sequence[ProjectStatus]] = DEFAULT_STATUSES) -> List[Project]:
        return self.local.all(statuses) + self.zebra.all(statuses)

    def get_by_name_like(self, query: str) -> List[Project]:
        return match_name_like(self.all(statuses=None), query, lambda p: p.name)

    def get_by_activity(self, key: EntityKey) -> Optional[Project]:
        return self._for(key).get_by_activity(key)

    def create(self, name: str, description: str = "",
               status: ProjectStatus = ProjectStatus.ACTIVE) -> Project:
        return self.local.create(name, description, status)

    def update(self, project: Project, **changes) -> Project:
        if project.entity_key.source != EntitySource.LOCAL:
            raise InvalidEntity(f"Zebra projects cannot be modified locally: {project.entity_key}")
        return self.local.update(replace(project, **changes))

    def delete(self, key: EntityKey) -> None:
        if key.source != EntitySource.LOCAL:
            raise InvalidEntity(f"Zebra projects cannot be deleted locally: {key}")
        self.local.delete(key)
