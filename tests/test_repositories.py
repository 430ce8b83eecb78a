import pendulum
import pytest

from zebra_core import EntityKey
from zebra_core.exceptions import FrameAlreadyStarted, InvalidEntity
from zebra_core.models import Frame, ProjectStatus
from zebra_core.repositories import (
    ActivityRepository, LocalActivityRepository, LocalProjectRepository, ProjectRepository,
    ZebraActivityRepository, ZebraProjectRepository)
from zebra_core.storage import TomlFile
from zebra_core.timesheets import create_timesheet

DAY = pendulum.date(2025, 1, 15)


def at(hour, minute=0, day=15):
    return pendulum.datetime(2025, 1, day, hour, minute, tz="Europe/Zurich")


class TestFrameRepository:

    def frame(self, activity, role, start, stop=None, description=""):
        return Frame(start_time=start, stop_time=stop, activity=activity, role=role, description=description)

    def test_rejects_active_frames_in_history(self, frame_repository, zebra_activity, role):
        with pytest.raises(ValueError):
            frame_repository.save(self.frame(zebra_activity, role, at(9)))

    def test_current_frame_slot(self, frame_repository, zebra_activity, role):
        running = self.frame(zebra_activity, role, at(9))
        frame_repository.save_current(running)
        assert frame_repository.get_current() == running

        with pytest.raises(FrameAlreadyStarted):
            frame_repository.save_current(self.frame(zebra_activity, role, at(10)))
        with pytest.raises(ValueError):
            frame_repository.save_current(self.frame(zebra_activity, role, at(9), at(10)))

        frame_repository.clear_current()
        assert frame_repository.get_current() is None

    def test_filter_by_time_range(self, frame_repository, zebra_activity, role):
        inside = frame_repository.save(self.frame(zebra_activity, role, at(9), at(10)))
        straddling = frame_repository.save(self.frame(zebra_activity, role, at(7), at(8, 30)))
        frame_repository.save(self.frame(zebra_activity, role, at(12), at(13)))

        assert frame_repository.filter(at(8), at(11)) == [inside]
        assert frame_repository.filter(at(8), at(11), include_partial=True) == [straddling, inside]

    def test_filter_by_issue_keys_and_projects(self, frame_repository, zebra_activity, role):
        zeb = frame_repository.save(self.frame(zebra_activity, role, at(9), at(10), "ZEB-1"))
        ops = frame_repository.save(self.frame(zebra_activity, role, at(10), at(11), "OPS-2"))

        assert frame_repository.filter(issue_keys=["ZEB-1"]) == [zeb]
        assert frame_repository.filter(ignore_issue_keys=["ZEB-1"]) == [ops]
        assert frame_repository.filter(ignore_project_keys=[zebra_activity.project_key]) == []

    def test_last_used_role_for_activity(self, frame_repository, zebra_activity, role, other_role):
        frame_repository.save(self.frame(zebra_activity, role, at(8), at(9)))
        frame_repository.save(self.frame(zebra_activity, other_role, at(9), at(10)))
        frame_repository.save(Frame(start_time=at(10), stop_time=at(11), activity=zebra_activity,
                                    is_individual=True))
        assert frame_repository.get_last_used_role_for_activity(zebra_activity) == other_role

    def test_last_frame_skips_frames_stopping_after_now(self, frame_repository, zebra_activity, role):
        frame_repository.save(self.frame(zebra_activity, role, at(8), at(12)))
        later = frame_repository.save(self.frame(zebra_activity, role, at(9), at(10)))
        frame_repository.save(self.frame(zebra_activity, role, at(16), at(17, 30)))
        assert frame_repository.last_frame(at(17)) == later
        assert frame_repository.last_frame(at(9, 30)) is None
        assert frame_repository.last_frame(at(12)) == later

    def test_last_activity_for_issue_keys(self, frame_repository, zebra_activity, other_zebra_activity, role):
        frame_repository.save(self.frame(zebra_activity, role, at(8), at(9), "ZEB-1 OPS-2"))
        frame_repository.save(self.frame(other_zebra_activity, role, at(9), at(10), "ZEB-1"))

        assert frame_repository.get_last_activity_for_issue_keys(["OPS-2", "ZEB-1"]) == zebra_activity
        assert frame_repository.get_last_activity_for_issue_keys(["ZEB-1"]) == other_zebra_activity
        assert frame_repository.get_last_activity_for_issue_keys(["NOPE-1"]) is None

    def test_update_and_remove_require_existing(self, frame_repository, zebra_activity, role):
        frame = self.frame(zebra_activity, role, at(8), at(9))
        with pytest.raises(KeyError):
            frame_repository.update(frame)
        with pytest.raises(KeyError):
            frame_repository.remove(frame.uuid)


class TestLocalTimesheetRepository:

    def test_zebra_ids_are_unique(self, timesheet_repository, zebra_activity, role):
        timesheet_repository.save(create_timesheet(zebra_activity, DAY, 1.0, role=role).with_changes(zebra_id=5))
        with pytest.raises(ValueError):
            timesheet_repository.save(create_timesheet(zebra_activity, DAY, 1.0, role=role).with_changes(zebra_id=5))

    def test_get_by_unique_prefix(self, timesheet_repository, zebra_activity, role):
        saved = timesheet_repository.save(create_timesheet(zebra_activity, DAY, 1.0, role=role))
        assert timesheet_repository.get(saved.uuid[:8]) == saved
        assert timesheet_repository.get("zzzz") is None

    def test_queries(self, timesheet_repository, zebra_activity, role):
        today = timesheet_repository.save(create_timesheet(zebra_activity, DAY, 1.0, role=role, frame_uuids=["f1"]))
        yesterday = timesheet_repository.save(
            create_timesheet(zebra_activity, DAY.subtract(days=1), 1.0, role=role).with_changes(zebra_id=3))
        timesheet_repository.save(create_timesheet(zebra_activity, DAY, 1.0, role=role, do_not_sync=True))

        assert timesheet_repository.get_by_date_range(DAY.subtract(days=1), DAY.subtract(days=1)) == [yesterday]
        assert timesheet_repository.get_by_zebra_id(3) == yesterday
        assert timesheet_repository.get_by_frame_uuids(["f1", "x"]) == [today]
        assert timesheet_repository.get_unsynced() == [today]

    def test_update_and_remove_require_existing(self, timesheet_repository, zebra_activity, role):
        timesheet = create_timesheet(zebra_activity, DAY, 1.0, role=role)
        with pytest.raises(KeyError):
            timesheet_repository.update(timesheet)
        with pytest.raises(KeyError):
            timesheet_repository.remove(timesheet.uuid)


@pytest.fixture
def catalog(tmp_path, frame_repository, zebra_project):
    cache = TomlFile(tmp_path / "projects.toml")
    cache.save({"projects": {"100": zebra_project.to_dict()}})
    projects = ProjectRepository(LocalProjectRepository(TomlFile(tmp_path / "local.toml")),
                                 ZebraProjectRepository(cache))
    activities = ActivityRepository(LocalActivityRepository(projects.local, frame_repository),
                                    ZebraActivityRepository(projects.zebra))
    return projects, activities


class TestProjectsAndActivities:

    def test_get_routes_by_source(self, catalog, zebra_activity):
        projects, activities = catalog
        local_project = projects.create("Internal")
        local_activity = activities.create(local_project.entity_key, "Admin Work")

        assert activities.get(zebra_activity.entity_key) == zebra_activity
        assert activities.get(local_activity.entity_key) == local_activity
        assert projects.get(local_project.entity_key).activities == (local_activity,)

    def test_alias_defaults_to_slug(self, catalog):
        projects, activities = catalog
        project = projects.create("Internal")
        assert activities.create(project.entity_key, "Admin Work").alias == "admin-work"

    def test_local_alias_wins(self, catalog, zebra_activity):
        projects, activities = catalog
        project = projects.create("Internal")
        local = activities.create(project.entity_key, "Shadow", alias="dev")
        assert activities.get_by_alias("dev") == local

    def test_zebra_entities_cannot_be_mutated(self, catalog, zebra_activity, zebra_project):
        projects, activities = catalog
        with pytest.raises(InvalidEntity):
            activities.create(zebra_project.entity_key, "Nope")
        with pytest.raises(InvalidEntity):
            activities.update(zebra_activity, name="Nope")
        with pytest.raises(InvalidEntity):
            activities.delete(zebra_activity.entity_key)
        with pytest.raises(InvalidEntity):
            projects.delete(zebra_project.entity_key)

    def test_delete_refused_while_frames_exist(self, catalog, frame_repository, role):
        projects, activities = catalog
        project = projects.create("Internal")
        activity = activities.create(project.entity_key, "Admin")
        frame_repository.save(Frame(start_time=at(8), stop_time=at(9), activity=activity, role=role))

        with pytest.raises(ValueError):
            activities.delete(activity.entity_key)
        activities.delete(activity.entity_key, force=True)
        assert activities.get(activity.entity_key) is None

    def test_name_search_prefers_prefix_matches(self, catalog):
        projects, activities = catalog
        assert [a.name for a in activities.get_by_name_like("dev")] == ["Development"]
        assert [a.name for a in activities.get_by_name_like("eet")] == ["Meetings"]

    def test_resolve_accepts_keys_aliases_and_names(self, catalog, zebra_activity):
        projects, activities = catalog
        assert activities.resolve("zebra:1001") == zebra_activity
        assert activities.resolve("dev") == zebra_activity
        assert activities.resolve("Develop") == zebra_activity
        assert activities.resolve("nothing") is None

    def test_status_filter(self, catalog):
        projects, activities = catalog
        projects.create("Old", status=ProjectStatus.INACTIVE)
        assert "Old" not in [p.name for p in projects.all()]
        assert "Old" in [p.name for p in projects.all(statuses=None)]
