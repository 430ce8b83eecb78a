"""
Shared pytest fixtures for zebra-cli tests.
"""
import pytest
import tempfile
import shutil
import pendulum
from pathlib import Path

from zebra_core import EntityKey, Workspace
from zebra_core.models import Activity, Project, ProjectStatus, Role
from zebra_core.repositories import FrameRepository, LocalTimesheetRepository
from zebra_core.storage import TomlFile


@pytest.fixture
def role():
    return Role(id=7, name="Developer", full_name="Software Developer", type="function", status=1)


@pytest.fixture
def other_role():
    return Role(id=8, name="Reviewer", full_name="Code Reviewer")


@pytest.fixture
def zebra_project_key():
    return EntityKey.zebra(100)


@pytest.fixture
def zebra_activity(zebra_project_key):
    return Activity(EntityKey.zebra(1001), "Development", "Writing code", zebra_project_key, "dev")


@pytest.fixture
def other_zebra_activity(zebra_project_key):
    return Activity(EntityKey.zebra(1002), "Meetings", "", zebra_project_key, "_meet")


@pytest.fixture
def zebra_project(zebra_project_key, zebra_activity, other_zebra_activity):
    return Project(zebra_project_key, "Zebra Project", "", ProjectStatus.ACTIVE,
                   (zebra_activity, other_zebra_activity))


@pytest.fixture
def temp_zebra_dir(zebra_project, role):
    """
    Create a temporary zebra data directory with a cached Zebra project and
    user, so nothing needs the network. Cleans up after the test.
    """
    temp_dir = tempfile.mkdtemp(prefix="zebra_test_")
    zebra_dir = Path(temp_dir) / ".zebra"
    (zebra_dir / "cache").mkdir(parents=True)

    config_content = """
timezone = "Europe/Zurich"

[user]
id = 42
default_role_id = 7
"""
    (zebra_dir / "config.toml").write_text(config_content)
    TomlFile(zebra_dir / "cache" / "projects.toml").save(
        {"projects": {"100": zebra_project.to_dict()}})
    TomlFile(zebra_dir / "cache" / "user.toml").save(
        {"user": {"id": 42, "name": "Test User"}, "roles": [role.to_dict()]})

    yield zebra_dir

    shutil.rmtree(temp_dir)


@pytest.fixture
def workspace(temp_zebra_dir, monkeypatch):
    """
    Create a Workspace instance pointed at the temp directory.
    """
    monkeypatch.setenv("ZEBRA_DIR", str(temp_zebra_dir))
    monkeypatch.delenv("ZEBRA_BASE_URI", raising=False)
    monkeypatch.delenv("ZEBRA_TOKEN", raising=False)
    return Workspace()


@pytest.fixture
def frame_repository(tmp_path):
    return FrameRepository(TomlFile(tmp_path / "frames.toml"), TomlFile(tmp_path / "current_frame.toml"))


@pytest.fixture
def timesheet_repository(tmp_path):
    return LocalTimesheetRepository(TomlFile(tmp_path / "timesheets.toml"))


@pytest.fixture
def fixed_now():
    """
    A fixed point in time for time-dependent tests: 2025-01-15 17:00 in Zurich.
    """
    return pendulum.datetime(2025, 1, 15, 17, 0, 0, tz="Europe/Zurich")


@pytest.fixture
def fixed_date():
    return pendulum.date(2025, 1, 15)
