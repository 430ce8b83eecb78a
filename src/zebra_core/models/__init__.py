from .activity import Activity
from .project import Project, ProjectStatus
from .role import Role
from .frame import Frame
from .timesheet import Timesheet, QUARTER_HOUR
