from .frames import FrameRepository
from .projects import LocalProjectRepository, ProjectRepository, ZebraProjectRepository
from .activities import ActivityRepository, LocalActivityRepository, ZebraActivityRepository
from .roles import RoleRepository
from .timesheets import LocalTimesheetRepository
from .zebra_timesheets import ZebraTimesheetRepository
