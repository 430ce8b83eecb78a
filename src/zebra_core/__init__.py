from .entity_key import EntityKey, EntitySource
from .config import Config
from .file_system import FileSystem
from .workspace import Workspace

__version__ = "0.1.0"


def version() -> str:
    return __version__
