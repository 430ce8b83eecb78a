import os

from pathlib import Path

DEFAULT_CONFIG = """\
timezone = "Europe/Zurich"

[zebra]
# base_uri = "https://zebra.example.com"
# token = ""
timezone = "Europe/Zurich"

[user]
# id = 0
# default_role_id = 0
"""


class FileSystem:
    """
    Locates the zebra data directory: $ZEBRA_DIR if set, otherwise ~/.zebra.
    """
    ENV_VAR = "ZEBRA_DIR"
    ROOT_NAME = ".zebra"
    VALID_DIRECTORY_STRUCTURE = {
        'config.toml': DEFAULT_CONFIG,
        'frames.toml': "",
        'timesheets.toml': "",
        'local-projects.toml': "",
        'cache': {},
    }

    def __init__(self, root: Path | None = None):
        self.ROOT = root or self.find_root()
        self.CONFIG_PATH = self.ROOT / "config.toml"
        self.FRAMES_PATH = self.ROOT / "frames.toml"
        self.CURRENT_FRAME_PATH = self.ROOT / "current_frame.toml"
        self.TIMESHEETS_PATH = self.ROOT / "timesheets.toml"
        self.LOCAL_PROJECTS_PATH = self.ROOT / "local-projects.toml"
        self.CACHE_PATH = self.ROOT / "cache"
        self.PROJECTS_CACHE_PATH = self.CACHE_PATH / "projects.toml"
        self.USER_CACHE_PATH = self.CACHE_PATH / "user.toml"

    @classmethod
    def find_root(cls) -> Path:
        env = os.getenv(cls.ENV_VAR)
        if env:
            return Path(env)
        return Path.home() / cls.ROOT_NAME

    def is_initialised(self) -> bool:
        return self.CONFIG_PATH.exists()

    def initialise(self) -> None:
        """
        Create the data directory with an empty store and a default config.
        """
        if self.is_initialised():
            raise FileExistsError(f"{self.ROOT} is already initialised.")
        self.ROOT.mkdir(parents=True, exist_ok=True)
        self._create_directory_structure(self.VALID_DIRECTORY_STRUCTURE, self.ROOT)

    def _create_directory_structure(self, directory_structure: dict, base_path: Path) -> None:
        for name, value in directory_structure.items():
            path = base_path / name
            if isinstance(value, dict):
                path.mkdir(parents=True, exist_ok=True)
                self._create_directory_structure(value, path)
            elif not path.exists():
                path.write_text(value)
