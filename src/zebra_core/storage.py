import datetime
import logging
import tomllib

import pendulum
import tomli_w

from enum import Enum
from pathlib import Path
from typing import Any, Dict

from zebra_core.exceptions import StorageError

logger = logging.getLogger(__name__)


class TomlSerializer:

    @classmethod
    def serialize(cls, obj: Any) -> str:
        """
        Serializes a dict (or anything with a to_dict method) to a TOML string.
        Datetimes become ISO-8601 strings and None values are dropped, since
        TOML has no null.
        """

        def serialize_value(value):
            if isinstance(value, pendulum.DateTime):
                return value.to_iso8601_string()
            elif isinstance(value, pendulum.Date):
                return value.to_date_string()
            elif isinstance(value, (datetime.datetime, datetime.date)):
                return value.isoformat()
            elif isinstance(value, Enum):
                return value.value
            elif isinstance(value, dict):
                return {k: serialize_value(v) for k, v in value.items()}
            elif isinstance(value, (list, tuple)):
                return [serialize_value(v) for v in value]
            else:
                return value

        def remove_none(obj):
            if isinstance(obj, dict):
                return {k: remove_none(v) for k, v in obj.items() if v is not None}
            elif isinstance(obj, list):
                return [remove_none(v) for v in obj]
            else:
                return obj

        if hasattr(obj, "to_dict"):
            obj = obj.to_dict()

        return tomli_w.dumps(remove_none(serialize_value(obj)))


class TomlFile:
    """A TOML document on disk holding a table of records."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return tomllib.loads(self.path.read_text())
        except tomllib.TOMLDecodeError as e:
            raise StorageError(f"Could not parse {self.path}: {e}")

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(TomlSerializer.serialize(data))
        logger.debug("Wrote %s", self.path)

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
