from __future__ import annotations

import uuid as uuidlib

from dataclasses import dataclass
from enum import Enum
from typing import Union

from zebra_core.exceptions import InvalidEntity


class EntitySource(str, Enum):
    LOCAL = "local"
    ZEBRA = "zebra"


@dataclass(frozen=True)
class EntityKey:
    """
    Identity of an activity or project. Local records are addressed by a UUID,
    records mirrored from Zebra by their integer id.
    """
    source: EntitySource
    id: Union[uuidlib.UUID, int]

    def __post_init__(self):
        if self.source == EntitySource.LOCAL:
            if not isinstance(self.id, uuidlib.UUID):
                raise InvalidEntity(f"Local entity keys need a UUID, got {self.id!r}.")
        elif self.source == EntitySource.ZEBRA:
            if isinstance(self.id, bool) or not isinstance(self.id, int):
                raise InvalidEntity(f"Zebra entity keys need an integer id, got {self.id!r}.")
        else:
            raise InvalidEntity(f"Unknown entity source: {self.source!r}")

    @classmethod
    def local(cls, id: Union[uuidlib.UUID, str, None] = None) -> EntityKey:
        if id is None:
            id = uuidlib.uuid4()
        elif isinstance(id, str):
            try:
                id = uuidlib.UUID(id)
            except ValueError:
                raise InvalidEntity(f"Invalid UUID for local entity key: {id!r}")
        return cls(EntitySource.LOCAL, id)

    @classmethod
    def zebra(cls, id: Union[int, str]) -> EntityKey:
        if isinstance(id, str):
            if not id.strip().isdigit():
                raise InvalidEntity(f"Invalid id for zebra entity key: {id!r}")
            id = int(id)
        return cls(EntitySource.ZEBRA, id)

    @classmethod
    def parse(cls, value: str) -> EntityKey:
        """
        Parse the canonical "local:<uuid>" / "zebra:<int>" form.
        """
        source, sep, raw_id = value.partition(":")
        if not sep:
            raise InvalidEntity(f"Invalid entity key: {value!r}")
        if source == EntitySource.LOCAL.value:
            return cls.local(raw_id)
        if source == EntitySource.ZEBRA.value:
            return cls.zebra(raw_id)
        raise InvalidEntity(f"Unknown entity source in key: {value!r}")

    @classmethod
    def from_dict(cls, data: dict) -> EntityKey:
        source = data.get("source")
        if source == EntitySource.LOCAL.value:
            return cls.local(str(data["id"]))
        if source == EntitySource.ZEBRA.value:
            return cls.zebra(data["id"])
        raise InvalidEntity(f"Unknown entity source: {source!r}")

    def to_dict(self) -> dict:
        return {"source": self.source.value, "id": self.raw_id}

    @property
    def is_local(self) -> bool:
        return self.source == EntitySource.LOCAL

    @property
    def is_zebra(self) -> bool:
        return self.source == EntitySource.ZEBRA

    @property
    def raw_id(self) -> Union[str, int]:
        if self.source == EntitySource.LOCAL:
            return self.id.hex
        return self.id

    def __str__(self) -> str:
        return f"{self.source.value}:{self.raw_id}"
