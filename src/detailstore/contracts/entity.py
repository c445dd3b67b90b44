# src/detailstore/contracts/entity.py
"""Entity record type.

An entity is a plain mapping from attribute name to value. Declared
columns and dynamic attributes are read and written the same way:

    post = Post()
    post["title"] = "Hello"      # dynamic, lands in the detail column
    post["id"]                   # declared, lands in its own column

Which attributes are declared is decided at write time from the table's
column listing, never by the entity itself.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, ClassVar, Self


class Entity(MutableMapping[str, Any]):
    """Base class for records stored with a detail column.

    Subclasses set ``table_name``. The remaining class attributes describe
    the table's conventions and may be overridden per entity.

    Attributes:
        exists: True once the record has been persisted or loaded
    """

    table_name: ClassVar[str]
    primary_key: ClassVar[str] = "id"
    timestamps: ClassVar[bool] = True
    created_at_column: ClassVar[str | None] = "created_at"
    updated_at_column: ClassVar[str | None] = "updated_at"

    def __init__(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        self._attributes: dict[str, Any] = dict(attributes or {})
        self._attributes.update(kwargs)
        self.exists = False

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table = cls.__dict__.get("table_name")
        if table is not None and (not isinstance(table, str) or not table):
            raise TypeError(f"{cls.__qualname__}.table_name must be a non-empty string, got {table!r}")

    @classmethod
    def entity_name(cls) -> str:
        """Qualified class name used in error messages and logs."""
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def get_table(cls) -> str:
        try:
            return cls.table_name
        except AttributeError:
            raise TypeError(f"{cls.__qualname__} does not declare table_name") from None

    @classmethod
    def get_created_at_column(cls) -> str:
        return cls.created_at_column or "created_at"

    @classmethod
    def hydrate(cls, attributes: Mapping[str, Any]) -> Self:
        """Build an entity that represents an existing row."""
        instance = cls(attributes)
        instance.exists = True
        return instance

    @property
    def key(self) -> Any:
        """Primary key value, or None when not yet assigned."""
        return self._attributes.get(self.primary_key)

    @property
    def attributes(self) -> dict[str, Any]:
        """Copy of the current attribute mapping."""
        return dict(self._attributes)

    def set_raw_attributes(self, attributes: Mapping[str, Any]) -> None:
        """Replace the whole attribute mapping (used by the persistence pipeline)."""
        self._attributes = dict(attributes)

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    def __delitem__(self, key: str) -> None:
        del self._attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r}, exists={self.exists})"
