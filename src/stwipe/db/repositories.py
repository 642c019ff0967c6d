"""Table repositories sharing one psycopg2 access pattern.

Each repository maps a pydantic model onto one table. Column names come from class attributes and
never from callers; values are always passed as named query parameters.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from enum import Enum
from typing import (
    ClassVar,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)
from uuid import UUID

from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.extras import Json, RealDictCursor

from stwipe.models.base import StwipeBaseModel

ModelT = TypeVar("ModelT", bound=StwipeBaseModel)
Row = Dict[str, object]
Ordering = Sequence[Tuple[str, str]]


class RepositoryError(RuntimeError):
    """Base exception raised for storage failures."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record does not exist."""


class ConnectionFactory(Protocol):
    """Callable returning a context manager around a live, transactional connection."""

    def __call__(self) -> AbstractContextManager[PsycopgConnection]: ...


def to_column_value(value: object) -> object:
    """Convert enums, UUIDs and UUID lists into values psycopg2 can adapt."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_column_value(item) for item in value]
    return value


class BaseRepository(Generic[ModelT]):
    """CRUD helpers for a single table; subclasses declare the table layout."""

    table_name: ClassVar[str]
    model_type: ClassVar[Type[StwipeBaseModel]]
    insert_fields: ClassVar[Sequence[str]]
    update_fields: ClassVar[Sequence[str]] = ()
    json_fields: ClassVar[FrozenSet[str]] = frozenset()
    default_order: ClassVar[Ordering] = ()

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    def insert(self, model: ModelT) -> ModelT:
        """Insert ``model`` and return the stored row, including generated columns."""

        dumped = model.model_dump(mode="json", exclude_none=True)
        values = self._column_values((field, dumped[field]) for field in self.insert_fields if field in dumped)
        columns = ", ".join(values)
        placeholders = ", ".join(f"%({column})s" for column in values)
        query = f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders}) RETURNING *"
        row = self._fetch_one(query, values)
        if row is None:
            raise RepositoryError(f"Insert into {self.table_name} returned no row")
        return self._to_model(row)

    def update_columns(self, record_id: UUID, changes: Mapping[str, object]) -> ModelT:
        """Apply a partial update; only columns listed in ``update_fields`` may change."""

        unknown = set(changes) - set(self.update_fields)
        if unknown:
            raise RepositoryError(f"Columns not updatable on {self.table_name}: {sorted(unknown)}")
        if not changes:
            return self.get_by_id(record_id)

        values = self._column_values(changes.items())
        assignments = ", ".join(f"{column} = %({column})s" for column in values)
        query = f"UPDATE {self.table_name} SET {assignments} WHERE id = %(id)s RETURNING *"
        row = self._fetch_one(query, {**values, "id": str(record_id)})
        if row is None:
            raise self._not_found(record_id)
        return self._to_model(row)

    def get_by_id(self, record_id: UUID) -> ModelT:
        record = self.find_one({"id": record_id})
        if record is None:
            raise self._not_found(record_id)
        return record

    def find_one(self, criteria: Mapping[str, object]) -> Optional[ModelT]:
        """Return the first record whose columns equal ``criteria``, if any."""

        where, params = self._where(criteria)
        row = self._fetch_one(f"SELECT * FROM {self.table_name}{where} LIMIT 1", params)
        return None if row is None else self._to_model(row)

    def find_all(self, criteria: Mapping[str, object], *, order_by: Optional[Ordering] = None) -> List[ModelT]:
        """Return every record whose columns equal ``criteria``, in ``order_by`` or default order."""

        where, params = self._where(criteria)
        ordering = order_by if order_by is not None else self.default_order
        order = ""
        if ordering:
            order = " ORDER BY " + ", ".join(f"{column} {direction}" for column, direction in ordering)
        rows = self._fetch_all(f"SELECT * FROM {self.table_name}{where}{order}", params)
        return [self._to_model(row) for row in rows]

    def delete_where(self, criteria: Mapping[str, object]) -> int:
        """Delete the records whose columns equal ``criteria`` and return how many were removed."""

        if not criteria:
            raise RepositoryError(f"Refusing to delete every row of {self.table_name}")
        where, params = self._where(criteria)
        with self._connection_factory() as connection:
            with connection.cursor() as cursor:
                cursor.execute(f"DELETE FROM {self.table_name}{where}", params)
                return cursor.rowcount

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _column_values(self, items: Iterable[Tuple[str, object]]) -> Row:
        values: Row = {}
        for column, value in items:
            value = to_column_value(value)
            values[column] = Json(value) if column in self.json_fields and value is not None else value
        return values

    def _where(self, criteria: Mapping[str, object]) -> Tuple[str, Row]:
        if not criteria:
            return "", {}
        params = {column: to_column_value(value) for column, value in criteria.items()}
        return " WHERE " + " AND ".join(f"{column} = %({column})s" for column in params), params

    def _to_model(self, row: Mapping[str, object]) -> ModelT:
        return self.model_type.model_validate(dict(row))  # type: ignore[return-value]

    def _not_found(self, record_id: object) -> RecordNotFoundError:
        return RecordNotFoundError(f"{self.model_type.__name__} {record_id} not found")

    def _fetch_one(self, query: str, params: Mapping[str, object]) -> Optional[Row]:
        with self._connection_factory() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
        return None if row is None else dict(row)

    def _fetch_all(self, query: str, params: Mapping[str, object]) -> List[Row]:
        with self._connection_factory() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        return [dict(row) for row in rows]


__all__ = [
    "BaseRepository",
    "ConnectionFactory",
    "RecordNotFoundError",
    "RepositoryError",
    "to_column_value",
]
