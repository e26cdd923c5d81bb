"""Table-oriented repository base shared by the Postgres catalog store."""

from __future__ import annotations

from typing import ClassVar, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar
from uuid import UUID

from psycopg2.extras import RealDictCursor

from vidcat.db import ConnectionFactory
from vidcat.db.store import StorageError
from vidcat.models.base import CatalogBaseModel

ModelT = TypeVar("ModelT", bound=CatalogBaseModel)


class RepositoryError(StorageError):
    """Raised when a statement does not produce the row a repository method promised."""


class BaseRepository(Generic[ModelT]):
    """Map one table onto one pydantic model.

    Subclasses declare ``table_name``, ``model_type`` and the writable column lists. Lookups return
    ``None`` for missing rows; only writes that unexpectedly return nothing raise.
    """

    table_name: ClassVar[str]
    model_type: ClassVar[Type[ModelT]]
    insert_fields: ClassVar[Sequence[str]]
    update_fields: ClassVar[Sequence[str]]
    default_order: ClassVar[Optional[str]] = None

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, model: ModelT) -> ModelT:
        """Insert ``model`` and return the row as stored."""

        values = self._column_values(model, self.insert_fields, include_none=False)
        columns = ", ".join(values)
        placeholders = ", ".join(f"%({column})s" for column in values)
        row = self._query_one(
            f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders}) RETURNING *",
            values,
        )
        if row is None:
            raise RepositoryError(f"Insert into {self.table_name} returned no row.")
        return self.model_type.model_validate(row)

    def update(self, model: ModelT, *, include_none: bool = False) -> Optional[ModelT]:
        """Write the updatable columns of ``model``; ``None`` when its row no longer exists."""

        values = self._column_values(model, self.update_fields, include_none=include_none)
        if not values:
            raise RepositoryError(f"No updatable columns supplied for {self.table_name}.")
        assignments = ", ".join(f"{column} = %({column})s" for column in values)
        values["id"] = _db_value(getattr(model, "id"))
        row = self._query_one(
            f"UPDATE {self.table_name} SET {assignments} WHERE id = %(id)s RETURNING *",
            values,
        )
        return self.model_type.model_validate(row) if row is not None else None

    def delete_by_id(self, record_id: object) -> bool:
        """Delete a row by primary key; ``False`` when nothing matched."""

        return self._execute(f"DELETE FROM {self.table_name} WHERE id = %(id)s", {"id": _db_value(record_id)}) > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def find_by_id(self, record_id: object) -> Optional[ModelT]:
        return self.find_one("id = %(id)s", {"id": _db_value(record_id)})

    def find_one(self, where_clause: str, params: Mapping[str, object]) -> Optional[ModelT]:
        row = self._query_one(f"SELECT * FROM {self.table_name} WHERE {where_clause} LIMIT 1", params)
        return self.model_type.model_validate(row) if row is not None else None

    def fetch_all(
        self,
        where_clause: Optional[str] = None,
        params: Optional[Mapping[str, object]] = None,
        *,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        """Return matching rows in ``default_order``, at most ``limit`` of them."""

        query = f"SELECT * FROM {self.table_name}"
        query_params = dict(params or {})
        if where_clause:
            query += f" WHERE {where_clause}"
        if self.default_order:
            query += f" ORDER BY {self.default_order}"
        if limit is not None:
            query += " LIMIT %(limit)s"
            query_params["limit"] = limit
        return [self.model_type.model_validate(row) for row in self._query_all(query, query_params)]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _column_values(self, model: ModelT, columns: Sequence[str], *, include_none: bool) -> Dict[str, object]:
        dumped = model.model_dump(mode="json")
        return {
            column: dumped[column]
            for column in columns
            if column in dumped and (include_none or dumped[column] is not None)
        }

    def _query_one(self, query: str, params: Mapping[str, object]) -> Optional[Dict[str, object]]:
        with self._connection_factory() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
        return dict(row) if row is not None else None

    def _query_all(self, query: str, params: Mapping[str, object]) -> List[Dict[str, object]]:
        with self._connection_factory() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        return [dict(row) for row in rows]

    def _execute(self, query: str, params: Mapping[str, object]) -> int:
        with self._connection_factory() as connection:
            with connection.cursor() as cursor:
                cursor.execute(query, params)
                return cursor.rowcount


def _db_value(value: object) -> object:
    return str(value) if isinstance(value, UUID) else value


__all__ = ["BaseRepository", "RepositoryError"]
