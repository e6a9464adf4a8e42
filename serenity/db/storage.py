"""
Storage port used by every service and route.

``execute(statement, params)`` takes a statement written with ``$n``
placeholders and returns a ``QueryResult``. There is one adapter per engine;
``create_storage`` picks it once from the database URL. Engines without native
``RETURNING`` get it emulated with follow-up reads on the same connection, so
callers see the same result shape everywhere.
"""

from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
from pathlib import Path
from typing import Any, Iterator, Sequence

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import DBAPIError

from .sql import (
    DELETE_RE,
    INSERT_RE,
    UPDATE_RE,
    in_clause,
    prepare,
    split_returning,
    statement_verb,
)

logger = logging.getLogger(__name__)

WRITE_VERBS = {"INSERT", "UPDATE", "DELETE", "REPLACE"}


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    changes: int | None = None
    last_insert_id: Any = None

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def scalar(self, default: Any = None) -> Any:
        row = self.first()
        if not row:
            return default
        return next(iter(row.values()))


class StorageError(Exception):
    """A statement failed; ``code`` is the engine's native error code."""

    def __init__(self, message: str, code: Any = None, unique_violation: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.unique_violation = unique_violation


def normalize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, timedelta):
        # MySQL drivers hand TIME columns back as timedeltas
        minutes = int(value.total_seconds()) // 60
        return f"{minutes // 60:02d}:{minutes % 60:02d}"
    return value


def normalize_row(row) -> dict[str, Any]:
    return {key: normalize_value(value) for key, value in row.items()}


class StorageTransaction:
    """``execute`` bound to one connection inside an open transaction."""

    def __init__(self, storage: "StorageAdapter", connection: Connection) -> None:
        self.storage = storage
        self.connection = connection

    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        return self.storage._execute(self.connection, statement, params)

    def transaction(self):
        return nullcontext(self)


class StorageAdapter:
    name = "generic"
    native_returning = False
    primary_key = "id"
    unique_violation_codes: frozenset = frozenset()

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def engine_options(cls, url, pool_size: int, statement_timeout_ms: int) -> dict[str, Any]:
        return {"future": True, "pool_pre_ping": True, "pool_size": pool_size}

    @classmethod
    def from_url(cls, url, pool_size: int = 20, statement_timeout_ms: int = 0) -> "StorageAdapter":
        engine = create_engine(url, **cls.engine_options(url, pool_size, statement_timeout_ms))
        return cls(engine)

    def execute(self, statement: str, params: Sequence[Any] = ()) -> QueryResult:
        with self._begin() as connection:
            return self._execute(connection, statement, params)

    @contextmanager
    def transaction(self) -> Iterator[StorageTransaction]:
        with self._begin() as connection:
            yield StorageTransaction(self, connection)

    def ping(self) -> QueryResult:
        return self.execute("SELECT 1 AS ok")

    def dispose(self) -> None:
        self.engine.dispose()

    def error_code(self, orig: BaseException) -> Any:
        return None

    def _storage_error(self, exc: DBAPIError) -> StorageError:
        code = self.error_code(exc.orig)
        return StorageError(str(exc.orig), code=code, unique_violation=code in self.unique_violation_codes)

    @contextmanager
    def _begin(self) -> Iterator[Connection]:
        # Connect and commit failures surface here, outside any single statement.
        try:
            with self.engine.begin() as connection:
                yield connection
        except DBAPIError as exc:
            error = self._storage_error(exc)
            logger.warning("Database transaction failed with code %s", error.code)
            raise error from exc

    def _execute(self, connection: Connection, statement: str, params: Sequence[Any]) -> QueryResult:
        try:
            body, returning = split_returning(statement)
            if returning is None or self.native_returning:
                return self._run(connection, statement, params)
            return self._emulate_returning(connection, body, returning, params)
        except DBAPIError as exc:
            error = self._storage_error(exc)
            logger.debug("Statement failed with code %s: %s", error.code, statement_verb(statement))
            raise error from exc

    def _run(self, connection: Connection, statement: str, params: Sequence[Any]) -> QueryResult:
        clause, values = prepare(statement, params)
        result = connection.execute(clause, values)
        verb = statement_verb(statement)
        last_insert_id = self._last_insert_id(result) if verb == "INSERT" else None
        rows = [normalize_row(row) for row in result.mappings()] if result.returns_rows else []
        changes = result.rowcount if verb in WRITE_VERBS else None
        if last_insert_id is None and verb == "INSERT" and rows:
            last_insert_id = rows[0].get(self.primary_key)
        return QueryResult(rows=rows, changes=changes, last_insert_id=last_insert_id)

    def _last_insert_id(self, result) -> Any:
        return result.lastrowid or None

    def _select_by_ids(self, connection, table: str, columns: str, ids: list[Any]) -> list[dict]:
        if not ids:
            return []
        statement = (
            f"SELECT {columns} FROM {table} WHERE {in_clause(self.primary_key, ids)} "
            f"ORDER BY {self.primary_key}"
        )
        return self._run(connection, statement, ids).rows

    def _emulate_returning(
        self, connection: Connection, statement: str, columns: str, params: Sequence[Any]
    ) -> QueryResult:
        verb = statement_verb(statement)
        pk = self.primary_key
        if verb == "INSERT":
            table = INSERT_RE.match(statement).group("table")
            result = self._run(connection, statement, params)
            if result.last_insert_id is not None:
                result.rows = self._run(
                    connection,
                    f"SELECT {columns} FROM {table} WHERE {pk} = $1",
                    [result.last_insert_id],
                ).rows
            return result
        if verb == "UPDATE":
            match = UPDATE_RE.match(statement)
            if not match:
                raise ValueError("RETURNING emulation needs UPDATE ... WHERE ...")
            table = match.group("table")
            ids = [
                row[pk]
                for row in self._run(
                    connection, f"SELECT {pk} FROM {table} WHERE {match.group('where')}", params
                ).rows
            ]
            result = self._run(connection, statement, params)
            result.rows = self._select_by_ids(connection, table, columns, ids)
            return result
        if verb == "DELETE":
            match = DELETE_RE.match(statement)
            if not match:
                raise ValueError("Unsupported DELETE statement for RETURNING emulation")
            select = f"SELECT {columns} FROM {match.group('table')}"
            if match.group("where"):
                select += f" WHERE {match.group('where')}"
            rows = self._run(connection, select, params).rows
            result = self._run(connection, statement, params)
            result.rows = rows
            return result
        raise ValueError(f"RETURNING is not supported for {verb} statements")


class PostgresStorage(StorageAdapter):
    name = "postgresql"
    native_returning = True
    unique_violation_codes = frozenset({"23505"})

    @classmethod
    def engine_options(cls, url, pool_size, statement_timeout_ms):
        options = super().engine_options(url, pool_size, statement_timeout_ms)
        if statement_timeout_ms:
            options["connect_args"] = {"options": f"-c statement_timeout={int(statement_timeout_ms)}"}
        return options

    def error_code(self, orig):
        return getattr(orig, "pgcode", None)

    def _last_insert_id(self, result):
        return None


class MySQLStorage(StorageAdapter):
    name = "mysql"
    unique_violation_codes = frozenset({1062})

    @classmethod
    def engine_options(cls, url, pool_size, statement_timeout_ms):
        options = super().engine_options(url, pool_size, statement_timeout_ms)
        options["pool_recycle"] = 3600
        if statement_timeout_ms:
            options["connect_args"] = {
                "init_command": f"SET SESSION max_execution_time={int(statement_timeout_ms)}"
            }
        return options

    def error_code(self, orig):
        args = getattr(orig, "args", ())
        return args[0] if args and isinstance(args[0], int) else None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SQLiteStorage(StorageAdapter):
    name = "sqlite"
    unique_violation_codes = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    @classmethod
    def engine_options(cls, url, pool_size, statement_timeout_ms):
        database = make_url(url).database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return {"future": True, "connect_args": {"check_same_thread": False}}

    def error_code(self, orig):
        return getattr(orig, "sqlite_errorname", None)


STORAGE_BACKENDS: dict[str, type[StorageAdapter]] = {
    "sqlite": SQLiteStorage,
    "postgresql": PostgresStorage,
    "mysql": MySQLStorage,
    "mariadb": MySQLStorage,
}


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    if url.startswith("mysql://"):
        return "mysql+pymysql://" + url[len("mysql://"):]
    if url.startswith("mariadb://"):
        return "mariadb+pymysql://" + url[len("mariadb://"):]
    return url


def create_storage(url: str, pool_size: int = 20, statement_timeout_ms: int = 0) -> StorageAdapter:
    url = normalize_database_url(url)
    backend = make_url(url).get_backend_name()
    try:
        adapter = STORAGE_BACKENDS[backend]
    except KeyError as exc:
        raise ValueError(f"Unsupported database backend: {backend}") from exc
    storage = adapter.from_url(url, pool_size=pool_size, statement_timeout_ms=statement_timeout_ms)
    logger.info("Using %s storage backend", storage.name)
    return storage
