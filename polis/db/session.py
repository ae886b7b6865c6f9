import datetime
import decimal
import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence

from sqlalchemy import bindparam, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import (
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    Numeric,
    TypeEngine,
    Unicode,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"@param(\d+)\b")


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    pass


class TypedParam(NamedTuple):
    value: Any
    type_: TypeEngine


def typed(value: Any, type_: TypeEngine) -> TypedParam:
    """Tag a query parameter with an explicit SQL type."""
    return TypedParam(value, type_)


def infer_sql_type(value: Any) -> Optional[TypeEngine]:
    # bool before int: bool is an int subclass
    if value is None:
        return None
    if isinstance(value, bool):
        return Boolean()
    if isinstance(value, int):
        return Integer()
    if isinstance(value, float):
        return Float()
    if isinstance(value, decimal.Decimal):
        return Numeric(asdecimal=True)
    if isinstance(value, datetime.datetime):
        return DateTime()
    if isinstance(value, datetime.date):
        return Date()
    if isinstance(value, (bytes, bytearray)):
        return LargeBinary()
    if isinstance(value, str):
        return Unicode()
    raise TypeError(f"Unsupported query parameter type: {type(value).__name__}")


class QueryResult(NamedTuple):
    recordset: List[Dict[str, Any]]
    rows_affected: List[int]


class Database:
    """
    Process-wide data-access object.

    Owns the pooled engine and the session factory. Build it once at startup,
    call open(), hand it to request handlers through dependencies and call
    close() on shutdown.
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self.engine_kwargs = engine_kwargs
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self

        kwargs = dict(self.engine_kwargs)
        if self.url.startswith("sqlite"):
            kwargs.setdefault("connect_args", {"check_same_thread": False})
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees an empty database
                kwargs.setdefault("poolclass", StaticPool)
        else:
            kwargs.setdefault("pool_pre_ping", True)  # Check connection before using from pool
            kwargs.setdefault("pool_recycle", 3600)  # Recycle connections after 1 hour

        self._engine = create_engine(self.url, **kwargs)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info(f"Database engine created for dialect '{self._engine.dialect.name}'")
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._sessionmaker = None

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        return self._sessionmaker()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Unit of work: commit on success, roll back on any exception."""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Run a parameterized statement.

        `query` uses positional placeholders (@param0, @param1, ...) that refer to
        `params` by index. Each value is bound with a SQL type inferred from its
        Python type, or with the type given through typed().
        """
        statement = text(PLACEHOLDER_PATTERN.sub(r":param\1", query))

        binds = []
        for index, param in enumerate(params or []):
            if isinstance(param, TypedParam):
                value, type_ = param
            else:
                value, type_ = param, infer_sql_type(param)
            binds.append(bindparam(f"param{index}", value, type_=type_))
        if binds:
            statement = statement.bindparams(*binds)

        with self.engine.begin() as connection:
            result = connection.execute(statement)
            if result.returns_rows:
                rows = [dict(row) for row in result.mappings().all()]
                return QueryResult(recordset=rows, rows_affected=[len(rows)])
            return QueryResult(recordset=[], rows_affected=[max(result.rowcount, 0)])


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
