import datetime
import decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.types import Boolean, Integer, Numeric, String, Unicode

from polis.db.base import Base
from polis.db.init_db import bootstrap_schema
from polis.db.session import Database, infer_sql_type, typed


@pytest.mark.parametrize("value, expected", [
    (True, Boolean),
    (7, Integer),
    (decimal.Decimal("1.5"), Numeric),
    ("text", Unicode),
])
def test_infer_sql_type(value, expected):
    assert isinstance(infer_sql_type(value), expected)


def test_infer_sql_type_rejects_unknown():
    assert infer_sql_type(None) is None
    with pytest.raises(TypeError):
        infer_sql_type(object())


def test_execute_binds_positional_params(database):
    database.execute(
        "INSERT INTO users (id, email, display_name, post_count, created_at) "
        "VALUES (@param0, @param1, @param2, @param3, @param4)",
        ["u1", "ana@example.com", "Ana", 3, datetime.datetime(2026, 1, 2, 3, 4, 5)],
    )

    result = database.execute(
        "SELECT id, display_name, post_count FROM users WHERE id = @param0 AND post_count > @param1",
        ["u1", 2],
    )
    assert result.recordset == [{"id": "u1", "display_name": "Ana", "post_count": 3}]
    assert result.rows_affected == [1]


def test_execute_with_explicit_type(database):
    database.execute(
        "INSERT INTO users (id, email, post_count) VALUES (@param0, @param1, @param2)",
        [typed("u1", String(50)), "ana@example.com", 0],
    )
    result = database.execute(
        "UPDATE users SET post_count = post_count + 1 WHERE id = @param0",
        ["u1"],
    )
    assert result.recordset == []
    assert result.rows_affected == [1]


def test_execute_requires_open_database():
    database = Database("sqlite://")
    with pytest.raises(RuntimeError):
        database.execute("SELECT 1")


def test_transaction_rolls_back(database):
    with pytest.raises(ValueError):
        with database.transaction() as db:
            db.execute(Base.metadata.tables["tags"].insert().values(id="t", name="t"))
            raise ValueError("abort")

    assert database.execute("SELECT COUNT(*) AS n FROM tags").recordset == [{"n": 0}]


def test_foreign_keys_enforced(database):
    from sqlalchemy.exc import IntegrityError

    with pytest.raises(IntegrityError):
        database.execute(
            "INSERT INTO friendships (follower_id, followee_id) VALUES (@param0, @param1)",
            ["ghost1", "ghost2"],
        )


def test_bootstrap_is_idempotent(database):
    assert bootstrap_schema(database) == []

    inspector = inspect(database.engine)
    assert set(inspector.get_table_names()) == {
        "users", "posts", "events", "images", "tags", "post_tags", "friendships",
    }
    index_names = {index["name"] for index in inspector.get_indexes("posts")}
    assert {"idx_posts_user_id", "idx_posts_created_at"} <= index_names


def test_open_and_close():
    database = Database("sqlite://")
    assert not database.is_open
    database.open()
    assert database.is_open
    database.close()
    assert not database.is_open
    with pytest.raises(RuntimeError):
        database.session()
