import sqlite3
import uuid

import pytest

from chirpy.database import NoRowsError, Queries, connect


@pytest.fixture
def queries():
    conn = connect(":memory:")
    q = Queries(conn)
    q.init_schema()
    yield q
    conn.close()


def test_create_user_and_lookup(queries):
    user = queries.create_user("walt@example.com", "hash")
    assert user.email == "walt@example.com"
    assert user.hashed_password == "hash"
    assert user.created_at == user.updated_at
    found = queries.user_and_hash_lookup("walt@example.com")
    assert found == user


def test_lookup_missing_user_raises(queries):
    with pytest.raises(NoRowsError):
        queries.user_and_hash_lookup("nobody@example.com")


def test_duplicate_email_rejected(queries):
    queries.create_user("walt@example.com", "hash")
    with pytest.raises(sqlite3.IntegrityError):
        queries.create_user("walt@example.com", "hash")


def test_add_and_get_chirp(queries):
    user = queries.create_user("walt@example.com", "hash")
    chirp = queries.add_chirp("hello world", user.id)
    assert chirp.body == "hello world"
    assert chirp.user_id == user.id
    assert queries.get_specific_chirp(chirp.id) == chirp


def test_chirp_without_user(queries):
    chirp = queries.add_chirp("orphan", None)
    assert queries.get_specific_chirp(chirp.id).user_id is None


def test_chirp_unknown_user_rejected(queries):
    with pytest.raises(sqlite3.IntegrityError):
        queries.add_chirp("hello", uuid.uuid4())


def test_get_missing_chirp_raises(queries):
    with pytest.raises(NoRowsError):
        queries.get_specific_chirp(uuid.uuid4())


def test_get_all_chirps_in_creation_order(queries):
    user = queries.create_user("walt@example.com", "hash")
    bodies = ["first", "second", "third"]
    created = [queries.add_chirp(body, user.id) for body in bodies]
    assert queries.get_all_chirps() == created


def test_get_all_chirps_empty(queries):
    assert queries.get_all_chirps() == []


def test_delete_users_removes_their_chirps(queries):
    user = queries.create_user("walt@example.com", "hash")
    queries.add_chirp("hello", user.id)
    queries.delete_users()
    with pytest.raises(NoRowsError):
        queries.user_and_hash_lookup("walt@example.com")
    assert queries.get_all_chirps() == []


def test_transaction_commits(queries):
    with queries.transaction() as tx:
        tx.create_user("walt@example.com", "hash")
    assert queries.user_and_hash_lookup("walt@example.com").email == "walt@example.com"


def test_transaction_rolls_back_on_error(queries):
    with pytest.raises(RuntimeError):
        with queries.transaction() as tx:
            tx.create_user("walt@example.com", "hash")
            raise RuntimeError("boom")
    with pytest.raises(NoRowsError):
        queries.user_and_hash_lookup("walt@example.com")


def test_data_persists_across_connections(tmp_path):
    path = str(tmp_path / "chirpy.db")
    conn = connect(path)
    q = Queries(conn)
    q.init_schema()
    user = q.create_user("walt@example.com", "hash")
    conn.close()

    conn = connect(path)
    try:
        assert Queries(conn).user_and_hash_lookup("walt@example.com") == user
    finally:
        conn.close()