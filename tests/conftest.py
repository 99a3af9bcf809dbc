"""
Shared test fixtures.
"""

import pytest

from datum.models.record import Record
from datum.settings import reset_settings
from datum.utils.cache import column_cache

# === Test Models ===


class User(Record):
    pass


class Tag(Record):
    __tablename__ = "labels"


class Admin(User):
    pass


TEST_MODELS = [User, Tag, Admin]

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email VARCHAR(255) NOT NULL,
    name VARCHAR(255),
    active BOOLEAN DEFAULT 0,
    created_at DATETIME,
    updated_at DATETIME
);
CREATE TABLE labels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT
);
"""


# === Fixtures ===


@pytest.fixture(autouse=True)
def reset_datum(monkeypatch):
    """Isolate connections, reflected columns and settings between tests."""
    for var in ("DATUM_DATABASE_URL", "DATUM_MIGRATIONS_PATH", "DATUM_MIGRATIONS_TABLE"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()

    yield

    Record.disconnect_all()
    column_cache.invalidate_all()
    for model in TEST_MODELS:
        model.clear_column_cache()
    reset_settings()


@pytest.fixture
def memory_db():
    """Establish an empty in-memory SQLite database on Record."""
    Record.establish_connection("sqlite://memory")
    return Record.connection()


@pytest.fixture
def db(memory_db):
    """An in-memory SQLite database holding the test schema."""
    memory_db.execute_ddl(SCHEMA)
    return memory_db


@pytest.fixture
def user_model(db):
    return User


@pytest.fixture
def tag_model(db):
    return Tag


@pytest.fixture
def admin_model(db):
    return Admin


@pytest.fixture
def users(user_model):
    """Three saved users with ids 1, 2 and 3."""
    created = []
    for email, name, active in [
        ("a@example.org", "A", True),
        ("b@example.org", "B", False),
        ("c@example.org", "C", True),
    ]:
        user = user_model(email=email, name=name, active=active)
        user.save()
        created.append(user)
    return created


@pytest.fixture
def migrations_dir(tmp_path):
    """A migrations directory with two migration pairs."""
    path = tmp_path / "migrations"
    path.mkdir()
    (path / "01_create_users.up.sql").write_text(
        "CREATE TABLE users (\n"
        "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "    email VARCHAR(255) NOT NULL,\n"
        "    name VARCHAR(255),\n"
        "    active BOOLEAN DEFAULT 0,\n"
        "    created_at DATETIME,\n"
        "    updated_at DATETIME\n"
        ");\n"
    )
    (path / "01_create_users.down.sql").write_text("DROP TABLE users;\n")
    (path / "02_create_labels.up.sql").write_text(
        "CREATE TABLE labels (id INTEGER PRIMARY KEY, title TEXT);\n"
        "CREATE INDEX labels_title ON labels (title);\n"
    )
    (path / "02_create_labels.down.sql").write_text("DROP INDEX labels_title;\nDROP TABLE labels;\n")
    return path
