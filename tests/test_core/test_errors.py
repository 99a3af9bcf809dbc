"""Tests for the error taxonomy."""

from datum.core.errors import (
    AsymmetricalMigration,
    ConnectionNotEstablished,
    DatumError,
    InvalidArgumentError,
    MigrationDirectoryNotSet,
    UnavailableAdapter,
    UnsupportedValue,
    find_by_not_found,
    find_by_sql_not_found,
    find_not_found,
    generic_not_found,
)


class TestErrors:
    """Tests for error codes and serialization."""

    def test_base_error_to_dict(self):
        error = DatumError("boom", details={"a": 1})

        assert error.to_dict() == {"code": "DATUM_ERROR", "message": "boom", "details": {"a": 1}}
        assert str(error) == "boom"

    def test_connection_not_established(self):
        error = ConnectionNotEstablished("User")

        assert error.code == "CONNECTION_NOT_ESTABLISHED"
        assert "User" in error.message

    def test_unavailable_adapter(self):
        error = UnavailableAdapter("oracle", ["mysql", "sqlite"])

        assert error.code == "UNAVAILABLE_ADAPTER"
        assert error.details == {"dialect": "oracle", "available": ["mysql", "sqlite"]}

    def test_invalid_argument_is_value_error(self):
        assert isinstance(InvalidArgumentError("bad"), ValueError)

    def test_unsupported_value(self):
        error = UnsupportedValue("meta", {"a": 1})
        assert error.details["type"] == "dict"

    def test_migration_errors(self):
        assert MigrationDirectoryNotSet().message == "Migration directory not set"
        assert "01_create_users is asymmetrical" in AsymmetricalMigration("01", "create_users").message


class TestNotFoundMessages:
    """Tests for RecordNotFound message builders."""

    def test_find_single(self):
        assert find_not_found("User", "id", [2], 0).message == "Could not find User with id='2'"

    def test_find_multiple(self):
        error = find_not_found("User", "id", [1, 2, 3], 2)
        assert error.message == (
            "Could not find all User records with id=(1, 2, 3) (obtained 2 results, but expected 3)"
        )

    def test_find_by(self):
        error = find_by_not_found("User", {"email": "a@example.org", "active": True, "id": [1, 2]})
        assert error.message == (
            "Could not find User with 'email' = \"a@example.org\", 'active' = 't', 'id' IN (1, 2)"
        )

    def test_find_by_sql(self):
        error = find_by_sql_not_found("User", "id > ?", (3,))
        assert error.message == "Could not find User with 'id > ?' and arguments (3)"

    def test_generic(self):
        error = generic_not_found("User")

        assert error.message == "Could not find User"
        assert error.code == "RECORD_NOT_FOUND"
