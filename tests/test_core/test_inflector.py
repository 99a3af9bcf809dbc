"""Tests for word inflection."""

import pytest

from datum.core.inflector import camelize, pluralize, singularize, snakefy

CASES = {
    "box": "boxes",
    "search": "searches",
    "process": "processes",
    "half": "halves",
    "life": "lives",
    "basis": "bases",
    "analysis": "analyses",
    "datum": "data",
    "medium": "media",
    "person": "people",
    "salesperson": "salespeople",
    "child": "children",
    "birb": "birbs",
}


class TestInflector:
    """Tests for pluralize / singularize."""

    @pytest.mark.parametrize("singular,plural", CASES.items())
    def test_pluralize(self, singular, plural):
        assert pluralize(singular) == plural

    @pytest.mark.parametrize("singular,plural", CASES.items())
    def test_singularize(self, singular, plural):
        assert singularize(plural) == singular

    def test_query_becomes_queries(self):
        assert pluralize("query") == "queries"
        assert singularize("queries") == "query"


class TestCaseConversion:
    """Tests for snakefy / camelize."""

    def test_snakefy(self):
        assert snakefy("UserProfiles") == "user_profiles"
        assert snakefy("Users") == "users"

    def test_camelize(self):
        assert camelize("user_profile") == "UserProfile"
