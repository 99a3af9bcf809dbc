"""
Filter and ordering expressions passed from the query builder to adapters.

A filter is either a raw SQL fragment with positional bind arguments, or a
map of equality conditions. Adapters render both into a WHERE clause using
their own placeholder syntax.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from datum.core.errors import InvalidArgumentError, InvalidStatement


class OrderDirection(str, Enum):
    """Sort order direction."""

    ASC = "asc"
    DESC = "desc"


class SqlFilter(BaseModel):
    """
    A raw SQL fragment inserted verbatim into a WHERE clause.

    Example:
        SqlFilter(sql="active = ? OR email = ?", args=[True, "a@example.org"])
    """

    kind: Literal["sql"] = "sql"
    sql: str
    args: tuple[Any, ...] = ()

    model_config = {"frozen": True}

    @field_validator("sql")
    @classmethod
    def validate_sql(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("SQL fragment cannot be empty")
        return v


class ConditionsFilter(BaseModel):
    """
    A conjunction of equality tests.

    A list or tuple value is rendered as an IN (...) test.
    """

    kind: Literal["conditions"] = "conditions"
    conditions: dict[str, Any]

    model_config = {"frozen": True}

    @field_validator("conditions")
    @classmethod
    def validate_conditions(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not v:
            raise ValueError("Conditions cannot be empty")
        for key in v:
            if not key or any(char in key for char in [";", "--", "/*", "*/", "'", '"', " "]):
                raise ValueError(f"Invalid column name in conditions: {key!r}")
        return v


Filter = Annotated[SqlFilter | ConditionsFilter, Field(discriminator="kind")]

OrderMap = dict[str, OrderDirection]


def build_filter(args: tuple[Any, ...], kwargs: dict[str, Any]) -> SqlFilter | ConditionsFilter | None:
    """
    Build a filter from the positional and keyword arguments of `where`.

    Positional arguments are a SQL fragment followed by its bind arguments;
    keyword arguments are equality conditions. Supplying both is an error.
    """
    if args and kwargs:
        raise InvalidArgumentError("where supports either arguments, or keyword arguments; not both")
    if not args and not kwargs:
        return None

    if args:
        if any(isinstance(a, dict) for a in args):
            raise InvalidArgumentError("where supports either arguments, or keyword arguments; not both")
        sql = args[0]
        if not isinstance(sql, str):
            raise InvalidStatement(f"Expected a SQL fragment, got {type(sql).__name__}")
        return _validated(SqlFilter, sql=sql, args=tuple(args[1:]))

    return _validated(ConditionsFilter, conditions=dict(kwargs))


def _validated(model: type[BaseModel], **fields: Any) -> Any:
    try:
        return model(**fields)
    except ValidationError as e:
        error = e.errors()[0]
        reason = error.get("ctx", {}).get("error", error["msg"])
        raise InvalidStatement(str(reason), details={"errors": e.errors(include_url=False, include_context=False)}) from e


def normalize_order(columns: dict[str, Any]) -> OrderMap | None:
    """Normalize an ordering map, accepting enum members or 'asc'/'desc' strings."""
    if not columns:
        return None
    order: OrderMap = {}
    for name, direction in columns.items():
        try:
            order[name] = OrderDirection(str(getattr(direction, "value", direction)).lower())
        except ValueError as e:
            raise InvalidArgumentError(
                f"Invalid direction for '{name}': {direction!r}; expected 'asc' or 'desc'"
            ) from e
    return order
