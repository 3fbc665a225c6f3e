"""
Predicate fragments

Turns a single column/operator/value filter into a SQL fragment plus bound
parameters. Values are always appended to the shared parameter list and
referenced as asyncpg positional parameters ($1, $2, ...).
"""

import re
from dataclasses import dataclass
from typing import Any

# Operators that compare a column against one bound value
COMPARISON_OPERATORS = {
    "eq": "=",
    "neq": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

PATTERN_OPERATORS = {
    "like": "LIKE",
    "ilike": "ILIKE",
}

# IS only accepts literal keywords, never a bound value
IS_KEYWORDS = {
    None: "NULL",
    True: "TRUE",
    False: "FALSE",
}

VALID_OPERATORS = set(COMPARISON_OPERATORS) | set(PATTERN_OPERATORS) | {"in", "is"}

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class QueryBuildError(ValueError):
    """Raised when a query cannot be turned into safe SQL."""


@dataclass(frozen=True)
class Predicate:
    """One filter condition. All predicates of a query are ANDed."""
    column: str
    operator: str
    value: Any = None


def is_identifier(name: Any) -> bool:
    return isinstance(name, str) and bool(_IDENTIFIER_RE.match(name))


def quote_identifier(name: str) -> str:
    """Validate and double-quote a table, column or function name."""
    if not is_identifier(name):
        raise QueryBuildError(f"Invalid identifier '{name}'")
    return f'"{name}"'


def build_predicate(predicate: Predicate, params: list) -> str:
    """
    Build the SQL fragment for one predicate.

    Appends any bound values to `params` and returns a condition such as
    '"title" ILIKE $3'.
    """
    col = quote_identifier(predicate.column)
    op = predicate.operator
    value = predicate.value

    if op in COMPARISON_OPERATORS:
        params.append(value)
        return f"{col} {COMPARISON_OPERATORS[op]} ${len(params)}"

    if op in PATTERN_OPERATORS:
        if not isinstance(value, str):
            raise QueryBuildError(f"'{op}' on '{predicate.column}' requires a string pattern")
        params.append(value)
        return f"{col} {PATTERN_OPERATORS[op]} ${len(params)}"

    if op == "in":
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
            raise QueryBuildError(f"'in' on '{predicate.column}' requires a list of values")
        params.append(list(value))
        return f"{col} = ANY(${len(params)})"

    if op == "is":
        if value is None or isinstance(value, bool):
            return f"{col} IS {IS_KEYWORDS[value]}"
        raise QueryBuildError(f"'is' on '{predicate.column}' only accepts null, true or false")

    raise QueryBuildError(f"Unknown operator '{op}'")
