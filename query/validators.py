"""
Input Validators

Validates the JSON body of POST /api/database/query and turns it into a
DatabaseQuery, returning helpful structured errors otherwise.

Body shape:
    {
        "table": "journal_entries",
        "operation": "SELECT",                 # SELECT | INSERT | UPDATE | DELETE
        "columns": "id, title",                # or ["id", "title"]; default "*"
        "filters": [{"column": "title", "operator": "ilike", "value": "%loch%"}],
        "where": {"mood": "happy", "miles_traveled": {"gte": 10}, "date_lt": "2024-01-01"},
        "order": {"column": "date", "ascending": false},   # or "date_desc"
        "limit": 10,
        "rangeFrom": 0, "rangeTo": 9,
        "data": {...} | [{...}, ...],          # INSERT / UPDATE payload
        "count": "exact", "head": false, "single": false
    }

`filters` and `where` may be combined; all predicates are AND-ed in the
order given (filters first).
"""

from typing import Any, Optional

from .descriptor import DatabaseQuery, Operation
from .filters import VALID_OPERATORS, QueryBuildError, is_identifier

VALID_OPERATIONS = {op.value for op in Operation}
MAX_LIMIT = 1000


def _error(code: str, path: str, message: str, **extra) -> dict:
    """Build a structured validation error."""
    err = {"code": code, "path": path, "message": message}
    err.update(extra)
    return err


def _is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _collect_predicates(body: dict, errors: list) -> list[tuple[str, str, Any]]:
    predicates = []

    filters = body.get("filters") or []
    if not isinstance(filters, list):
        errors.append(_error("INVALID_VALUE", "filters", "filters must be a list"))
        filters = []

    for index, item in enumerate(filters):
        path = f"filters[{index}]"
        if not isinstance(item, dict):
            errors.append(_error("INVALID_VALUE", path, "Each filter must be an object"))
            continue
        column = item.get("column")
        operator = item.get("operator", "eq")
        if not is_identifier(column):
            errors.append(_error("INVALID_FIELD", f"{path}.column", f"Invalid column '{column}'"))
            continue
        if operator not in VALID_OPERATORS:
            errors.append(_error(
                "INVALID_OPERATOR", f"{path}.operator",
                f"Invalid operator '{operator}'",
                validOperators=sorted(VALID_OPERATORS),
            ))
            continue
        predicates.append((column, operator, item.get("value")))

    where = body.get("where") or {}
    if not isinstance(where, dict):
        errors.append(_error("INVALID_VALUE", "where", "where must be an object"))
        where = {}

    for key, condition in where.items():
        column = key
        if not isinstance(condition, dict):
            # Legacy "<column>_<operator>" keys, e.g. {"title_ilike": "%loch%"}
            prefix, _, suffix = str(key).rpartition("_")
            if prefix and suffix in VALID_OPERATORS:
                column = prefix
                condition = {suffix: condition}
            else:
                condition = {"eq": condition}
        if not is_identifier(column):
            errors.append(_error("INVALID_FIELD", f"where.{key}", f"Invalid column '{column}'"))
            continue
        for operator, value in condition.items():
            if operator not in VALID_OPERATORS:
                errors.append(_error(
                    "INVALID_OPERATOR", f"where.{column}.{operator}",
                    f"Invalid operator '{operator}'",
                    validOperators=sorted(VALID_OPERATORS),
                ))
                continue
            predicates.append((column, operator, value))

    return predicates


def _parse_order(order: Any, errors: list) -> Optional[tuple[str, bool]]:
    if order is None:
        return None
    if isinstance(order, str):
        column, _, direction = order.rpartition("_")
        if direction.lower() not in ("asc", "desc") or not column:
            column, direction = order, "asc"
        ascending = direction.lower() != "desc"
    elif isinstance(order, dict):
        column = order.get("column")
        ascending = order.get("ascending", True) is not False
    else:
        errors.append(_error("INVALID_VALUE", "order", "order must be an object or 'column_dir' string"))
        return None

    if not is_identifier(column):
        errors.append(_error("INVALID_FIELD", "order", f"Cannot order by '{column}'"))
        return None
    return column, ascending


def validate_query_request(body: Any) -> tuple[Optional[DatabaseQuery], Optional[dict]]:
    """
    Validate a query request body.
    Returns (query, None) if valid, (None, error dict) otherwise.
    """
    if not isinstance(body, dict):
        return None, {"error": True, "code": "VALIDATION_ERROR",
                      "errors": [_error("INVALID_VALUE", "", "Request body must be an object")]}

    errors = []

    table = body.get("table")
    operation = str(body.get("operation", "")).upper()
    if not table:
        errors.append(_error("MISSING_TABLE", "table", "Table is required"))
    elif not is_identifier(table):
        errors.append(_error("INVALID_TABLE", "table", f"Invalid table name '{table}'"))
    if not operation:
        errors.append(_error("MISSING_OPERATION", "operation", "Operation is required",
                             validOperations=sorted(VALID_OPERATIONS)))
    elif operation not in VALID_OPERATIONS:
        errors.append(_error("INVALID_OPERATION", "operation", f"Invalid operation '{operation}'",
                             validOperations=sorted(VALID_OPERATIONS)))

    predicates = _collect_predicates(body, errors)
    ordering = _parse_order(body.get("order"), errors)

    limit = body.get("limit")
    if limit is not None:
        if not _is_non_negative_int(limit):
            errors.append(_error("INVALID_VALUE", "limit", "Limit must be a non-negative integer"))
        elif limit > MAX_LIMIT:
            errors.append(_error("INVALID_VALUE", "limit", f"Maximum limit is {MAX_LIMIT}"))

    range_from = body.get("rangeFrom")
    range_to = body.get("rangeTo")
    if (range_from is None) != (range_to is None):
        errors.append(_error("INVALID_VALUE", "rangeFrom", "rangeFrom and rangeTo must be given together"))
    elif range_from is not None:
        if not (_is_non_negative_int(range_from) and _is_non_negative_int(range_to)):
            errors.append(_error("INVALID_VALUE", "rangeFrom", "Range bounds must be non-negative integers"))
        elif range_to < range_from:
            errors.append(_error("INVALID_VALUE", "rangeTo", "rangeTo must not be before rangeFrom"))

    count = body.get("count")
    if count is True:
        count = "exact"
    elif count is False:
        count = None
    if count is not None and count not in ("exact", "estimated", "planned"):
        errors.append(_error("INVALID_VALUE", "count", f"Unknown count mode '{count}'"))
    elif operation and operation != "SELECT" and (count is not None or body.get("head")):
        errors.append(_error("INVALID_VALUE", "count", f"count and head only apply to SELECT, not {operation}"))

    columns = body.get("columns")
    if isinstance(columns, list) and columns and all(isinstance(c, str) for c in columns):
        columns = ", ".join(columns)
    elif columns is not None and not isinstance(columns, str):
        errors.append(_error("INVALID_VALUE", "columns",
                             "columns must be a comma-separated string or a list of column names"))

    data = body.get("data")
    if operation in ("INSERT", "UPDATE") and data is None:
        errors.append(_error("MISSING_DATA", "data", f"{operation} requires data"))
    if operation == "UPDATE" and data is not None and not isinstance(data, dict):
        errors.append(_error("INVALID_VALUE", "data", "UPDATE data must be an object"))
    if operation == "INSERT" and data is not None and not isinstance(data, (dict, list)):
        errors.append(_error("INVALID_VALUE", "data", "INSERT data must be an object or a list of objects"))
    if operation in ("UPDATE", "DELETE") and not predicates and not errors:
        errors.append(_error("MISSING_FILTER", "filters", f"{operation} requires at least one filter"))

    if errors:
        return None, {"error": True, "code": "VALIDATION_ERROR", "errors": errors}

    try:
        query = DatabaseQuery(
            table,
            Operation(operation),
            columns=columns or "*",
            payload=data if operation in ("INSERT", "UPDATE") else None,
        )
        for column, operator, value in predicates:
            query = query.filter(column, operator, value)
        if ordering is not None:
            query = query.order(*ordering)
        if limit is not None:
            query = query.limit(limit)
        if range_from is not None:
            query = query.range(range_from, range_to)
        if count is not None or body.get("head"):
            query = query.select(query.columns, count=count, head=bool(body.get("head")))
        if body.get("single"):
            query = query.single()
    except QueryBuildError as e:
        return None, {"error": True, "code": "VALIDATION_ERROR",
                      "errors": [_error("INVALID_QUERY", "", str(e))]}

    return query, None


def validate_rpc_request(body: Any) -> Optional[dict]:
    """
    Validate input for POST /api/database/rpc.
    Returns error dict if invalid, None if valid.
    """
    errors = []
    if not isinstance(body, dict):
        errors.append(_error("INVALID_VALUE", "", "Request body must be an object"))
    else:
        function_name = body.get("functionName")
        if not function_name:
            errors.append(_error("MISSING_FUNCTION", "functionName", "Function name is required"))
        elif not is_identifier(function_name):
            errors.append(_error("INVALID_FUNCTION", "functionName", f"Invalid function name '{function_name}'"))

        params = body.get("params")
        if params is not None:
            if not isinstance(params, dict):
                errors.append(_error("INVALID_VALUE", "params", "params must be an object"))
            else:
                for name in params:
                    if not is_identifier(name):
                        errors.append(_error("INVALID_FIELD", f"params.{name}", f"Invalid parameter name '{name}'"))

    if errors:
        return {"error": True, "code": "VALIDATION_ERROR", "errors": errors}
    return None
