# Overview: Query-string helpers shared by list and dashboard routes.

from flask import request

from .time_utils import parse_date_range
from .validation import MAX_INTEGER, ValidationError


def date_range_args(start_key: str = "start_date", end_key: str = "end_date"):
    """
    Read an inclusive date window from the query string.

    Raises:
        ValidationError: either bound is not an ISO date/datetime
    """
    try:
        return parse_date_range(request.args.get(start_key), request.args.get(end_key))
    except ValueError:
        raise ValidationError({start_key: ["The date range is invalid."]})


def bool_arg(key: str) -> bool | None:
    """None when absent, otherwise the usual true/false spellings."""
    raw = request.args.get(key)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def int_arg(key: str) -> int | None:
    value = request.args.get(key, type=int)
    if value is not None and abs(value) > MAX_INTEGER:
        raise ValidationError({key: [f"The {key} field must not be greater than {MAX_INTEGER}."]})
    return value
