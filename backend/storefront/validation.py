# Overview: Field-level request validation producing a structured error map.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

from .time_utils import parse_iso_datetime


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
MAX_CENTS = 999_999_999

# Largest value an INTEGER column holds on every supported backend
MAX_INTEGER = 2_147_483_647
MAX_QUANTITY = MAX_INTEGER


class ValidationError(ValueError):
    """422-level input problem. Carries {field: [messages]}."""

    def __init__(self, errors: dict[str, list[str]] | str):
        if isinstance(errors, str):
            errors = {"payload": [errors]}
        self.errors = errors
        super().__init__("; ".join(f"{k}: {', '.join(v)}" for k, v in errors.items()))


@dataclass(frozen=True)
class Field:
    """
    One accepted request field.

    kind: "int", "str", "bool", "dict", "list", "date" or "datetime"
    """
    kind: str
    required: bool = False
    nullable: bool = True
    min_value: int | None = None
    max_value: int | None = None
    max_length: int | None = None
    choices: tuple | None = None
    confirmed: bool = False


def _coerce_int(key: str, value: Any) -> int:
    # bool is a subclass of int and is never a valid integer input
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"The {key} field must be an integer.")
        if "e" in stripped.lower():
            raise ValueError(f"The {key} field must be a plain integer.")
        if "." in stripped:
            raise ValueError(f"The {key} field must be an integer.")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"The {key} field must be an integer.")
    if isinstance(value, float):
        raise ValueError(f"The {key} field must be an integer.")
    raise ValueError(f"The {key} field must be an integer.")


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise ValueError(f"The {key} field must be true or false.")


def _coerce(key: str, field: Field, value: Any) -> Any:
    if field.kind == "int":
        return _coerce_int(key, value)
    if field.kind == "bool":
        return _coerce_bool(key, value)
    if field.kind == "str":
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValueError(f"The {key} field must be a string.")
        return str(value).strip()
    if field.kind == "dict":
        if not isinstance(value, dict):
            raise ValueError(f"The {key} field must be an object.")
        return value
    if field.kind == "list":
        if not isinstance(value, list):
            raise ValueError(f"The {key} field must be an array.")
        return value
    if field.kind in ("date", "datetime"):
        if isinstance(value, datetime):
            return value.date() if field.kind == "date" else value
        if isinstance(value, str):
            try:
                parsed = parse_iso_datetime(value)
            except ValueError:
                parsed = None
            if parsed is None:
                raise ValueError(f"The {key} field must be a valid date.")
            return parsed.date() if field.kind == "date" else parsed
        if isinstance(value, date) and field.kind == "date":
            return value
        raise ValueError(f"The {key} field must be a valid date.")
    return value


def validate_payload(payload: Any, rules: dict[str, Field], *, partial: bool = False) -> dict:
    """
    Validate + normalize an incoming JSON object against `rules`.

    Unknown keys are ignored. With partial=True, `required` is only enforced
    for keys that are present (PUT/PATCH "sometimes" semantics).
    Returns a cleaned dict containing only the keys that were supplied.
    Raises ValidationError with every failing field collected.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: dict[str, list[str]] = {}
    cleaned: dict = {}

    for key, field in rules.items():
        if key not in payload:
            if field.required and not partial:
                errors.setdefault(key, []).append(f"The {key} field is required.")
            continue

        raw = payload[key]
        if raw is None or (isinstance(raw, str) and raw.strip() == "" and field.kind != "str"):
            if field.required or not field.nullable:
                errors.setdefault(key, []).append(f"The {key} field is required.")
            else:
                cleaned[key] = None
            continue

        try:
            value = _coerce(key, field, raw)
        except ValueError as exc:
            errors.setdefault(key, []).append(str(exc))
            continue

        if field.kind == "str" and value == "" and field.required:
            errors.setdefault(key, []).append(f"The {key} field is required.")
            continue

        if field.kind == "int":
            if field.min_value is not None and value < field.min_value:
                errors.setdefault(key, []).append(f"The {key} field must be at least {field.min_value}.")
                continue
            upper = field.max_value if field.max_value is not None else MAX_INTEGER
            if value > upper:
                errors.setdefault(key, []).append(f"The {key} field must not be greater than {upper}.")
                continue

        if field.max_length is not None and isinstance(value, str) and len(value) > field.max_length:
            errors.setdefault(key, []).append(
                f"The {key} field must not be greater than {field.max_length} characters."
            )
            continue

        if field.choices is not None and value not in field.choices:
            errors.setdefault(key, []).append(f"The selected {key} is invalid.")
            continue

        if field.confirmed and payload.get(f"{key}_confirmation") != raw:
            errors.setdefault(key, []).append(f"The {key} field confirmation does not match.")
            continue

        cleaned[key] = value

    if errors:
        raise ValidationError(errors)

    return cleaned


def require_int_list(payload: dict, key: str) -> list[int]:
    """Validate a required non-empty list of integer ids (bulk endpoints)."""
    values = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(values, list) or not values:
        raise ValidationError({key: [f"The {key} field is required."]})
    try:
        ids = [_coerce_int(key, v) for v in values]
    except ValueError as exc:
        raise ValidationError({key: [str(exc)]})
    if any(v < 1 or v > MAX_INTEGER for v in ids):
        raise ValidationError({key: [f"The selected {key} is invalid."]})
    return ids


def errors_for(fields: Iterable[str], message: str) -> dict[str, list[str]]:
    return {f: [message] for f in fields}
