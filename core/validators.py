"""
Input validation functions for record payloads and API parameters.

All validators raise ValidationError on invalid input.

Two levels of record validation exist:
- require_fields: what the API enforces (presence and JSON type only)
- validate_form: the data-entry form rules (non-empty text, length
  ceilings, non-negative integers, ISO dispatch date)
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from core.exceptions import ValidationError
from core.models import Domain, FieldSpec


# Maximum allowed values
MAX_LIMIT = 100
MAX_DATE_RANGE_DAYS = 365


def _check_type(spec: FieldSpec, value: Any) -> None:
    if spec.kind == "int":
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(spec.name, "Must be an integer", value)
    elif not isinstance(value, str):
        raise ValidationError(spec.name, "Must be a string", value)


def require_fields(domain: Domain, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Check that every field of the domain is present with the right type.

    Extra keys are dropped. No range or length checks are made here.

    Returns:
        Dict with exactly the domain's fields, in column order

    Raises:
        ValidationError: If a field is missing, null or has the wrong type
    """
    cleaned = {}
    for spec in domain.fields:
        if spec.name not in payload or payload[spec.name] is None:
            raise ValidationError(spec.name, "Field is required")
        _check_type(spec, payload[spec.name])
        cleaned[spec.name] = payload[spec.name]
    return cleaned


def validate_form(domain: Domain, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Apply the data-entry form rules to a record payload.

    Args:
        domain: Record domain
        payload: Field values as entered

    Returns:
        Cleaned payload (text values stripped)

    Raises:
        ValidationError: On the first field that breaks a rule
    """
    cleaned = require_fields(domain, payload)

    for spec in domain.fields:
        value = cleaned[spec.name]

        if spec.kind == "int":
            if value < spec.min_value:
                raise ValidationError(
                    spec.name,
                    f"Must be {spec.min_value} or greater",
                    value
                )
            continue

        value = value.strip()
        if not value:
            raise ValidationError(spec.name, "Field is required")

        if spec.max_length and len(value) > spec.max_length:
            raise ValidationError(
                spec.name,
                f"Must be at most {spec.max_length} characters",
                len(value)
            )

        if spec.kind == "date":
            try:
                datetime.strptime(value, "%Y-%m-%d")
            except ValueError:
                raise ValidationError(spec.name, "Invalid date format. Expected %Y-%m-%d", value)

        cleaned[spec.name] = value

    return cleaned


def validate_limit(
    value: Optional[int],
    field: str = "limit",
    min_value: int = 1,
    max_value: int = MAX_LIMIT
) -> int:
    """
    Validate a row limit.

    Raises:
        ValidationError: If limit is out of range
    """
    if value is None:
        raise ValidationError(field, "Limit is required")

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "Must be an integer", value)

    if value < min_value or value > max_value:
        raise ValidationError(
            field,
            f"Must be between {min_value} and {max_value}",
            value
        )

    return value


def validate_date_range_days(value: Optional[int], field: str = "days") -> int:
    """Validate the dashboard look-back window in days (1-365)."""
    return validate_limit(value, field=field, min_value=1, max_value=MAX_DATE_RANGE_DAYS)
