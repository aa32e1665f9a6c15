import re
from datetime import date, timezone

from marshmallow import ValidationError, fields

# accepted notations -> order of (year, month, day) groups
_DATE_FORMATS = (
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), ("y", "m", "d")),  # ISO
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), ("m", "d", "y")),  # US
    (re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$"), ("d", "m", "y")),  # EU
)

_PASSWORD_RULES = (
    (re.compile(r"[a-zA-Z]"), "Password must contain at least one letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^a-zA-Z0-9]"), "Password must contain at least one special character"),
)

MIN_PASSWORD_LENGTH = 8


def parse_flexible_date(raw) -> date:
    """Parse YYYY-MM-DD, MM/DD/YYYY or DD.MM.YYYY into a date."""
    if not isinstance(raw, str):
        raise ValidationError("Invalid date format")
    value = raw.strip()
    for pattern, order in _DATE_FORMATS:
        match = pattern.match(value)
        if not match:
            continue
        parts = dict(zip(order, (int(g) for g in match.groups())))
        try:
            return date(parts["y"], parts["m"], parts["d"])
        except ValueError:
            raise ValidationError("Invalid date format")
    raise ValidationError("Invalid date format")


def validate_not_future(d: date) -> None:
    if d and d > date.today():
        raise ValidationError("Date of birth cannot be in the future")


def validate_password_strength(value: str) -> None:
    errors = []
    if len(value) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    errors.extend(message for pattern, message in _PASSWORD_RULES if not pattern.search(value))
    if errors:
        raise ValidationError(errors)


class FlexibleDate(fields.Date):
    """Date field that loads any accepted notation and dumps ISO."""

    def _deserialize(self, value, attr, data, **kwargs):
        return parse_flexible_date(value)


class UTCDateTime(fields.DateTime):
    """DateTime that always dumps with an offset.

    SQLite hands back naive values for timestamps stored as UTC, so a naive
    value is read as UTC and an aware one is converted to it.
    """

    def _serialize(self, value, attr, obj, **kwargs):
        if value is not None:
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
        return super()._serialize(value, attr, obj, **kwargs)
