"""Input validation at the entry points (CLI, HTTP, Council methods)."""

from collections.abc import Sequence


class ValidationError(ValueError):
    """Raised when caller input is rejected. Message is user-facing."""


def validate_not_empty(value: str | None, field_name: str = "input") -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} cannot be empty")
    return value


def validate_options(options: Sequence[str]) -> list[str]:
    """Strip options, drop blanks, and require at least two."""
    cleaned = [opt.strip() for opt in options if opt and opt.strip()]
    if len(cleaned) < 2:
        raise ValidationError("At least 2 options are required")
    return cleaned


def validate_range(value: int, field_name: str, minimum: int, maximum: int) -> int:
    if value < minimum or value > maximum:
        raise ValidationError(f"{field_name} must be between {minimum} and {maximum} (got {value})")
    return value


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated CLI value, trimming blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
