"""Input normalization and validation.

Everything that arrives from a caller passes through here before it reaches a
service: free text is trimmed and whitespace-collapsed, comma-separated lists
are split, tags are lowercased and deduplicated, and enum-like strings are
parsed into the closed types from :mod:`taskboard.models`. Failures raise
:class:`~taskboard.exceptions.ValidationError`.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Type, TypeVar, Union

from .exceptions import ValidationError
from .models import SortKey, SortOrder, TaskPriority, TaskStatus

E = TypeVar("E", bound=Enum)

PROJECT_NAME_MAX = 100
PROJECT_DESCRIPTION_MAX = 500
TASK_TITLE_MAX = 200
TASK_TEXT_MAX = 2000
TAG_MAX = 50
IDENTIFIER_MAX = 100
SEARCH_QUERY_MAX = 500
COMMA_LIST_MAX = 5000

_WHITESPACE = re.compile(r"\s+")
_PROJECT_NAME = re.compile(r"^[a-zA-Z0-9\s\-_]+$")
_IDENTIFIER = re.compile(r"^[a-zA-Z0-9\-_]+$")

_SORT_KEY_ALIASES = {
    "created_at": SortKey.CREATED_AT,
    "createdat": SortKey.CREATED_AT,
    "due_date": SortKey.DUE_DATE,
    "duedate": SortKey.DUE_DATE,
}


def sanitize_string(value: str) -> str:
    """Trim and collapse internal runs of whitespace to single spaces."""
    return _WHITESPACE.sub(" ", value.strip())


def _optional_text(value: Optional[str], field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field, value=value)
    cleaned = sanitize_string(value)
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{field} cannot exceed {max_length} characters", field=field
        )
    return cleaned or None


def _required_text(value: Optional[str], field: str, label: str, max_length: int) -> str:
    cleaned = _optional_text(value, field, max_length)
    if not cleaned:
        raise ValidationError(f"{label} cannot be empty", field=field, value=value)
    return cleaned


def normalize_project_name(name: Optional[str]) -> str:
    cleaned = _required_text(name, "name", "Project name", PROJECT_NAME_MAX)
    if not _PROJECT_NAME.match(cleaned):
        raise ValidationError(
            "Project name can only contain letters, numbers, spaces, hyphens, and underscores",
            field="name",
            value=cleaned,
        )
    return cleaned


def normalize_project_description(description: Optional[str]) -> Optional[str]:
    return _optional_text(description, "description", PROJECT_DESCRIPTION_MAX)


def normalize_task_title(title: Optional[str]) -> str:
    return _required_text(title, "title", "Task title", TASK_TITLE_MAX)


def normalize_task_description(description: Optional[str]) -> Optional[str]:
    return _optional_text(description, "description", TASK_TEXT_MAX)


def normalize_remarks(remarks: Optional[str]) -> Optional[str]:
    return _optional_text(remarks, "remarks", TASK_TEXT_MAX)


def normalize_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """Parse tags given as a comma-separated string or an iterable.

    Tags are sanitized and lowercased; empty tags and tags longer than
    ``TAG_MAX`` are dropped, and duplicates are removed keeping first-seen
    order.
    """
    if tags is None:
        return []
    parts = tags.split(",") if isinstance(tags, str) else list(tags)

    result: List[str] = []
    seen = set()
    for part in parts:
        if not isinstance(part, str):
            raise ValidationError("Tags must be strings", field="tags", value=part)
        tag = sanitize_string(part).lower()
        if not tag or len(tag) > TAG_MAX or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
    return result


def parse_comma_list(value: Union[str, Iterable[str], None], field: str) -> List[str]:
    """Split a comma-separated value into sanitized, non-empty items.

    Raises:
        ValidationError: If no item survives sanitization.
    """
    if value is None:
        raise ValidationError(f"{field} cannot be empty", field=field)
    if isinstance(value, str):
        if len(value) > COMMA_LIST_MAX:
            raise ValidationError(f"{field} is too long", field=field)
        parts = value.split(",")
    else:
        parts = list(value)
    items = [sanitize_string(p) for p in parts if isinstance(p, str)]
    items = [item for item in items if item]
    if not items:
        raise ValidationError(
            f"No valid {field} provided after sanitization", field=field, value=value
        )
    return items


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware datetime (naive values are UTC).

    Raises:
        ValueError: If ``value`` is not a valid ISO-8601 date or datetime.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid_iso_date(value: str) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parse_datetime(value)
    except ValueError:
        return False
    return True


def validate_due_date(value: Optional[str]) -> Optional[str]:
    """Check a due date; the caller's string is kept as given (trimmed)."""
    if value is None:
        return None
    if not is_valid_iso_date(value):
        raise ValidationError(
            "Due date must be a valid ISO 8601 date string (e.g., '2025-12-01T10:00:00Z')",
            field="due_date",
            value=value,
        )
    return value.strip()


def _parse_enum(enum_cls: Type[E], value, field: str, aliases: Optional[dict] = None) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        token = value.strip()
        for member in enum_cls:
            if member.value.lower() == token.lower():
                return member
        if aliases and token.lower() in aliases:
            return aliases[token.lower()]
    valid = ", ".join(f"'{m.value}'" for m in enum_cls)
    raise ValidationError(
        f"Unsupported {field} {value!r}. Valid values: {valid}",
        field=field,
        value=value,
    )


def parse_status(value: Union[str, TaskStatus]) -> TaskStatus:
    return _parse_enum(TaskStatus, value, "status")


def parse_priority(value: Union[str, TaskPriority]) -> TaskPriority:
    return _parse_enum(TaskPriority, value, "priority")


def parse_sort_by(value: Union[str, SortKey, None]) -> SortKey:
    if value is None:
        return SortKey.CREATED_AT
    return _parse_enum(SortKey, value, "sort_by", _SORT_KEY_ALIASES)


def parse_order(value: Union[str, SortOrder, None]) -> SortOrder:
    if value is None:
        return SortOrder.ASC
    return _parse_enum(SortOrder, value, "order")


def validate_identifier(value: Optional[str], field: str = "id") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be empty", field=field, value=value)
    token = value.strip()
    if len(token) > IDENTIFIER_MAX:
        raise ValidationError(f"{field} is too long", field=field)
    if not _IDENTIFIER.match(token):
        raise ValidationError(
            f"{field} can only contain letters, numbers, hyphens, and underscores",
            field=field,
            value=token,
        )
    return token


def sanitize_search_query(query: Optional[str]) -> Optional[str]:
    return _optional_text(query, "query", SEARCH_QUERY_MAX)
