"""Canonical form for optional text and URL fields before persistence."""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

_http_url = TypeAdapter(HttpUrl)

# Optional free-text and URL columns across users and projects
OPTIONAL_TEXT_FIELDS = frozenset(
    {
        "description",
        "demo_url",
        "repo_url",
        "category",
        "cta_url",
        "cta_text",
        "display_name",
        "bio",
        "job_title",
        "location",
        "avatar_url",
        "website",
        "github_url",
        "linkedin_url",
        "twitter_url",
        "resume_url",
        "alt_text",
    }
)


def normalize_optional_fields(
    data: Mapping[str, Any],
    fields: Iterable[str] = OPTIONAL_TEXT_FIELDS,
) -> dict[str, Any]:
    """Strip optional string fields and turn blanks into None.

    Pure: returns a new dict and leaves keys outside ``fields`` untouched.

    >>> normalize_optional_fields({"demo_url": "  ", "title": "x"})
    {'demo_url': None, 'title': 'x'}
    """
    targets = set(fields)
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key in targets and isinstance(value, str):
            value = value.strip() or None
        result[key] = value
    return result


def optional_url(value: str | None) -> str | None:
    """Field validator body: accept an http(s) URL, empty string, or None.

    The value is kept as typed; blanks are turned into None later by
    ``normalize_optional_fields``.
    """
    if value is None or not value.strip():
        return value
    try:
        _http_url.validate_python(value.strip())
    except PydanticValidationError as e:
        raise ValueError("Invalid URL") from e
    return value.strip()
