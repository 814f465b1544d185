"""tiktokcomm — Query Parameter Validation.

Every check here runs before any network I/O and raises ValidationError.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Tuple, Union

from tiktokcomm.core.errors import ValidationError

# The ad library holds nothing published before this date.
EARLIEST_START_DATE = date(2022, 10, 1)
MAX_SEARCH_TERM_LENGTH = 50
MAX_COUNT_LIMIT = 50
SEARCH_TYPES = ("exact_phrase", "fuzzy_phrase")

_USERS_SIZE_RE = re.compile(r"^\d+[KMB]$")

DateLike = Union[str, date]


def parse_date(value: DateLike, name: str = "date") -> date:
    """Parse an ISO ``YYYY-MM-DD`` string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{name} must be a date in YYYY-MM-DD format, got {value!r}")


def to_wire_date(value: date) -> str:
    """Render a date in the API's ``YYYYMMDD`` filter format."""
    return value.strftime("%Y%m%d")


def validate_date_range(
    start_date: Optional[DateLike],
    end_date: Optional[DateLike],
    required: bool = True,
) -> Tuple[Optional[date], Optional[date]]:
    """Check start >= 2022-10-01 and end >= start.

    With ``required=False`` either bound may be omitted; bounds that are
    given are still checked.
    """
    if required and (start_date is None or end_date is None):
        raise ValidationError("start_date and end_date are required")

    start = parse_date(start_date, "start_date") if start_date is not None else None
    end = parse_date(end_date, "end_date") if end_date is not None else None

    if start is not None and start < EARLIEST_START_DATE:
        raise ValidationError(
            f"start_date must be on or after {EARLIEST_START_DATE.isoformat()}"
        )
    if start is not None and end is not None and end < start:
        raise ValidationError("end_date must not be before start_date")
    return start, end


def validate_search_term(search_term: Optional[str], required: bool = False) -> Optional[str]:
    if search_term is None or search_term == "":
        if required:
            raise ValidationError("search_term is required")
        return None
    if not isinstance(search_term, str):
        raise ValidationError("search_term must be a string")
    if len(search_term) > MAX_SEARCH_TERM_LENGTH:
        raise ValidationError(
            f"search_term must be {MAX_SEARCH_TERM_LENGTH} characters or less"
        )
    return search_term


def validate_search_type(search_type: str) -> str:
    if search_type not in SEARCH_TYPES:
        raise ValidationError(
            f"search_type must be one of {', '.join(SEARCH_TYPES)}, got {search_type!r}"
        )
    return search_type


def validate_max_count(max_count: int) -> int:
    if isinstance(max_count, bool) or not isinstance(max_count, int):
        raise ValidationError("max_count must be an integer")
    if not 1 <= max_count <= MAX_COUNT_LIMIT:
        raise ValidationError(f"max_count must be between 1 and {MAX_COUNT_LIMIT}")
    return max_count


def validate_max_pages(max_pages: Optional[float], default: int) -> float:
    """Resolve the page ceiling: None → default, ``math.inf`` → unbounded."""
    if max_pages is None:
        return default
    if isinstance(max_pages, bool):
        raise ValidationError("max_pages must be a number")
    if max_pages == math.inf:
        return max_pages
    if not isinstance(max_pages, int) or max_pages < 1:
        raise ValidationError("max_pages must be a positive integer or math.inf")
    return max_pages


def validate_ad_id(ad_id: Any) -> int:
    """Accept an int or a string of digits; bools and everything else fail."""
    if isinstance(ad_id, bool):
        raise ValidationError("ad_id is required and must be numeric")
    if isinstance(ad_id, int):
        return ad_id
    if isinstance(ad_id, str) and ad_id.strip().isdigit():
        return int(ad_id.strip())
    raise ValidationError("ad_id is required and must be numeric")


def validate_users_size(value: Optional[str], name: str) -> Optional[str]:
    """User-count bounds use K/M/B suffixes, e.g. ``10K`` or ``1M``."""
    if value is None:
        return None
    if not isinstance(value, str) or not _USERS_SIZE_RE.match(value):
        raise ValidationError(f"{name} must look like '10K', '1M' or '1B', got {value!r}")
    return value


def as_string_list(values: Optional[Union[str, int, Iterable[Any]]], name: str) -> Optional[List[str]]:
    """Normalise a single id/username or a collection of them to list[str]."""
    if values is None:
        return None
    if isinstance(values, (str, int)) and not isinstance(values, bool):
        items = [str(values)]
    else:
        try:
            items = [str(v) for v in values]
        except TypeError as e:
            raise ValidationError(f"{name} must be a string, int or iterable") from e
    if not items:
        raise ValidationError(f"{name} must not be empty")
    return items
