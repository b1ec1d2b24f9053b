from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

PHONE_RE = re.compile(r"^\d{10}$", re.ASCII)
PINCODE_RE = re.compile(r"^\d{5,7}$", re.ASCII)

CUSTOMER_FIELDS = ("first_name", "last_name", "phone", "city", "state", "pincode", "email", "account_type")
ADDRESS_FIELDS = ("line1", "line2", "city", "state", "pincode", "country")

# Columns the listing may be ordered by. Anything else is rejected, never interpolated.
SORTABLE_COLUMNS = (
    "first_name",
    "last_name",
    "phone",
    "city",
    "state",
    "pincode",
    "email",
    "account_type",
    "created_at",
    "updated_at",
)

_TRUTHY = ("true", "1", "yes", "on")
_UINT_RE = re.compile(r"^\d+$", re.ASCII)

DEFAULT_PAGE_SIZE = 10


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def clean_optional(value: Any) -> str | None:
    """Trimmed string, or None for missing/blank values."""
    return _text(value) or None


def validate_customer_payload(payload: Mapping[str, Any], require_all: bool = True) -> list[str]:
    """
    Return the names of invalid fields (empty list when the payload is valid).

    With require_all=False (updates) a field is only checked when its key is present.
    pincode is optional in both modes.
    """
    errors: list[str] = []

    def _checked(field: str) -> bool:
        return require_all or field in payload

    if _checked("first_name") and not _text(payload.get("first_name")):
        errors.append("first_name")
    if _checked("last_name") and not _text(payload.get("last_name")):
        errors.append("last_name")
    if _checked("phone") and not PHONE_RE.match(_text(payload.get("phone"))):
        errors.append("phone")
    pincode = _text(payload.get("pincode"))
    if pincode and not PINCODE_RE.match(pincode):
        errors.append("pincode")
    return errors


def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).lower() in _TRUTHY


@dataclass(frozen=True)
class ListParams:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_dir: str = "DESC"
    only_multiple_addresses: bool = False


def _positive_int(raw: str | None, default: int) -> int | None:
    raw = _text(raw)
    if not raw:
        return default
    if not _UINT_RE.match(raw):
        return None
    value = int(raw)
    return value if value >= 1 else None


def parse_list_params(args: Mapping[str, str], *, max_page_size: int) -> tuple[ListParams, list[str]]:
    """Parse customer-listing query parameters. Returns (params, invalid field names)."""
    errors: list[str] = []

    page = _positive_int(args.get("page"), 1)
    if page is None:
        errors.append("page")
    default_size = min(DEFAULT_PAGE_SIZE, max_page_size)
    page_size = _positive_int(args.get("pageSize"), default_size)
    if page_size is None or page_size > max_page_size:
        errors.append("pageSize")

    sort_by = _text(args.get("sortBy")) or "created_at"
    if sort_by not in SORTABLE_COLUMNS:
        errors.append("sortBy")
    sort_dir = (_text(args.get("sortDir")) or "DESC").upper()
    if sort_dir not in ("ASC", "DESC"):
        errors.append("sortDir")

    params = ListParams(
        page=page or 1,
        page_size=page_size or default_size,
        city=clean_optional(args.get("city")),
        state=clean_optional(args.get("state")),
        pincode=clean_optional(args.get("pincode")),
        search=clean_optional(args.get("search")),
        sort_by=sort_by,
        sort_dir=sort_dir,
        only_multiple_addresses=is_truthy(args.get("onlyMultipleAddresses")),
    )
    return params, errors
