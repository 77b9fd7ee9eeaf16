from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from app.time_utils import as_naive_utc, parse_iso_datetime


# Maximum price: $9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URLISH_RE = re.compile(r"^https?://", re.IGNORECASE)

# Sentinel for "key not present in payload" (partial updates skip these)
MISSING: Any = object()


class ValidationError(ValueError):
    """400-level input problem, with field-level details."""

    def __init__(self, message: str = "Invalid payload", details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate slug)."""


class NotFoundError(LookupError):
    """404-level: an id in the request does not resolve."""


class OrderNotFound(NotFoundError):
    pass


class ProductNotFound(NotFoundError):
    pass


class VariantNotFound(NotFoundError):
    pass


class CategoryNotFound(NotFoundError):
    pass


class PromotionNotFound(NotFoundError):
    pass


class CustomerNotFound(NotFoundError):
    pass


class PayloadValidator:
    """
    Reads and coerces fields out of a JSON object, collecting every problem
    instead of stopping at the first one.

    Each accessor returns the coerced value, None for an explicit null, or
    MISSING when the key is absent and no default was given. Call check()
    once all fields are read; it raises ValidationError listing the problems.
    Nested validators share the parent's problem list.
    """

    def __init__(self, payload: Any, prefix: str = "", problems: list[dict] | None = None):
        self.prefix = prefix
        self.problems = problems if problems is not None else []
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            self.fail(None, "must be a JSON object")
            payload = {}
        self.payload = payload

    def _name(self, key: str | None) -> str:
        if key is None:
            return self.prefix or "body"
        return f"{self.prefix}.{key}" if self.prefix else key

    def fail(self, key: str | None, message: str) -> None:
        self.problems.append({"field": self._name(key), "message": message})

    def check(self, message: str = "Invalid payload") -> None:
        if self.problems:
            raise ValidationError(message, details=list(self.problems))

    def has(self, key: str) -> bool:
        return key in self.payload

    def _raw(self, key: str, required: bool, default: Any):
        if key not in self.payload:
            if required:
                self.fail(key, "is required")
            return MISSING if default is MISSING else default, True
        raw = self.payload[key]
        if raw is None:
            if required:
                self.fail(key, "cannot be null")
                return MISSING, True
            return None, True
        return raw, False

    def string(
        self,
        key: str,
        *,
        required: bool = False,
        min_len: int | None = None,
        max_len: int | None = None,
        default: Any = MISSING,
    ):
        raw, done = self._raw(key, required, default)
        if done:
            return raw
        if not isinstance(raw, str):
            self.fail(key, "must be a string")
            return MISSING
        val = raw.strip()
        if min_len is not None and len(val) < min_len:
            self.fail(key, f"must be at least {min_len} characters")
            return MISSING
        if max_len is not None and len(val) > max_len:
            self.fail(key, f"exceeds max length {max_len}")
            return MISSING
        return val

    def email(self, key: str, *, required: bool = False, default: Any = MISSING):
        val = self.string(key, required=required, max_len=254, default=default)
        if isinstance(val, str) and not EMAIL_RE.match(val):
            self.fail(key, "must be a valid email address")
            return MISSING
        return val

    def urlish(self, key: str, *, required: bool = False, default: Any = MISSING):
        val = self.string(key, required=required, max_len=1024, default=default)
        if isinstance(val, str) and not _is_urlish(val):
            self.fail(key, 'must be an http(s) URL or a path starting with "/"')
            return MISSING
        return val

    def integer(
        self,
        key: str,
        *,
        required: bool = False,
        minimum: int | None = None,
        maximum: int | None = None,
        coerce: bool = False,
        default: Any = MISSING,
    ):
        raw, done = self._raw(key, required, default)
        if done:
            return raw
        val = _to_int(raw, coerce)
        if val is None:
            self.fail(key, "must be an integer")
            return MISSING
        if minimum is not None and val < minimum:
            self.fail(key, f"must be >= {minimum}")
            return MISSING
        if maximum is not None and val > maximum:
            self.fail(key, f"must be <= {maximum}")
            return MISSING
        return val

    def decimal(
        self,
        key: str,
        *,
        required: bool = False,
        minimum: Decimal | int | None = 0,
        maximum: Decimal = MAX_PRICE,
        coerce: bool = False,
        default: Any = MISSING,
    ):
        raw, done = self._raw(key, required, default)
        if done:
            return raw
        val = _to_decimal(raw, coerce)
        if val is None:
            self.fail(key, "must be a number")
            return MISSING
        if minimum is not None and val < Decimal(minimum):
            self.fail(key, f"must be >= {minimum}")
            return MISSING
        if maximum is not None and val > maximum:
            self.fail(key, f"cannot exceed {maximum}")
            return MISSING
        return val

    def boolean(self, key: str, *, required: bool = False, default: Any = MISSING):
        raw, done = self._raw(key, required, default)
        if done:
            return raw
        if not isinstance(raw, bool):
            self.fail(key, "must be a boolean")
            return MISSING
        return raw

    def datetime(self, key: str, *, required: bool = False, default: Any = MISSING):
        raw, done = self._raw(key, required, default)
        if done:
            return raw
        if isinstance(raw, datetime):
            return as_naive_utc(raw)
        if isinstance(raw, str):
            try:
                dt = parse_iso_datetime(raw)
            except ValueError:
                dt = None
            if dt is not None:
                return dt
        self.fail(key, "must be an ISO-8601 datetime")
        return MISSING

    def choice(self, key: str, choices, *, required: bool = False, default: Any = MISSING):
        val = self.string(key, required=required, default=default)
        if isinstance(val, str) and val not in choices:
            self.fail(key, f"must be one of: {', '.join(choices)}")
            return MISSING
        return val

    def nested(self, key: str, *, required: bool = False):
        """Validator for a nested object, or None when absent/null."""
        raw, done = self._raw(key, required, MISSING)
        if done:
            return None
        return PayloadValidator(raw, prefix=self._name(key), problems=self.problems)

    def objects(self, key: str, *, required: bool = False, min_items: int = 0, max_items: int | None = None):
        """Validators for a list of objects, or None when absent/null."""
        raw, done = self._raw(key, required, MISSING)
        if done:
            return None
        if not isinstance(raw, list):
            self.fail(key, "must be a list")
            return None
        if len(raw) < min_items:
            self.fail(key, f"must contain at least {min_items} item(s)")
        if max_items is not None and len(raw) > max_items:
            self.fail(key, f"must contain at most {max_items} item(s)")
        return [
            PayloadValidator(entry, prefix=f"{self._name(key)}[{i}]", problems=self.problems)
            for i, entry in enumerate(raw)
        ]

    def urlish_list(self, key: str, *, max_items: int | None = None):
        raw, done = self._raw(key, False, MISSING)
        if done:
            return raw
        if not isinstance(raw, list):
            self.fail(key, "must be a list")
            return MISSING
        if max_items is not None and len(raw) > max_items:
            self.fail(key, f"must contain at most {max_items} item(s)")
            return MISSING
        urls = []
        for i, entry in enumerate(raw):
            if not isinstance(entry, str) or not _is_urlish(entry.strip()):
                self.fail(f"{key}[{i}]", 'must be an http(s) URL or a path starting with "/"')
                continue
            urls.append(entry.strip())
        return urls


def _is_urlish(value: str) -> bool:
    return bool(URLISH_RE.match(value)) or value.startswith("/")


def _to_int(raw: Any, coerce: bool) -> int | None:
    # bool is a subclass of int; never accept it as a number
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer() and coerce:
        return int(raw)
    if isinstance(raw, str) and coerce:
        stripped = raw.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    return None


def _to_decimal(raw: Any, coerce: bool) -> Decimal | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        val = raw
    elif isinstance(raw, (int, float)):
        val = Decimal(str(raw))
    elif isinstance(raw, str) and coerce:
        try:
            val = Decimal(raw.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not val.is_finite():
        return None
    return val


def to_decimal_or_zero(value: Any) -> Decimal:
    """Lenient numeric coercion used by totals: anything malformed is 0."""
    val = _to_decimal(value, coerce=True) if value is not None else None
    return val if val is not None else Decimal("0")


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def read_pagination(args) -> tuple[int, int]:
    """
    (page, page_size) from query args; page defaults to 1 and pageSize to
    20. Out-of-range or non-integer values raise ValidationError.
    """
    v = PayloadValidator(dict(args.items()))
    page = v.integer("page", minimum=1, coerce=True, default=1)
    page_size = v.integer("pageSize", minimum=1, maximum=MAX_PAGE_SIZE, coerce=True, default=DEFAULT_PAGE_SIZE)
    v.check("Invalid query")
    return page, page_size
