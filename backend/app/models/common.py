from __future__ import annotations

import uuid
from decimal import Decimal


def new_id() -> str:
    """Opaque primary key (uuid4 hex)."""
    return uuid.uuid4().hex


def money(value) -> float | None:
    """Decimal column -> JSON number."""
    if value is None:
        return None
    return float(Decimal(value))
