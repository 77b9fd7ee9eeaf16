from __future__ import annotations

import re

_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """
    Deterministic URL slug: lower-case, every run of characters outside
    [a-z0-9] collapsed to one hyphen, no leading/trailing hyphen.

    slugify(slugify(x)) == slugify(x) for every x.
    """
    return _NON_SLUG_RUN.sub("-", (value or "").lower()).strip("-")
