"""Storage key derivation from request path and arrival time."""

from __future__ import annotations

import re
import time

KEY_PREFIX = "webhook-"

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
_HYPHENS = re.compile(r"-+")


def slugify(path: str) -> str:
    """Convert a URL path into a slug that is safe to embed in a storage key.

    ``"/Foo/Bar!!/"`` becomes ``"foo-bar"``; an empty path (or one with
    nothing usable left after normalisation) becomes ``"root"``.
    """
    path = path.strip("/")
    if not path:
        return "root"

    path = path.replace("/", "-")
    path = _UNSAFE.sub("-", path)
    path = _HYPHENS.sub("-", path)
    path = path.strip("-").lower()

    return path or "root"


def generate_key(path: str, arrival: float | None = None) -> str:
    """Build ``webhook-<slug>-<unix seconds>``.

    Two requests to the same path within one second get the same key.
    """
    if arrival is None:
        arrival = time.time()
    return f"{KEY_PREFIX}{slugify(path)}-{int(arrival)}"
