"""
Route conflict detection.

Two entities whose tables or relationship paths collide would register the
same method+path twice, and FastAPI silently serves only the first. The
application builder runs this check once all routers are mounted.
"""

from __future__ import annotations

import logging
from collections import Counter

from fastapi import FastAPI
from fastapi.routing import APIRoute

logger = logging.getLogger("coredata.routes")


def describe_routes(app: FastAPI) -> list[tuple[str, str]]:
    """(method, path) for every API route, in registration order."""
    pairs: list[tuple[str, str]] = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in sorted(route.methods):
            pairs.append((method, route.path))
    return pairs


def validate_routes(app: FastAPI, *, strict: bool = False) -> list[str]:
    """Report method+path pairs registered more than once.

    Args:
        app: Application whose routes to inspect.
        strict: Raise ``RuntimeError`` instead of only logging.

    Returns:
        Human-readable conflict descriptions (empty means clean).
    """
    counts = Counter(describe_routes(app))
    conflicts = [
        f"{method} {path} registered {count} times"
        for (method, path), count in sorted(counts.items())
        if count > 1
    ]

    for conflict in conflicts:
        logger.warning("Route conflict: %s", conflict)
    if conflicts and strict:
        raise RuntimeError(f"Route conflicts detected ({len(conflicts)}):\n" + "\n".join(conflicts))
    return conflicts
