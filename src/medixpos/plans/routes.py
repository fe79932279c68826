"""Route canonicalization for page access checks.

Routes arrive from the UI router in several spellings (``/pos``, ``pos``,
or either with stray whitespace). Lookups try every spelling of a route, plus any aliases it
belongs to, so the page map only needs one entry per page.
"""

from __future__ import annotations

# Each group lists spellings that name the same page. The first entry is
# the canonical form.
ROUTE_ALIASES: tuple[tuple[str, ...], ...] = (
    ("/", "dashboard", "/dashboard"),
)

ROOT_ROUTE = "/"


def _alias_group(route: str) -> tuple[str, ...]:
    for group in ROUTE_ALIASES:
        if route in group:
            return group
    return ()


def route_lookup_keys(route: str) -> list[str]:
    """Return every key under which *route* may appear in the page map.

    Includes the trimmed route itself, its leading-slash and
    no-leading-slash forms, and all members of its alias group.
    A blank route is the root route.
    """
    trimmed = route.strip() or ROOT_ROUTE
    keys: dict[str, None] = {trimmed: None}

    if trimmed.startswith("/"):
        bare = trimmed[1:]
        if bare:
            keys[bare] = None
    else:
        keys[f"/{trimmed}"] = None

    for key in list(keys):
        for alias in _alias_group(key):
            keys[alias] = None

    return list(keys)


def canonical_route(route: str) -> str:
    """Return the canonical spelling of *route* (leading slash, aliases folded)."""
    trimmed = route.strip() or ROOT_ROUTE
    group = _alias_group(trimmed)
    if group:
        return group[0]
    if not trimmed.startswith("/"):
        trimmed = f"/{trimmed}"
    return trimmed
