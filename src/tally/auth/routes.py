"""Path predicates deciding which requests the route guard handles."""

import re

# Static files the guard never looks at (json stays guarded; it is usually an API response)
_STATIC_FILE = re.compile(
    r"\.(?:html?|css|js|jpe?g|webp|png|gif|svg|ttf|woff2?|ico|csv|docx?|xlsx?|zip|webmanifest)$",
    re.IGNORECASE,
)
_INTERNAL_ASSET_PREFIXES = ("/static/",)


def should_guard(path: str) -> bool:
    """
    Whether the route guard runs for this path at all.

    Framework assets and static files are skipped so they are never answered
    with an authentication redirect.

    Example:
        >>> should_guard("/dashboard")
        True
        >>> should_guard("/favicon.ico")
        False
    """
    if path.startswith(_INTERNAL_ASSET_PREFIXES):
        return False
    return _STATIC_FILE.search(path) is None


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    if pattern.endswith("(.*)"):
        return re.compile(re.escape(pattern[: -len("(.*)")]) + ".*")
    return re.compile(re.escape(pattern))


class RouteMatcher:
    """
    Ordered list of path patterns.

    A pattern is a literal path, optionally ending in ``(.*)`` to match every
    path with that prefix. Matching is against the whole path.

    Example:
        >>> matcher = RouteMatcher(["/", "/dashboard(.*)"])
        >>> matcher.matches("/dashboard/2024")
        True
        >>> matcher.matches("/sign-in")
        False
    """

    def __init__(self, patterns: list[str]):
        self.patterns = list(patterns)
        self._compiled = [_compile_pattern(p) for p in self.patterns]

    def matches(self, path: str) -> bool:
        return any(regex.fullmatch(path) for regex in self._compiled)

    def __repr__(self) -> str:
        return f"RouteMatcher({self.patterns!r})"
