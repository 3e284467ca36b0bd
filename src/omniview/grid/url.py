"""Effective URL construction for viewport sessions.

Turns the URL a user typed (or the master URL) into the URL a rendering
surface should actually load, given the pool's isolation mode, the session's
identity token and an optional proxy rewrite.

Composition order:
    normalize scheme -> append _uid/_cb to the target -> wrap in proxy

Uniqueness parameters belong to the target the proxy will fetch, so they are
percent-encoded inside the proxy argument rather than added to the proxy
endpoint itself.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import quote

from omniview.grid.protocols import IsolationMode

if TYPE_CHECKING:
    from omniview.config.schema import ProxyConfig

_SCHEMES = ("http://", "https://")

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def now_ms() -> int:
    """Current wall-clock time in milliseconds, used for cache busting."""
    return int(time.time() * 1000)


def normalize_url(raw_url: str) -> str:
    """Trim and default the scheme to https. Empty input stays empty."""
    url = raw_url.strip()
    if not url:
        return ""
    if not url.startswith(_SCHEMES):
        url = f"https://{url}"
    return url


def append_query(url: str, params: list[tuple[str, str]]) -> str:
    """Append ``key=value`` pairs to the query, using ``?`` or ``&``.

    A ``#fragment`` stays at the end so the parameters reach the server.
    """
    if not params:
        return url
    base, hash_mark, fragment = url.partition("#")
    separator = "&" if "?" in base else "?"
    query = "&".join(f"{key}={value}" for key, value in params)
    return f"{base}{separator}{query}{hash_mark}{fragment}"


def build_effective_url(
    raw_url: str,
    mode: Iterable[IsolationMode],
    identity: str,
    proxy: ProxyConfig | None = None,
    timestamp: int | None = None,
) -> str:
    """Build the URL a session should load.

    Never raises and never validates the URL beyond adding a scheme.

    Args:
        raw_url: URL as supplied by the user or the master URL.
        mode: Active isolation mode flags.
        identity: Session identity token, used for ``_uid``.
        proxy: Optional proxy rewrite; applied only when enabled with a prefix.
        timestamp: Cache-bust value in ms. Defaults to the current time.

    Returns:
        The effective URL, or "" when ``raw_url`` is blank.
    """
    url = normalize_url(raw_url)
    if not url:
        return ""

    flags = set(mode)
    params: list[tuple[str, str]] = []
    if IsolationMode.UNIQUE_IDENTITY in flags:
        params.append(("_uid", identity))
    if IsolationMode.CACHE_BUST in flags:
        params.append(("_cb", str(now_ms() if timestamp is None else timestamp)))
    url = append_query(url, params)

    if proxy is not None and proxy.enabled and proxy.prefix:
        url = proxy.prefix + quote(url, safe=_URI_COMPONENT_SAFE)

    return url
