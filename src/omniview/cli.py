"""Command-line interface for omniview.

Runs one viewport pool headlessly against a master URL, waits for the
staggered activation sequence to finish and prints the resulting grid.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from omniview.config import load_config
from omniview.config.schema import ProxyConfig
from omniview.grid.capabilities import sandbox_attribute
from omniview.grid.protocols import (
    DELAY_PRESETS,
    mode_names,
    parse_delay,
    parse_isolation_mode,
)
from omniview.grid.store import SessionStore
from omniview.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from omniview.config.schema import Config
    from omniview.grid.protocols import FrameView

console = Console()
log = get_logger("cli")

_POLL_INTERVAL = 0.05

_STATUS_STYLES = {
    "idle": "dim",
    "scheduled": "yellow",
    "active": "green",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="omniview",
        description="Load a URL into a pool of viewport sessions, staggered over time",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="Master URL (scheme optional, https is assumed)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file layered over the standard locations",
    )
    parser.add_argument(
        "-n", "--count",
        type=int,
        help="Number of viewport sessions (default from config: 10)",
    )
    parser.add_argument(
        "-d", "--delay",
        help=f"Stagger delay in ms or a preset: {', '.join(DELAY_PRESETS)}",
    )
    parser.add_argument(
        "-m", "--mode",
        action="append",
        default=[],
        help="Isolation mode: cacheBust, stateless, uniqueIdentity or none (repeatable)",
    )
    parser.add_argument(
        "--proxy",
        metavar="PREFIX",
        help="Proxy prefix; the encoded target URL is appended to it",
    )
    parser.add_argument(
        "--no-sync",
        action="store_true",
        help="Do not propagate the master URL to the sessions",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final grid as JSON instead of a table",
    )
    return parser


def apply_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    """Layer command-line options over a loaded config.

    Raises:
        ValueError: For an unknown isolation mode or delay preset.
    """
    grid = config.grid
    if parsed.count is not None:
        grid = replace(grid, count=max(0, parsed.count))
    if parsed.delay is not None:
        grid = replace(grid, stagger_delay_ms=parse_delay(parsed.delay))
    if parsed.mode:
        grid = replace(grid, isolation=mode_names(parse_isolation_mode(parsed.mode)))
    if parsed.no_sync:
        grid = replace(grid, sync_enabled=False)

    proxy = config.proxy
    if parsed.proxy:
        proxy = ProxyConfig(prefix=parsed.proxy)

    logging_config = config.logging
    if parsed.verbose:
        # -v = verbose, -vv = trace
        logging_config = replace(logging_config, verbose=min(4, 2 + parsed.verbose))

    return replace(config, grid=grid, proxy=proxy, logging=logging_config)


def render_table(views: Sequence[FrameView]) -> Table:
    """Build a rich table of the pool."""
    caption = sandbox_attribute(views[0].capabilities) if views else None
    table = Table(title="Viewport Grid", caption=caption)
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Lock")
    table.add_column("Gen", justify="right")
    table.add_column("Effective URL", overflow="fold")

    for view in views:
        style = _STATUS_STYLES.get(view.status.value, "")
        table.add_row(
            str(view.id + 1),
            f"[{style}]{view.status.value}[/{style}]" if style else view.status.value,
            "locked" if view.locked else "-",
            str(view.generation),
            view.effective_url or "[dim]-[/dim]",
        )
    return table


async def run_grid(config: Config, url: str) -> tuple[FrameView, ...]:
    """Run one pool against ``url`` until its activation batch has drained.

    Returns:
        The final pool snapshot.
    """
    store = SessionStore.from_config(config)
    seen: dict[int, int] = {}

    def on_update(views: tuple[FrameView, ...]) -> None:
        for view in views:
            if view.displayable and seen.get(view.id) != view.generation:
                seen[view.id] = view.generation
                log.info("Session %d active: %s", view.id + 1, view.effective_url)

    async with store:
        store.subscribe(on_update)
        store.set_master_url(url)
        while store.scheduler.pending:
            await asyncio.sleep(_POLL_INTERVAL)
        return store.snapshot()


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.url:
        parser.print_help()
        return 1

    try:
        config = apply_overrides(load_config(config_file=parsed.config), parsed)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 2

    setup_logging(config.logging)
    log.debug(
        "Pool of %d, %d ms stagger, isolation=%s",
        config.grid.count,
        config.grid.stagger_delay_ms,
        ",".join(config.grid.isolation) or "none",
    )

    views = asyncio.run(run_grid(config, parsed.url))

    if parsed.json:
        console.print_json(json.dumps([v.to_dict() for v in views]))
    else:
        console.print(render_table(views))
    return 0
