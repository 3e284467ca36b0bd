"""CLI entry point for omniview."""

import sys


def main() -> int:
    """Main entry point for the omniview CLI."""
    from omniview.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
