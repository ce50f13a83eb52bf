"""CLI entry point for skillactivation.

Usage:
    python -m skillactivation --skills .kiro/skills activate -f app/manifest.json -p "fiori"
"""

import sys


def main() -> int:
    """Main entry point for the skillactivation CLI."""
    from skillactivation.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
