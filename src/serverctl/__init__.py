"""serverctl package entrypoint."""

import sys

from serverctl.cli.app import main as _cli_main


def main() -> None:
    """Run the serverctl CLI."""
    sys.exit(_cli_main())
