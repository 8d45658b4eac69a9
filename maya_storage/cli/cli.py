#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys

import typer

from maya_storage.cli.commands import volume, vsm

app = typer.Typer(
    name="maya",
    help="Maya Storage volume provisioning tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")
app.add_typer(vsm.app, name="vsm", help="Volume topology (VSM) commands")


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
