"""
Volume topology (VSM) commands.
"""

import typer

from maya_storage.cli.commands.volume import get_provisioner

app = typer.Typer(help="Volume topology (VSM) commands")


@app.command()
def read(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Show the orchestrator record of a volume's topology.
    """
    try:
        job = get_provisioner().read(name)
        typer.echo(f"VSM: {job.name}")
        typer.echo(f"  Status: {job.status or '-'}")
        typer.echo(f"  Description: {job.status_description or '-'}")
        for key in sorted(job.meta):
            typer.echo(f"  {key}={job.meta[key]}")
    except Exception as e:
        typer.echo(f"Error reading VSM: {e}", err=True)
        raise typer.Exit(1)
