"""
Volume management commands.
"""

import json
from typing import Dict, List, Optional

import typer

from maya_storage.lib.config import load_config
from maya_storage.orchestrators.nomad.jobspec import to_nomad_job
from maya_storage.provisioner.engine import Provisioner, build_provisioner
from maya_storage.provisioner.properties import PropertyKey, VolumeClaim
from maya_storage.provisioner.resolver import STORAGE_RESOURCE

app = typer.Typer(help="Volume management commands")


def get_provisioner() -> Provisioner:
    return build_provisioner(load_config())


def parse_labels(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated key=value options into a label map."""
    labels = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Label must be in format key=value, got '{item}'")
        labels[key.strip()] = value.strip()
    return labels


@app.command()
def create(
    name: str = typer.Argument(..., help="Volume name"),
    size: str = typer.Option(..., "--size", help="Volume size (e.g., 5Gi, 500M)"),
    replicas: Optional[int] = typer.Option(None, "--replicas", help="Replica count (default: from datacenter)"),
    label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Volume property as key=value"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the Nomad job without submitting it"),
):
    """
    Provision a new volume.

    Resolves the volume properties, allocates the frontend and replica
    addresses, and submits the resulting job to the orchestrator.
    """
    labels = parse_labels(label)
    if replicas is not None:
        labels[PropertyKey.REPLICA_COUNT.value] = str(replicas)

    try:
        claim = VolumeClaim.from_labels(name, labels, {STORAGE_RESOURCE: size})
        provisioner = get_provisioner()

        if dry_run:
            provisioner.resolve_and_allocate(claim)
            try:
                topology = provisioner.build_topology(claim)
            finally:
                provisioner.allocator.release(claim.name)
            typer.echo(json.dumps({"Job": to_nomad_job(topology)}, indent=2, sort_keys=True))
            return

        typer.echo(f"Creating volume: {name}")
        handle = provisioner.provision(claim)

        props = claim.properties
        typer.echo(f"  Frontend IP: {props.controller_ip}")
        typer.echo(f"  Replica IPs: {', '.join(props.replica_ips)}")
        typer.echo(f"  Evaluation: {handle.eval_id or '-'}")
        typer.echo(f"Volume {name} created successfully")

    except Exception as e:
        typer.echo(f"Error creating volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def info(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Show the status of a volume.
    """
    try:
        status = get_provisioner().status(name)
        typer.echo(f"Volume: {status.name}")
        typer.echo(f"  Reason: {status.reason or '-'}")
        typer.echo(f"  Message: {status.message or '-'}")
        for key in sorted(status.annotations):
            typer.echo(f"  {key}={status.annotations[key]}")
    except Exception as e:
        typer.echo(f"Error reading volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Delete a volume.
    """
    try:
        typer.echo(f"Deleting volume: {name}")
        get_provisioner().remove(name)
        typer.echo(f"Volume {name} deleted successfully")
    except Exception as e:
        typer.echo(f"Error deleting volume: {e}", err=True)
        raise typer.Exit(1)
