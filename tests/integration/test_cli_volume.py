"""
Integration tests for CLI volume and vsm commands.
"""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from maya_storage.cli.cli import app
from maya_storage.cli.commands.volume import parse_labels


@pytest.fixture
def runner():
    return CliRunner()


class TestVolumeCreate:
    """Tests for volume create command."""

    @pytest.mark.integration
    def test_create_volume_success(self, runner, provisioner, fake_backend):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            result = runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi"])

        assert result.exit_code == 0
        assert "Creating volume: vol1" in result.stdout
        assert "Frontend IP: 10.0.0.1" in result.stdout
        assert "Replica IPs: 10.0.0.2, 10.0.0.3" in result.stdout
        assert "vol1" in fake_backend.topologies

    @pytest.mark.integration
    def test_create_volume_with_replicas_and_labels(self, runner, provisioner, fake_backend):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            result = runner.invoke(
                app,
                [
                    "volume", "create", "vol1", "--size", "1Gi", "--replicas", "3",
                    "--label", "networkCIDR=10.5.0.0/24", "-l", "interface=bond0",
                ],
            )

        assert result.exit_code == 0
        topology = fake_backend.topologies["vol1"]
        assert topology.backend_group.count == 3
        assert topology.meta["JIVA_CTL_IP"] == "10.5.0.1"
        assert topology.frontend_group.tasks[0].env["JIVA_CTL_IFACE"] == "bond0"

    @pytest.mark.integration
    def test_create_volume_dry_run(self, runner, provisioner, fake_backend):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            result = runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi", "--dry-run"])

        assert result.exit_code == 0
        job = json.loads(result.stdout)["Job"]
        assert job["ID"] == "vol1"
        assert job["Meta"]["JIVA_CTL_IP"] == "10.0.0.1"
        assert fake_backend.topologies == {}
        assert provisioner.allocator.reserved("10.0.0.0/24") == set()

    @pytest.mark.integration
    def test_create_volume_error(self, runner, provisioner):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            result = runner.invoke(app, ["volume", "create", "vol1", "--size", "lots"])

        assert result.exit_code == 1
        assert "storageSize" in result.output

    @pytest.mark.integration
    def test_create_volume_bad_label(self, runner):
        result = runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi", "--label", "novalue"])
        assert result.exit_code == 2


class TestVolumeInfo:
    @pytest.mark.integration
    def test_info(self, runner, provisioner):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi"])
            result = runner.invoke(app, ["volume", "info", "vol1"])

        assert result.exit_code == 0
        assert "Volume: vol1" in result.stdout
        assert "Reason: pending" in result.stdout
        assert "evaljob=vol1" in result.stdout

    @pytest.mark.integration
    def test_info_not_found(self, runner, provisioner):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            result = runner.invoke(app, ["volume", "info", "nope"])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestVolumeDelete:
    @pytest.mark.integration
    def test_delete(self, runner, provisioner, fake_backend):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner):
            runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi"])
            result = runner.invoke(app, ["volume", "delete", "vol1"])

        assert result.exit_code == 0
        assert "Volume vol1 deleted successfully" in result.stdout
        assert fake_backend.deleted == ["vol1"]


class TestVSMRead:
    @pytest.mark.integration
    def test_read(self, runner, provisioner):
        with patch("maya_storage.cli.commands.volume.get_provisioner", return_value=provisioner), patch(
            "maya_storage.cli.commands.vsm.get_provisioner", return_value=provisioner
        ):
            runner.invoke(app, ["volume", "create", "vol1", "--size", "5Gi"])
            result = runner.invoke(app, ["vsm", "read", "vol1"])

        assert result.exit_code == 0
        assert "VSM: vol1" in result.stdout
        assert "JIVA_TARGET_PORTAL=10.0.0.1:3260" in result.stdout


@pytest.mark.unit
def test_parse_labels():
    assert parse_labels(["a=1", " b = x=y "]) == {"a": "1", "b": "x=y"}
    assert parse_labels(None) == {}
