"""
Configuration loader for Maya Storage.

Orchestrator coordinates and per-datacenter container networking (cn-*) and
container storage (cs-*) defaults live in a single INI file so that nothing
environment specific is hardcoded in the provisioning engine.
"""

from __future__ import annotations

import configparser
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


DEFAULT_CONFIG_PATH = Path("/etc/maya-storage/maya.conf")

ENV_CONFIG_PATH = "MAYA_CONFIG_PATH"
ENV_NOMAD_ADDRESS = "NOMAD_ADDR"
ENV_NOMAD_REGION = "NOMAD_REGION"
ENV_NOMAD_TOKEN = "NOMAD_TOKEN"
ENV_NOMAD_CA_CERT = "NOMAD_CACERT"
ENV_NOMAD_CLIENT_CERT = "NOMAD_CLIENT_CERT"
ENV_NOMAD_CLIENT_KEY = "NOMAD_CLIENT_KEY"

_DATACENTER_SECTION_RE = re.compile(r'^datacenter\s+"([^"]+)"$')


@dataclass(frozen=True)
class DatacenterConfig:
    """Per-datacenter defaults. Empty strings mean "not configured"."""

    name: str
    cn_type: str = ""
    cn_network_cidr: str = ""
    cn_interface: str = ""
    cs_persistence_location: str = ""
    cs_replica_count: str = ""


@dataclass(frozen=True)
class NomadConfig:
    address: str = "http://127.0.0.1:4646"
    region: str = "global"
    token: Optional[str] = None
    timeout: int = 30
    retry_count: int = 3
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None


@dataclass(frozen=True)
class MayaConfig:
    orchestrator: str = "nomad"
    default_datacenter: str = "dc1"
    controller_image: Optional[str] = None
    api_host: str = "127.0.0.1"
    api_port: int = 5656
    nomad: NomadConfig = field(default_factory=NomadConfig)
    datacenters: Dict[str, DatacenterConfig] = field(default_factory=dict)


def _config_path() -> Path:
    env = os.environ.get(ENV_CONFIG_PATH)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def _section(parser: configparser.ConfigParser, name: str) -> object:
    return parser[name] if parser.has_section(name) else {}


def _get(section: object, key: str, default: str) -> str:
    if isinstance(section, dict):
        return str(section.get(key, default)).strip()
    return str(section.get(key, fallback=default)).strip()


def _get_int(section: object, key: str, default: int) -> int:
    raw = _get(section, key, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(section: object, key: str, default: bool) -> bool:
    raw = _get(section, key, str(default)).lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def _load_datacenters(parser: configparser.ConfigParser) -> Dict[str, DatacenterConfig]:
    datacenters: Dict[str, DatacenterConfig] = {}
    for section_name in parser.sections():
        match = _DATACENTER_SECTION_RE.match(section_name.strip())
        if not match:
            continue
        name = match.group(1)
        section = parser[section_name]
        datacenters[name] = DatacenterConfig(
            name=name,
            cn_type=_get(section, "cn-type", ""),
            cn_network_cidr=_get(section, "cn-network-cidr", ""),
            cn_interface=_get(section, "cn-interface", ""),
            cs_persistence_location=_get(section, "cs-persistence-location", ""),
            cs_replica_count=_get(section, "cs-replica-count", ""),
        )
    return datacenters


def load_config(path: Optional[Path] = None) -> MayaConfig:
    """
    Load config from `path`, `MAYA_CONFIG_PATH` or `/etc/maya-storage/maya.conf`.

    Missing files are not an error; defaults are returned. `NOMAD_ADDR`,
    `NOMAD_REGION`, `NOMAD_TOKEN`, `NOMAD_CACERT`, `NOMAD_CLIENT_CERT` and
    `NOMAD_CLIENT_KEY` take precedence over the `[nomad]` section.
    """
    parser = _read_ini(path or _config_path())

    provisioner = _section(parser, "provisioner")
    nomad = _section(parser, "nomad")
    api = _section(parser, "api")

    controller_image = _get(provisioner, "controller_image", "")
    token = os.environ.get(ENV_NOMAD_TOKEN) or _get(nomad, "token", "")

    nomad_config = NomadConfig(
        address=os.environ.get(ENV_NOMAD_ADDRESS) or _get(nomad, "address", "http://127.0.0.1:4646"),
        region=os.environ.get(ENV_NOMAD_REGION) or _get(nomad, "region", "global"),
        token=token or None,
        timeout=_get_int(nomad, "timeout", 30),
        retry_count=_get_int(nomad, "retry_count", 3),
        verify_ssl=_get_bool(nomad, "verify_ssl", True),
        ca_bundle=os.environ.get(ENV_NOMAD_CA_CERT) or _get(nomad, "ca_bundle", "") or None,
        client_cert=os.environ.get(ENV_NOMAD_CLIENT_CERT) or _get(nomad, "client_cert", "") or None,
        client_key=os.environ.get(ENV_NOMAD_CLIENT_KEY) or _get(nomad, "client_key", "") or None,
    )

    return MayaConfig(
        orchestrator=_get(provisioner, "orchestrator", "nomad"),
        default_datacenter=_get(provisioner, "default_datacenter", "dc1"),
        controller_image=controller_image or None,
        api_host=_get(api, "host", "127.0.0.1"),
        api_port=_get_int(api, "port", 5656),
        nomad=nomad_config,
        datacenters=_load_datacenters(parser),
    )
