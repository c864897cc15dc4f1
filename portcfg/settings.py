"""Defaults for the command line, overridable through ``PORTCFG_*`` variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .decision import POLICIES
from .probe import PROBES

DEFAULT_CONFIG = Path("config") / "port_config.txtpb"


def _choice(environ: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (environ.get(name) or default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of: {', '.join(choices)} (got '{value}')")
    return value


@dataclass
class Settings:
    """
    Runtime defaults for the ``portcfg`` commands.

    Supported variables:
        - PORTCFG_CONFIG: Port configuration file (default: config/port_config.txtpb).
        - PORTCFG_REGISTRY: YAML registry of known keys (default: packaged registry.yml).
        - PORTCFG_ON_CONFLICT: "ask" (default), "continue" or "abort" when a port is in use.
        - PORTCFG_PROBE: "bind" (default) or "lsof" for the live port check.
        - PORTCFG_PROBE_HOST: Address the bind probe uses (default: all interfaces).
    """

    config_path: Path = DEFAULT_CONFIG
    registry_path: Optional[Path] = None
    on_conflict: str = "ask"
    probe: str = "bind"
    probe_host: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        registry = environ.get("PORTCFG_REGISTRY") or None
        return cls(
            config_path=Path(environ.get("PORTCFG_CONFIG") or DEFAULT_CONFIG),
            registry_path=Path(registry) if registry else None,
            on_conflict=_choice(environ, "PORTCFG_ON_CONFLICT", "ask", POLICIES),
            probe=_choice(environ, "PORTCFG_PROBE", "bind", PROBES),
            probe_host=environ.get("PORTCFG_PROBE_HOST", ""),
        )
