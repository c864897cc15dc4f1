"""Registry of known port and secret keys, loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import RegistryError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = Path(__file__).resolve().with_name("registry.yml")


@dataclass(frozen=True)
class PortBand:
    min: int = 10000
    max: int = 20000

    def __contains__(self, port: object) -> bool:
        return isinstance(port, int) and self.min <= port <= self.max

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class Registry:
    band: PortBand = PortBand()
    ports: Dict[str, str] = field(default_factory=dict)
    secrets: Dict[str, str] = field(default_factory=dict)

    def label(self, key: str) -> str:
        return self.ports.get(key) or self.secrets.get(key) or key

    def is_secret(self, key: str) -> bool:
        return key in self.secrets


def _mapping(data: Dict[str, Any], name: str) -> Dict[str, str]:
    section = data.get(name) or {}
    if isinstance(section, list):
        return {str(key): str(key) for key in section}
    if not isinstance(section, dict):
        raise RegistryError(f"'{name}' must be a mapping of key to label")
    return {str(key): str(label if label is not None else key) for key, label in section.items()}


def _band(data: Dict[str, Any]) -> PortBand:
    raw = data.get("port_band") or {}
    if not isinstance(raw, dict):
        raise RegistryError("'port_band' must be a mapping with 'min' and 'max'")
    low = raw.get("min", PortBand.min)
    high = raw.get("max", PortBand.max)
    if isinstance(low, bool) or isinstance(high, bool) or not isinstance(low, int) or not isinstance(high, int):
        raise RegistryError(f"port_band bounds must be integers (got {low!r}, {high!r})")
    if low > high:
        raise RegistryError(f"port_band min {low} is greater than max {high}")
    return PortBand(low, high)


def parse_registry(data: Any) -> Registry:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RegistryError("registry must be a YAML mapping")
    registry = Registry(band=_band(data), ports=_mapping(data, "ports"), secrets=_mapping(data, "secrets"))
    overlap = set(registry.ports) & set(registry.secrets)
    if overlap:
        raise RegistryError(f"keys listed as both port and secret: {', '.join(sorted(overlap))}")
    return registry


def load_registry(path: Optional[Path | str] = None) -> Registry:
    registry_path = Path(path) if path else DEFAULT_REGISTRY
    try:
        data = yaml.safe_load(registry_path.read_text())
    except OSError as exc:
        raise RegistryError(f"Unable to read registry {registry_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RegistryError(f"Invalid YAML in registry {registry_path}: {exc}") from exc
    registry = parse_registry(data)
    logger.debug(
        "Registry %s: %d ports, %d secrets, band %s",
        registry_path,
        len(registry.ports),
        len(registry.secrets),
        registry.band,
    )
    return registry
