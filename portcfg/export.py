"""Turn a loaded configuration into environment variables."""

from __future__ import annotations

import logging
import os
import re
import shlex
from pathlib import Path
from typing import Dict, Iterable, List, MutableMapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .classify import EntryKind, classify_configuration
from .parser import Configuration
from .registry import Registry

logger = logging.getLogger(__name__)

TEMPLATES = Path(__file__).resolve().with_name("templates")
REDACTED = "<set>"
_MASK = re.compile(r"=[^=\n]+")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DOTENV_PLAIN = re.compile(r"[A-Za-z0-9_./:@+,-]*")


def mask_assignment(key: str, value: object) -> str:
    line = f"{key}={value}"
    return _MASK.sub("=<redacted>", line)


def redact(key: str, value: Optional[str], secrets: Iterable[str]) -> str:
    if key in set(secrets):
        return REDACTED if value else ""
    return value or ""


def build_environment(
    config: Configuration,
    environ: Optional[MutableMapping[str, str]] = None,
    prefer_env: bool = False,
) -> Dict[str, str]:
    """Return ``key -> value`` for every entry, in file order.

    With ``prefer_env`` a key already set in ``environ`` keeps that value, so
    an operator can pre-seed an override before running the export.
    """
    env: Dict[str, str] = {}
    for entry in config:
        if prefer_env and environ is not None and entry.key in environ:
            logger.debug("Keeping pre-set %s", entry.key)
            env[entry.key] = environ[entry.key]
        else:
            env[entry.key] = entry.raw_value
    return env


def apply_environment(mapping: Dict[str, str], environ: Optional[MutableMapping[str, str]] = None) -> Dict[str, str]:
    """Set every valid variable name in ``environ``; return what was applied."""
    target = os.environ if environ is None else environ
    applied = shell_safe(mapping)
    for key, value in applied.items():
        target[key] = value
    return applied


def shell_safe(mapping: Dict[str, str]) -> Dict[str, str]:
    safe: Dict[str, str] = {}
    for key, value in mapping.items():
        if _IDENTIFIER.fullmatch(key):
            safe[key] = value
        else:
            logger.warning("Skipping '%s': not a valid environment variable name", key)
    return safe


def dotenv_quote(value: str) -> str:
    if _DOTENV_PLAIN.fullmatch(value):
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _jinja_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES)),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["shquote"] = shlex.quote
    env.filters["dotenv"] = dotenv_quote
    return env


def render_shell_exports(mapping: Dict[str, str]) -> str:
    template = _jinja_env().get_template("exports.sh.j2")
    return template.render(variables=shell_safe(mapping))


def render_env_file(mapping: Dict[str, str], source: Optional[Path] = None) -> str:
    template = _jinja_env().get_template("compose.env.j2")
    return template.render(variables=shell_safe(mapping), source=str(source) if source else None)


def write_env_file(path: Path, mapping: Dict[str, str], source: Optional[Path] = None) -> bool:
    """Write a Docker Compose ``.env`` file; return False when it was already current."""
    content = render_env_file(mapping, source)
    if path.exists() and path.read_text() == content:
        logger.info("No changes for %s", path)
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    logger.info("Wrote %d variables to %s", len(mapping), path)
    return True


def summary_lines(config: Configuration, registry: Registry, environment: Optional[Dict[str, str]] = None) -> List[str]:
    """Human-readable table of the configuration with secrets redacted."""
    values = environment if environment is not None else config.as_dict()
    secrets = set(registry.secrets)
    kinds = classify_configuration(config, secrets)
    ports: List[str] = []
    keys: List[str] = []
    for entry in config:
        label = registry.label(entry.key)
        shown = redact(entry.key, values.get(entry.key), secrets)
        if kinds[entry.key] is EntryKind.SECRET:
            keys.append(f"{label}: {shown}")
        else:
            ports.append(f"{label}: {shown}")
    missing = [registry.label(key) for key in list(registry.ports) + list(registry.secrets) if key not in config]

    lines = ["Current Port Configuration:", "=" * 26]
    lines.extend(ports)
    if keys:
        lines.extend(["", "API Keys:"])
        lines.extend(keys)
    if missing:
        lines.extend(["", f"Not configured: {', '.join(missing)}"])
    return lines
