"""Classify configuration values as ports, secrets or neither."""

from __future__ import annotations

import enum
import re
from typing import Dict, Iterable

from .parser import ConfigEntry, Configuration

_PORT_LITERAL = re.compile(r"[0-9]+")


class EntryKind(str, enum.Enum):
    PORT = "port"
    SECRET = "secret"
    UNCLASSIFIED = "unclassified"


def is_port_literal(value: str) -> bool:
    # str.isdigit() would also accept non-ASCII digits
    return _PORT_LITERAL.fullmatch(value) is not None


def classify_entry(entry: ConfigEntry, secrets: Iterable[str] = ()) -> EntryKind:
    # a listed secret key stays secret even when its value is all digits
    if entry.key in set(secrets):
        return EntryKind.SECRET
    if is_port_literal(entry.raw_value):
        return EntryKind.PORT
    return EntryKind.UNCLASSIFIED


def classify_configuration(config: Configuration, secrets: Iterable[str] = ()) -> Dict[str, EntryKind]:
    secret_keys = frozenset(secrets)
    return {entry.key: classify_entry(entry, secret_keys) for entry in config}


def port_entries(config: Configuration, secrets: Iterable[str] = ()) -> list[tuple[str, int]]:
    """Return ``(key, port)`` for every PORT entry in file order."""
    kinds = classify_configuration(config, secrets)
    return [(entry.key, int(entry.raw_value, 10)) for entry in config if kinds[entry.key] is EntryKind.PORT]
