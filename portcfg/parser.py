"""Parse ``key: value`` port configuration files."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .exceptions import ConfigNotFound, DuplicateKeyError

logger = logging.getLogger(__name__)

_ENTRY = re.compile(r"^([^:]+):[ ]?(.*)$")


class QuoteMode(str, enum.Enum):
    TRAILING = "trailing"
    ENCLOSING = "enclosing"


class DuplicateKeyPolicy(str, enum.Enum):
    LAST = "last"
    FIRST = "first"
    ERROR = "error"


@dataclass(frozen=True)
class ConfigEntry:
    key: str
    raw_value: str
    lineno: int = 0


@dataclass(frozen=True)
class SkippedLine:
    lineno: int
    text: str
    reason: str


@dataclass
class Configuration:
    """Ordered entries of one configuration file.

    ``skipped`` always records the lines that did not match the entry
    grammar; callers decide whether to surface them.
    """

    path: Optional[Path] = None
    entries: Dict[str, ConfigEntry] = field(default_factory=dict)
    skipped: List[SkippedLine] = field(default_factory=list)
    repeated_keys: List[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[ConfigEntry]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        entry = self.entries.get(key)
        return entry.raw_value if entry is not None else default

    def as_dict(self) -> Dict[str, str]:
        return {entry.key: entry.raw_value for entry in self}


def strip_quotes(value: str, mode: QuoteMode = QuoteMode.TRAILING) -> str:
    # The file format only ever dropped one trailing quote; a leading quote survives.
    if mode is QuoteMode.ENCLOSING and len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    if value.endswith('"'):
        return value[:-1]
    return value


def parse_line(line: str, mode: QuoteMode = QuoteMode.TRAILING) -> tuple[str, str] | None:
    match = _ENTRY.match(line)
    if not match:
        return None
    key, value = match.groups()
    if key.startswith(" "):
        key = key[1:]
    if not key:
        return None
    return key, strip_quotes(value, mode)


def parse_config_content(
    content: str,
    *,
    path: Optional[Path] = None,
    quotes: QuoteMode = QuoteMode.TRAILING,
    duplicate_keys: DuplicateKeyPolicy = DuplicateKeyPolicy.LAST,
    strict: bool = False,
) -> Configuration:
    config = Configuration(path=path)
    for lineno, raw_line in enumerate(content.splitlines(), 1):
        stripped = raw_line.lstrip()
        if not stripped or stripped.startswith("#"):
            continue
        parsed = parse_line(raw_line, quotes)
        if parsed is None:
            config.skipped.append(SkippedLine(lineno, raw_line, "expected 'key: value'"))
            if strict:
                logger.warning("Skipping line %d: expected 'key: value', got %r", lineno, raw_line)
            continue
        key, value = parsed
        previous = config.entries.get(key)
        if previous is not None:
            config.repeated_keys.append(key)
            if duplicate_keys is DuplicateKeyPolicy.ERROR:
                raise DuplicateKeyError(key, previous.lineno, lineno)
            if duplicate_keys is DuplicateKeyPolicy.FIRST:
                logger.debug("Ignoring repeated key %s on line %d", key, lineno)
                continue
            logger.debug("Key %s on line %d overrides line %d", key, lineno, previous.lineno)
        config.entries[key] = ConfigEntry(key, value, lineno)
    return config


def parse_config_file(path: Path | str, **options) -> Configuration:
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigNotFound(config_path)
    try:
        content = config_path.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigNotFound(config_path, str(exc)) from exc
    logger.debug("Loaded %s", config_path)
    return parse_config_content(content, path=config_path, **options)


def serialize_entries(config: Configuration) -> str:
    lines = []
    for entry in config:
        # the parser drops one leading space from keys
        key = f" {entry.key}" if entry.key.startswith(" ") else entry.key
        lines.append(f"{key}: {entry.raw_value}\n")
    return "".join(lines)
