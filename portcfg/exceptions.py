"""Errors raised by the port configuration tool."""

from __future__ import annotations

from pathlib import Path


class PortConfigError(RuntimeError):
    """Base class for fatal port configuration failures."""


class ConfigNotFound(PortConfigError):
    """Raised when the configuration file is missing or unreadable."""

    def __init__(self, path: Path | str, reason: str | None = None) -> None:
        self.path = Path(path)
        message = f"Configuration file not found: {self.path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RegistryError(PortConfigError):
    """Raised when the key registry cannot be loaded or is inconsistent."""


class DuplicateKeyError(PortConfigError):
    """Raised when a key repeats and the duplicate-key policy forbids it."""

    def __init__(self, key: str, first_line: int, line: int) -> None:
        self.key = key
        self.first_line = first_line
        self.line = line
        super().__init__(f"Key '{key}' on line {line} already defined on line {first_line}")


class ConflictAborted(PortConfigError):
    """Raised when the operator declines to continue past a port in use."""

    def __init__(self, key: str, port: int) -> None:
        self.key = key
        self.port = port
        super().__init__("Exiting due to port conflict")
