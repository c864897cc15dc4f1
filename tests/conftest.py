from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable

import pytest

from portcfg.probe import PortStatus
from portcfg.registry import load_registry


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    def _write(content: str, name: str = "port_config.txtpb") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def registry():
    return load_registry()


class FakeProbe:
    """Probe answering from a fixed table and recording what was asked."""

    def __init__(self, busy: Iterable[int] = (), unknown: Iterable[int] = ()) -> None:
        self.status: Dict[int, PortStatus] = {port: PortStatus.IN_USE for port in busy}
        self.status.update({port: PortStatus.UNKNOWN for port in unknown})
        self.calls: list[int] = []

    def __call__(self, port: int) -> PortStatus:
        self.calls.append(port)
        return self.status.get(port, PortStatus.FREE)


@pytest.fixture
def fake_probe() -> Callable[..., FakeProbe]:
    return FakeProbe
