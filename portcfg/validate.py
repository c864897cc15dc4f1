"""Range and duplicate checks for configured ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .classify import port_entries
from .parser import Configuration
from .probe import PortProbe, PortStatus, probe_entries
from .registry import PortBand

# Out-of-range ports are left out of both conflict passes so a bad value is
# reported once, not three times.
CONFLICT_SCOPE = "in-band"

Finding = Tuple[str, int]


def in_port_band(port: int, band: PortBand = PortBand()) -> bool:
    return port in band


def check_range(ports: Iterable[Finding], band: PortBand = PortBand()) -> Tuple[List[Finding], List[Finding]]:
    """Split ``(key, port)`` pairs into ``(valid, out_of_range)``."""
    valid: List[Finding] = []
    invalid: List[Finding] = []
    for key, port in ports:
        (valid if in_port_band(port, band) else invalid).append((key, port))
    return valid, invalid


def find_duplicates(ports: Iterable[Finding]) -> Dict[int, Tuple[str, ...]]:
    by_port: Dict[int, List[str]] = {}
    for key, port in ports:
        keys = by_port.setdefault(port, [])
        if key not in keys:
            keys.append(key)
    return {port: tuple(keys) for port, keys in sorted(by_port.items()) if len(keys) > 1}


@dataclass(frozen=True)
class ValidationReport:
    checked: Tuple[Finding, ...] = ()
    out_of_range: Tuple[Finding, ...] = ()
    duplicates: Dict[int, Tuple[str, ...]] = field(default_factory=dict)
    in_use: Tuple[Finding, ...] = ()
    unknown: Tuple[Finding, ...] = ()
    live_checked: bool = False
    conflict_scope: str = CONFLICT_SCOPE
    band: PortBand = PortBand()

    @property
    def ok(self) -> bool:
        return not (self.out_of_range or self.duplicates or self.in_use)

    @property
    def finding_count(self) -> int:
        return len(self.out_of_range) + len(self.duplicates) + len(self.in_use)

    def findings(self) -> List[str]:
        lines = [f"Port {port} in {key} is outside {self.band}" for key, port in self.out_of_range]
        for port, keys in self.duplicates.items():
            lines.append(f"Port {port} used by {', '.join(keys)}")
        lines.extend(f"Port {port} in {key} is already in use" for key, port in self.in_use)
        return lines

    def warnings(self) -> List[str]:
        return [f"Port {port} in {key} could not be checked" for key, port in self.unknown]


def build_report(
    config: Configuration,
    band: PortBand = PortBand(),
    probe: Optional[PortProbe] = None,
    secrets: Iterable[str] = (),
) -> ValidationReport:
    """Run the range check, the duplicate pass and, given a probe, the live pass.

    Keys listed in ``secrets`` are never treated as ports. The live pass
    reflects the host at the time of the call only; nothing stops another
    process from taking a port right after it was seen free.
    """
    ports = port_entries(config, secrets)
    valid, invalid = check_range(ports, band)
    in_use: List[Finding] = []
    unknown: List[Finding] = []
    if probe is not None:
        for key, port, status in probe_entries(valid, probe):
            if status is PortStatus.IN_USE:
                in_use.append((key, port))
            elif status is PortStatus.UNKNOWN:
                unknown.append((key, port))
    return ValidationReport(
        checked=tuple(ports),
        out_of_range=tuple(invalid),
        duplicates=find_duplicates(valid),
        in_use=tuple(in_use),
        unknown=tuple(unknown),
        live_checked=probe is not None,
        band=band,
    )
