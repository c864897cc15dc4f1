"""
Service port configuration for the demo stacks.

Loads ``config/port_config.txtpb``, checks every port against the port band,
looks for duplicates and ports already bound on the host, and exports the
entries as environment variables. Run ``python -m portcfg --help``.
"""

__version__ = "0.1.0"

__all__ = [
    "classify",
    "decision",
    "export",
    "parser",
    "probe",
    "registry",
    "validate",
]
