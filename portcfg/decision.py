"""Policies deciding whether to continue when a configured port is in use."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Iterable, Optional, Protocol, TextIO, Tuple

from .exceptions import ConflictAborted

logger = logging.getLogger(__name__)

POLICIES = ("ask", "continue", "abort")
PROMPT = "Do you want to continue anyway? (y/N): "


class ConflictDecision(Protocol):
    """Decides whether export may proceed past a port that is already bound."""

    def confirm(self, key: str, port: int) -> bool:
        """Return True to continue, False to abort."""


class AlwaysContinue:
    def confirm(self, key: str, port: int) -> bool:
        logger.warning("Continuing although port %d (%s) is in use", port, key)
        return True


class AlwaysAbort:
    def confirm(self, key: str, port: int) -> bool:
        return False


def read_reply(prompt: str) -> str:
    # prompt on stderr so stdout stays usable for `eval "$(portcfg export --shell)"`
    sys.stderr.write(prompt)
    sys.stderr.flush()
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    return line


class InteractivePrompt:
    """Ask on the terminal; only an answer starting with ``y`` continues."""

    def __init__(
        self,
        reader: Callable[[str], str] = read_reply,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.reader = reader
        self.stream = stream

    def confirm(self, key: str, port: int) -> bool:
        print(f"Warning: Port {port} is already in use!", file=self.stream or sys.stderr)
        try:
            reply = self.reader(PROMPT)
        except EOFError:
            return False
        return reply.strip()[:1] in ("y", "Y")


def policy_from_name(name: str, stdin: Optional[TextIO] = None) -> ConflictDecision:
    if name == "continue":
        return AlwaysContinue()
    if name == "abort":
        return AlwaysAbort()
    if name == "ask":
        stdin = stdin if stdin is not None else sys.stdin
        if stdin is None or not stdin.isatty():
            logger.warning("stdin is not a terminal; treating port conflicts as abort (use --on-conflict)")
            return AlwaysAbort()
        return InteractivePrompt()
    raise ValueError(f"Unknown conflict policy '{name}' (expected one of: {', '.join(POLICIES)})")


def confirm_conflicts(in_use: Iterable[Tuple[str, int]], decision: ConflictDecision) -> None:
    """Ask once per port in use; raise ConflictAborted on the first refusal."""
    for key, port in in_use:
        if not decision.confirm(key, port):
            raise ConflictAborted(key, port)
