"""Collection of non-fatal diagnostic events.

The statistical routines never print or warn directly. They append
:class:`DiagnosticEvent` records to a :class:`Diagnostics` collector, and
the public entry points decide how to surface them.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal

type DiagnosticLevel = Literal["info", "warning"]


class ContaminantWarning(UserWarning):
    """Warning category used when replaying diagnostic events."""


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """A single non-fatal condition observed during classification.

    Attributes
    ----------
    level : {"info", "warning"}
        Severity of the event.
    code : str
        Stable machine-readable identifier, e.g. ``"na_prevalence_pvalue"``.
    message : str
        Human-readable description.
    feature : str | None
        Feature identifier the event refers to, if any.
    batch : str | None
        Batch label the event refers to, if any.
    """

    level: DiagnosticLevel
    code: str
    message: str
    feature: str | None = None
    batch: str | None = None


@dataclass(slots=True)
class Diagnostics:
    """Append-only sink for :class:`DiagnosticEvent` records."""

    events: list[DiagnosticEvent] = field(default_factory=list)

    def info(self, code: str, message: str, **context: str | None) -> None:
        self.events.append(DiagnosticEvent("info", code, message, **context))

    def warning(self, code: str, message: str, **context: str | None) -> None:
        self.events.append(DiagnosticEvent("warning", code, message, **context))

    @property
    def warnings(self) -> list[DiagnosticEvent]:
        return [e for e in self.events if e.level == "warning"]

    def __iter__(self) -> Iterator[DiagnosticEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


def emit_events(
    events: list[DiagnosticEvent] | tuple[DiagnosticEvent, ...],
    logger: logging.Logger,
    stacklevel: int = 3,
) -> None:
    """Replay events: warnings via :mod:`warnings`, notices via ``logger``."""
    for event in events:
        if event.level == "warning":
            warnings.warn(event.message, ContaminantWarning, stacklevel=stacklevel)
        else:
            logger.info(event.message)
