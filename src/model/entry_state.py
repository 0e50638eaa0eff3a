"""Per-entry activation state and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntryState(Enum):
    PENDING = "pending"
    DIRECTORY_READY = "directory-ready"
    MOUNTED = "mounted"
    LINKED = "linked"
    DONE = "done"
    FAILED = "failed"


# FAILED is reachable from every non-terminal state
_TRANSITIONS: dict[EntryState, frozenset[EntryState]] = {
    EntryState.PENDING: frozenset({EntryState.DIRECTORY_READY}),
    EntryState.DIRECTORY_READY: frozenset({EntryState.MOUNTED, EntryState.LINKED}),
    EntryState.MOUNTED: frozenset({EntryState.DONE}),
    EntryState.LINKED: frozenset({EntryState.DONE}),
    EntryState.DONE: frozenset(),
    EntryState.FAILED: frozenset(),
}


@dataclass
class EntryResult:
    """Tracks one directory or file entry through an activation run."""

    kind: str  # "directory" or "file"
    source: str
    target: str
    state: EntryState = EntryState.PENDING
    reason: str = ""
    history: list[EntryState] = field(default_factory=lambda: [EntryState.PENDING])

    def advance(self, new_state: EntryState) -> None:
        """Move to new_state.

        Raises:
            ValueError: If the transition is not allowed
        """
        if new_state is EntryState.FAILED:
            raise ValueError("Use fail() to mark an entry as failed")
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(
                f"Illegal transition {self.state.value} -> {new_state.value} for {self.target}"
            )
        self.state = new_state
        self.history.append(new_state)

    def fail(self, reason: str) -> None:
        if self.state in (EntryState.DONE, EntryState.FAILED):
            raise ValueError(f"Entry {self.target} already finished as {self.state.value}")
        self.state = EntryState.FAILED
        self.reason = reason
        self.history.append(EntryState.FAILED)

    @property
    def ok(self) -> bool:
        return self.state is EntryState.DONE

    def __str__(self) -> str:
        if self.state is EntryState.FAILED:
            return f"{self.kind} {self.target}: failed ({self.reason})"
        return f"{self.kind} {self.target}: {self.state.value}"


@dataclass
class UnitReport:
    """Results for one persistent root's unit of work."""

    root: str
    unit_name: str
    results: list[EntryResult] = field(default_factory=list)

    @property
    def failures(self) -> list[EntryResult]:
        return [r for r in self.results if r.state is EntryState.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class ActivationReport:
    """Outcome of a complete activation run."""

    units: list[UnitReport] = field(default_factory=list)
    mutations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failures(self) -> list[EntryResult]:
        return [r for unit in self.units for r in unit.failures]

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary_lines(self) -> list[str]:
        lines = []
        for unit in self.units:
            lines.append(f"{unit.unit_name} ({unit.root})")
            for result in unit.results:
                lines.append(f"  {result}")
        verb = "planned" if self.dry_run else "applied"
        lines.append(f"{len(self.mutations)} change(s) {verb}, {len(self.failures)} failure(s)")
        return lines
