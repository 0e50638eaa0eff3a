"""Error taxonomy for persist.

Configuration errors abort a run before anything touches the filesystem.
Everything else is scoped to a single entry so unrelated paths still get
restored.
"""

from __future__ import annotations

from dataclasses import dataclass


class PersistError(Exception):
    """Base class for all persist errors."""


class MalformedPathError(PersistError, ValueError):
    """A path is empty, relative, or contains '..' components."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed path {path!r}: {reason}")


class MissingSourceError(PersistError):
    """A persistent-side directory does not exist (strict mode)."""

    def __init__(self, path: str, reason: str = "does not exist") -> None:
        self.path = path
        super().__init__(f"Bind source '{path}' {reason}!")


@dataclass(frozen=True)
class RuleViolation:
    """One violated configuration rule and every path that broke it."""

    option: str
    summary: str
    offenders: tuple[str, ...]

    def format(self) -> str:
        listing = "\n      ".join(self.offenders)
        return (
            f"{self.option}:\n"
            f"    {self.summary}\n"
            "\n"
            "    Please fix or remove the following paths:\n"
            f"      {listing}\n"
        )


class ConfigError(PersistError):
    """Configuration is unsafe to apply."""

    def __init__(self, message: str, violations: list[RuleViolation] | None = None) -> None:
        self.violations = list(violations or [])
        if self.violations:
            message = message + "\n\n" + "\n".join(v.format() for v in self.violations)
        super().__init__(message)

    @property
    def offenders(self) -> list[str]:
        return [path for v in self.violations for path in v.offenders]


class ReplicationError(PersistError):
    """Creating an ephemeral directory or copying its metadata failed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot replicate '{path}': {reason}")


class MountError(PersistError):
    """The bind mount primitive failed."""

    def __init__(self, source: str, target: str, reason: str) -> None:
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot bind mount '{source}' on '{target}': {reason}")


class LinkError(PersistError):
    """Creating a symlink or overlay registration failed."""

    def __init__(self, source: str, target: str, reason: str) -> None:
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot link '{target}' -> '{source}': {reason}")
