"""Mount and link descriptors produced by the planner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LinkMode(Enum):
    """How persisted files are exposed on the ephemeral side.

    DIRECT: a symlink at the file's own path
    OVERLAY: a link registered under the /etc overlay staging root
    """

    DIRECT = "direct"
    OVERLAY = "overlay"


def _fstab_escape(path: str) -> str:
    return (
        path.replace("\\", "\\134")
        .replace(" ", "\\040")
        .replace("\t", "\\011")
        .replace("\n", "\\012")
    )


@dataclass(frozen=True)
class MountDescriptor:
    """One bind mount of a persistent directory onto its ephemeral path."""

    source: str
    target: str
    options: tuple[str, ...] = ("bind",)
    # The target is created during activation, so fsck/presence checks are off
    no_check: bool = True

    def __str__(self) -> str:
        return f"{self.source} -> {self.target} ({','.join(self.options)})"

    def to_fstab_line(self) -> str:
        """Render as an fstab entry (pass 0 when no_check is set)."""
        passno = 0 if self.no_check else 2
        return (
            f"{_fstab_escape(self.source)} {_fstab_escape(self.target)} "
            f"none {','.join(self.options)} 0 {passno}"
        )


@dataclass(frozen=True)
class LinkDescriptor:
    """One persisted file: target on the ephemeral side points at source."""

    source: str
    target: str
    mode: LinkMode = LinkMode.DIRECT

    def __str__(self) -> str:
        suffix = " (overlay)" if self.mode is LinkMode.OVERLAY else ""
        return f"{self.target} -> {self.source}{suffix}"


@dataclass(frozen=True)
class RootPlan:
    """Everything one persistent root contributes to an activation run."""

    root: str
    unit_name: str
    mounts: tuple[MountDescriptor, ...] = field(default_factory=tuple)
    links: tuple[LinkDescriptor, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.mounts and not self.links

    def summary_lines(self) -> list[str]:
        lines = [f"{self.unit_name} ({self.root})"]
        for mount in self.mounts:
            lines.append(f"  mount {mount}")
        for link in self.links:
            lines.append(f"  link  {link}")
        if self.is_empty():
            lines.append("  (nothing to do)")
        return lines
