"""Readers for the boot mount table (fstab) and the live mount table."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import pathutil
from constants import BOOT_REQUIRED_OPTIONS

log = logging.getLogger(__name__)

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def unescape_mount_path(field: str) -> str:
    """Decode the octal escapes used by fstab and mountinfo ("\\040" -> " ")."""
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


@dataclass(frozen=True)
class FstabEntry:
    device: str
    mountpoint: str
    fstype: str
    options: tuple[str, ...]

    @property
    def required_at_boot(self) -> bool:
        return bool(BOOT_REQUIRED_OPTIONS.intersection(self.options))


def parse_fstab(text: str) -> list[FstabEntry]:
    """Parse fstab content. Comments, blank and short lines are skipped."""
    entries = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        fields = stripped.split()
        if len(fields) < 3:
            log.warning(f"Skipping malformed fstab line {lineno}: {line!r}")
            continue
        options = tuple(fields[3].split(",")) if len(fields) > 3 else ("defaults",)
        mountpoint = unescape_mount_path(fields[1])
        if mountpoint.startswith("/"):
            mountpoint = pathutil.normalize(mountpoint)
        entries.append(FstabEntry(
            device=unescape_mount_path(fields[0]),
            mountpoint=mountpoint,
            fstype=fields[2],
            options=options,
        ))
    return entries


class BootMountTable:
    """Which mount points are guaranteed to be mounted before activation.

    A mount point qualifies when its fstab entry carries one of the
    BOOT_REQUIRED_OPTIONS, when it is '/', or when it is listed in extra.
    """

    def __init__(self, entries: list[FstabEntry], extra: tuple[str, ...] = ()) -> None:
        self.entries = entries
        self._required = {"/"}
        self._required.update(e.mountpoint for e in entries if e.required_at_boot)
        self._required.update(pathutil.normalize(p) for p in extra)

    @classmethod
    def load(cls, fstab_path: Path, extra: tuple[str, ...] = ()) -> "BootMountTable":
        if not fstab_path.exists():
            log.warning(f"fstab not found at {fstab_path}; only '/' counts as required at boot")
            return cls([], extra)
        return cls(parse_fstab(fstab_path.read_text()), extra)

    def is_required_at_boot(self, mountpoint: str) -> bool:
        return pathutil.normalize(mountpoint) in self._required


def parse_mountinfo(text: str) -> set[str]:
    """Return the set of mount points listed in /proc/<pid>/mountinfo content."""
    mountpoints = set()
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 5:
            continue
        mountpoints.add(unescape_mount_path(fields[4]))
    return mountpoints


class MountInfo:
    """Live mount table, re-read on every query.

    os.path.ismount() misses bind mounts within one filesystem, so the
    kernel's mountinfo is the authority.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def mountpoints(self) -> set[str]:
        try:
            return parse_mountinfo(self.path.read_text())
        except FileNotFoundError:
            log.warning(f"Mount table {self.path} not available; assuming nothing is mounted")
            return set()

    def is_mounted(self, target: str) -> bool:
        return target in self.mountpoints()
