"""Filesystem and mount primitives used during activation.

All mutating calls go through FilesystemOps so a run can be logged,
counted (idempotence means a second run records nothing) and rehearsed
with dry_run.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from errors import MountError
from fileutils import write_file_atomic
from mounttable import MountInfo

log = logging.getLogger(__name__)


class FilesystemOps:
    """Thin wrapper over os.* and mount(8) that records every mutation."""

    def __init__(self, mountinfo: MountInfo, dry_run: bool = False) -> None:
        self.mountinfo = mountinfo
        self.dry_run = dry_run
        self.mutations: list[str] = []
        self._dry_mounts: set[str] = set()

    def _record(self, description: str) -> None:
        self.mutations.append(description)
        if self.dry_run:
            log.info(f"[dry-run] {description}")
        else:
            log.info(description)

    # Queries

    def resolve(self, path: str) -> str:
        """Follow every symlink in path. Missing tails are kept as-is."""
        return os.path.realpath(path)

    def stat(self, path: str) -> os.stat_result | None:
        try:
            return os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None

    def lstat(self, path: str) -> os.stat_result | None:
        try:
            return os.lstat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None

    def read_link(self, path: str) -> str | None:
        try:
            return os.readlink(path)
        except OSError:
            return None

    def is_mounted(self, target: str) -> bool:
        return target in self._dry_mounts or self.mountinfo.is_mounted(target)

    # Mutations

    def make_dir(self, path: str) -> None:
        """Create a single directory; an existing one counts as success."""
        if self.dry_run:
            self._record(f"mkdir {path}")
            return
        try:
            os.mkdir(path)
        except FileExistsError:
            log.debug(f"{path} already exists")
            return
        self._record(f"mkdir {path}")

    def make_dirs(self, path: str) -> None:
        if os.path.isdir(path):
            return
        self._record(f"mkdir -p {path}")
        if not self.dry_run:
            os.makedirs(path, exist_ok=True)

    def set_owner(self, path: str, uid: int, gid: int) -> None:
        self._record(f"chown {uid}:{gid} {path}")
        if not self.dry_run:
            os.chown(path, uid, gid, follow_symlinks=False)

    def set_mode(self, path: str, mode: int) -> None:
        self._record(f"chmod {mode:04o} {path}")
        if not self.dry_run:
            os.chmod(path, mode)

    def symlink(self, source: str, target: str) -> None:
        self._record(f"ln -s {source} {target}")
        if not self.dry_run:
            os.symlink(source, target)

    def write_file(self, path: Path, content: str, mode: int) -> None:
        self._record(f"write {path}")
        if not self.dry_run:
            write_file_atomic(path, content, mode)

    def bind_mount(self, source: str, target: str) -> None:
        """Bind mount source onto target.

        Raises:
            MountError: If mount(8) is missing or fails
        """
        self._record(f"mount --bind {source} {target}")
        if self.dry_run:
            self._dry_mounts.add(target)
            return
        self._mount(source, target)

    def _mount(self, source: str, target: str) -> None:
        try:
            subprocess.run(
                ["mount", "--bind", source, target],
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise MountError(source, target, "mount(8) not found") from e
        except subprocess.CalledProcessError as e:
            reason = (e.stderr or "").strip() or f"exit status {e.returncode}"
            raise MountError(source, target, reason) from e
