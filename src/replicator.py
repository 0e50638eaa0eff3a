"""Replicate directory scaffolding from a persistent root onto the ephemeral root.

Given a persistent root /state and an ephemeral directory /var/lib/iwd,
every level of the path is walked outermost first:

    /state/var          -> /var
    /state/var/lib      -> /var/lib
    /state/var/lib/iwd  -> /var/lib/iwd

At each level the ephemeral directory is created if missing, then given
the owner, group and mode of the persistent directory. The persistent
path is always resolved first so a symlink on the persistent side never
lends its own metadata to the ephemeral directory.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass

import pathutil
from errors import MissingSourceError, ReplicationError
from fsops import FilesystemOps
from model.settings import MissingSourcePolicy

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AncestorStep:
    """One level of the walk: persistent path and its ephemeral twin."""

    source_path: str
    target_path: str


class DirectoryReplicator:
    """Mirror the ancestor chain of ephemeral directories from a persistent root."""

    def __init__(
        self,
        ops: FilesystemOps,
        policy: MissingSourcePolicy = MissingSourcePolicy.STRICT,
        target_root: str = "/",
    ) -> None:
        self.ops = ops
        self.policy = policy
        self.target_root = pathutil.normalize(target_root)

    def steps(self, persistent_root: str, target_dir: str) -> tuple[AncestorStep, ...]:
        """List the walk for target_dir without touching the filesystem."""
        return tuple(
            AncestorStep(source_path=pathutil.join(persistent_root, current), target_path=current)
            for current in pathutil.ancestors(target_dir)
        )

    def physical_target(self, path: str) -> str:
        """Where a logical ephemeral path lives on disk right now."""
        return pathutil.join(self.target_root, path)

    def replicate(self, persistent_root: str, target_dir: str) -> tuple[AncestorStep, ...]:
        """Ensure target_dir and all its ancestors exist with mirrored metadata.

        Failure aborts this directory only. Ancestors already handled stay
        corrected; a later run picks up where this one stopped.

        Raises:
            MissingSourceError: A persistent directory is missing (strict mode)
            ReplicationError: The ephemeral side could not be created or updated
        """
        walk = self.steps(persistent_root, target_dir)
        if not walk:
            return walk

        if self.policy is MissingSourcePolicy.STRICT:
            # Refuse up front so a missing leaf leaves no half-built scaffolding
            self._resolve_source(walk[-1].source_path)

        for step in walk:
            self._replicate_step(step)
        return walk

    def _resolve_source(self, source_path: str) -> tuple[str, os.stat_result | None]:
        resolved = source_path
        try:
            resolved = self.ops.resolve(source_path)
            st = self.ops.stat(resolved)
        except OSError as e:
            # Symlink loops, permission errors: scoped to this entry
            raise ReplicationError(resolved, e.strerror or str(e)) from e
        if st is not None:
            if not stat.S_ISDIR(st.st_mode):
                raise MissingSourceError(resolved, "is not a directory")
            return resolved, st

        if self.policy is MissingSourcePolicy.STRICT:
            raise MissingSourceError(resolved)

        log.warning(f"Creating missing persistent directory {resolved}")
        try:
            self.ops.make_dir(resolved)
        except OSError as e:
            raise ReplicationError(resolved, e.strerror or str(e)) from e
        # None in dry-run mode: there is no metadata to copy yet
        return resolved, self.ops.stat(resolved)

    def _replicate_step(self, step: AncestorStep) -> None:
        resolved, source_st = self._resolve_source(step.source_path)
        target = self.physical_target(step.target_path)

        try:
            target_st = self.ops.lstat(target)
            if target_st is None:
                self.ops.make_dir(target)
                target_st = self.ops.lstat(target)
            elif stat.S_ISLNK(target_st.st_mode):
                raise ReplicationError(target, "exists and is a symlink")
            elif not stat.S_ISDIR(target_st.st_mode):
                raise ReplicationError(target, "exists and is not a directory")

            if source_st is None:
                return

            if target_st is None or (target_st.st_uid, target_st.st_gid) != (source_st.st_uid, source_st.st_gid):
                self.ops.set_owner(target, source_st.st_uid, source_st.st_gid)

            mode = stat.S_IMODE(source_st.st_mode)
            if target_st is None or stat.S_IMODE(target_st.st_mode) != mode:
                self.ops.set_mode(target, mode)
        except OSError as e:
            raise ReplicationError(target, e.strerror or str(e)) from e

        log.debug(f"{target} mirrors {resolved}")
