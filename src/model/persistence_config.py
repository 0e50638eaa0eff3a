"""Normalized persistence configuration model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import pathutil
from errors import ConfigError

ENTRY_KEYS = ("files", "directories")


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory persisted through a bind mount."""

    path: str

    def __str__(self) -> str:
        return f"{self.path} (dir)"


@dataclass(frozen=True)
class FileEntry:
    """A file persisted through a symlink or overlay registration."""

    path: str

    def __str__(self) -> str:
        return f"{self.path} (file)"


@dataclass(frozen=True)
class PersistentRoot:
    """A persistent storage root and the entries stored on it.

    Identity is the path: two roots with the same path are the same root.
    """

    path: str
    directories: tuple[DirectoryEntry, ...] = ()
    files: tuple[FileEntry, ...] = ()

    @property
    def unit_name(self) -> str:
        return pathutil.unit_name(self.path)

    def is_empty(self) -> bool:
        return not self.directories and not self.files


@dataclass(frozen=True)
class PersistenceConfig:
    """Read-only mapping of persistent root -> entries.

    Built once per activation run and passed explicitly to every stage.
    Roots are kept sorted by path; entries keep their configured order.
    """

    roots: tuple[PersistentRoot, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PersistenceConfig":
        """Build a config from {root: {"files": [...], "directories": [...]}}.

        Raises:
            MalformedPathError: If any root or entry path is malformed
            ConfigError: If the mapping has the wrong shape
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"persistence must be a mapping, got {type(data).__name__}")

        merged: dict[str, dict[str, list[str]]] = {}
        for root_path, entries in data.items():
            if entries is None:
                entries = {}
            if not isinstance(entries, Mapping):
                raise ConfigError(f"persistence.{root_path} must be a mapping")
            unknown = sorted(set(entries) - set(ENTRY_KEYS))
            if unknown:
                raise ConfigError(
                    f"persistence.{root_path}: unknown keys {', '.join(unknown)}"
                )

            root = pathutil.normalize(root_path)
            # "/state" and "/state/" are the same root
            slot = merged.setdefault(root, {key: [] for key in ENTRY_KEYS})
            for key in ENTRY_KEYS:
                paths = entries.get(key, [])
                if isinstance(paths, str) or not isinstance(paths, (list, tuple)):
                    raise ConfigError(f"persistence.{root_path}.{key} must be a list of paths")
                slot[key].extend(pathutil.normalize(p) for p in paths)

        roots = tuple(
            PersistentRoot(
                path=root,
                directories=tuple(DirectoryEntry(p) for p in merged[root]["directories"]),
                files=tuple(FileEntry(p) for p in merged[root]["files"]),
            )
            for root in sorted(merged)
        )
        return cls(roots=roots)

    def to_mapping(self) -> dict[str, dict[str, list[str]]]:
        return {
            root.path: {
                "files": [f.path for f in root.files],
                "directories": [d.path for d in root.directories],
            }
            for root in self.roots
        }

    def get_root(self, path: str) -> PersistentRoot | None:
        wanted = pathutil.normalize(path)
        for root in self.roots:
            if root.path == wanted:
                return root
        return None

    @property
    def root_paths(self) -> list[str]:
        return [root.path for root in self.roots]

    @property
    def all_files(self) -> list[str]:
        return [f.path for root in self.roots for f in root.files]

    def targets_by_root(self) -> dict[str, list[str]]:
        """Map every ephemeral target to the roots that claim it."""
        claims: dict[str, list[str]] = {}
        for root in self.roots:
            for entry in (*root.directories, *root.files):
                owners = claims.setdefault(entry.path, [])
                if root.path not in owners:
                    owners.append(root.path)
        return claims
