"""Activation settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

import pathutil
from constants import (
    DEFAULT_ALLOWED_PREFIX,
    DEFAULT_FSTAB_PATH,
    DEFAULT_MOUNTINFO_PATH,
    DEFAULT_OVERLAY_ROOT,
)
from model.descriptors import LinkMode


class MissingSourcePolicy(Enum):
    """What to do when a persistent-side directory is missing.

    STRICT: fail the entry with MissingSourceError
    CREATE: create the directory on the persistent root and carry on
    """

    STRICT = "strict"
    CREATE = "create"


@dataclass(frozen=True)
class ActivationSettings:
    """Deployment policy for one activation run."""

    allowed_prefix: str = DEFAULT_ALLOWED_PREFIX
    missing_source: MissingSourcePolicy = MissingSourcePolicy.STRICT
    link_mode: LinkMode = LinkMode.DIRECT
    overlay_root: str = DEFAULT_OVERLAY_ROOT
    # Where the ephemeral tree is mounted, e.g. /mnt-root inside an initrd
    target_root: str = "/"
    fstab: Path = DEFAULT_FSTAB_PATH
    mountinfo: Path = DEFAULT_MOUNTINFO_PATH
    required_roots: tuple[str, ...] = field(default_factory=tuple)
    dry_run: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivationSettings":
        """Build settings from a config file's "settings" section.

        Raises:
            ValueError: On unknown keys or invalid enum values
        """
        known = {f for f in cls.__dataclass_fields__}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        return cls().with_overrides(**data)

    def with_overrides(self, **overrides: Any) -> "ActivationSettings":
        """Return a copy with overrides applied, skipping None values."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "missing_source" in values:
            values["missing_source"] = MissingSourcePolicy(values["missing_source"])
        if "link_mode" in values:
            values["link_mode"] = LinkMode(values["link_mode"])
        for key in ("fstab", "mountinfo"):
            if key in values:
                values[key] = Path(values[key])
        for key in ("allowed_prefix", "overlay_root", "target_root"):
            if key in values:
                values[key] = pathutil.normalize(values[key])
        if "required_roots" in values:
            values["required_roots"] = tuple(pathutil.normalize(p) for p in values["required_roots"])
        return replace(self, **values)
