"""Turn a PersistenceConfig into bind mount and link descriptors.

Planning is pure: nothing is mounted or linked here, and the same config
always yields the same plan so runs can be logged and diffed.
"""

from __future__ import annotations

import pathutil
from model import (
    LinkDescriptor,
    LinkMode,
    MountDescriptor,
    PersistenceConfig,
    PersistentRoot,
    RootPlan,
)


class MountPlanner:
    """Derive per-root activation plans."""

    def __init__(self, link_mode: LinkMode = LinkMode.DIRECT) -> None:
        self.link_mode = link_mode

    def plan_root(self, root: PersistentRoot) -> RootPlan:
        mounts = tuple(
            MountDescriptor(source=pathutil.join(root.path, entry.path), target=entry.path)
            for entry in root.directories
        )
        links = tuple(
            LinkDescriptor(
                source=pathutil.join(root.path, entry.path),
                target=entry.path,
                mode=self.link_mode,
            )
            for entry in root.files
        )
        return RootPlan(root=root.path, unit_name=root.unit_name, mounts=mounts, links=links)

    def plan(self, config: PersistenceConfig) -> list[RootPlan]:
        """One RootPlan per persistent root, in the config's (sorted) root order."""
        return [self.plan_root(root) for root in config.roots]


def fstab_lines(plans: list[RootPlan]) -> list[str]:
    """Mount table contribution: one fstab line per bind mount."""
    return [mount.to_fstab_line() for plan in plans for mount in plan.mounts]
