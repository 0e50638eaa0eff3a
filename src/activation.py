"""Activation runner: validate, plan, then restore every persisted path.

Each persistent root is one unit of work. Inside a unit, directories are
handled before files, and each entry goes through

    Pending -> DirectoryReady -> Mounted | Linked -> Done

with Failed reachable from anywhere. A failed entry never stops the
others: one broken path must not keep the rest of the system from
getting its state back at boot.
"""

from __future__ import annotations

import json
import logging
import stat
from pathlib import Path

import pathutil
from constants import OVERLAY_MANIFEST_NAME
from errors import LinkError, PersistError
from fsops import FilesystemOps
from model import (
    ActivationReport,
    ActivationSettings,
    EntryResult,
    EntryState,
    LinkDescriptor,
    LinkMode,
    MountDescriptor,
    PersistenceConfig,
    RootPlan,
    UnitReport,
)
from mounttable import BootMountTable, MountInfo
from planner import MountPlanner
from replicator import DirectoryReplicator
from validator import Validator

log = logging.getLogger(__name__)


class ActivationRunner:
    """Runs one activation pass for a PersistenceConfig."""

    def __init__(
        self,
        settings: ActivationSettings,
        ops: FilesystemOps | None = None,
        boot_table: BootMountTable | None = None,
    ) -> None:
        self.settings = settings
        self.ops = ops or FilesystemOps(MountInfo(settings.mountinfo), dry_run=settings.dry_run)
        self.boot_table = boot_table or BootMountTable.load(settings.fstab, settings.required_roots)
        self.validator = Validator(self.boot_table, settings.allowed_prefix)
        self.planner = MountPlanner(settings.link_mode)
        self.replicator = DirectoryReplicator(self.ops, settings.missing_source, settings.target_root)

    def plan(self, config: PersistenceConfig) -> tuple[list[RootPlan], list[str]]:
        """Validate and plan without touching the filesystem.

        Raises:
            ConfigError: If the config breaks a validation rule
        """
        warnings = self.validator.validate(config)
        return self.planner.plan(config), warnings

    def activate(self, config: PersistenceConfig) -> ActivationReport:
        """Validate, plan and apply config.

        Validation happens before the first mutation, so a ConfigError
        leaves the filesystem untouched.

        Raises:
            ConfigError: If the config breaks a validation rule
        """
        plans, warnings = self.plan(config)
        report = ActivationReport(warnings=warnings, dry_run=self.ops.dry_run)
        start = len(self.ops.mutations)

        for root_plan in plans:
            report.units.append(self.run_unit(root_plan))

        report.mutations = self.ops.mutations[start:]
        log.info(
            f"Activation finished: {len(report.mutations)} change(s), "
            f"{len(report.failures)} failure(s)"
        )
        return report

    def run_unit(self, plan: RootPlan) -> UnitReport:
        """Apply every entry of one persistent root, in order."""
        log.info(f"Running {plan.unit_name} for {plan.root}")
        unit = UnitReport(root=plan.root, unit_name=plan.unit_name)
        for mount in plan.mounts:
            unit.results.append(self._run_mount(plan.root, mount))
        for link in plan.links:
            unit.results.append(self._run_link(plan.root, link))
        return unit

    def _run_mount(self, root: str, mount: MountDescriptor) -> EntryResult:
        result = EntryResult(kind="directory", source=mount.source, target=mount.target)
        try:
            self.replicator.replicate(root, mount.target)
            result.advance(EntryState.DIRECTORY_READY)
            self.apply_mount(mount)
            result.advance(EntryState.MOUNTED)
            result.advance(EntryState.DONE)
        except PersistError as e:
            log.error(str(e))
            result.fail(str(e))
        return result

    def _run_link(self, root: str, link: LinkDescriptor) -> EntryResult:
        result = EntryResult(kind="file", source=link.source, target=link.target)
        try:
            self.replicator.replicate(root, pathutil.parent(link.target))
            result.advance(EntryState.DIRECTORY_READY)
            self.apply_link(link)
            result.advance(EntryState.LINKED)
            result.advance(EntryState.DONE)
        except PersistError as e:
            log.error(str(e))
            result.fail(str(e))
        return result

    def apply_mount(self, mount: MountDescriptor) -> None:
        """Bind mount unless the target is already a mount point.

        Raises:
            MountError: If the mount primitive fails
        """
        target = self.replicator.physical_target(mount.target)
        if self.ops.is_mounted(target):
            log.debug(f"{target} already mounted")
            return
        self.ops.bind_mount(mount.source, target)

    def link_path(self, link: LinkDescriptor) -> str:
        """Physical path where the link for this descriptor is created."""
        if link.mode is LinkMode.OVERLAY:
            return pathutil.join(self.overlay_root, link.target)
        return self.replicator.physical_target(link.target)

    @property
    def overlay_root(self) -> str:
        return pathutil.join(self.settings.target_root, self.settings.overlay_root)

    def apply_link(self, link: LinkDescriptor) -> None:
        """Create the symlink (or overlay registration) if it is absent.

        An existing link to the right source is left alone. Anything else
        in the way is reported rather than replaced.

        Raises:
            LinkError: If the link cannot be created
        """
        path = self.link_path(link)

        try:
            if self.ops.lstat(self.ops.resolve(link.source)) is None:
                log.warning(f"{link.source} does not exist yet; {link.target} will dangle until it is created")

            if link.mode is LinkMode.OVERLAY:
                self.ops.make_dirs(pathutil.parent(path))

            existing = self.ops.lstat(path)
            if existing is None:
                self.ops.symlink(link.source, path)
            elif stat.S_ISLNK(existing.st_mode) and self.ops.read_link(path) == link.source:
                log.debug(f"{path} already links to {link.source}")
            else:
                raise LinkError(link.source, path, "target exists and is not the expected link")
        except OSError as e:
            raise LinkError(link.source, path, e.strerror or str(e)) from e

        if link.mode is LinkMode.OVERLAY:
            self._register_overlay(link)

    def _manifest_path(self) -> Path:
        return Path(self.overlay_root) / OVERLAY_MANIFEST_NAME

    def load_overlay_manifest(self) -> dict[str, str]:
        """Load {target: source} registrations. Unreadable manifests count as empty."""
        path = self._manifest_path()
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            log.warning(f"Ignoring unreadable overlay manifest {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _register_overlay(self, link: LinkDescriptor) -> None:
        manifest = self.load_overlay_manifest()
        if manifest.get(link.target) == link.source:
            return
        manifest[link.target] = link.source
        try:
            self.ops.make_dirs(self.overlay_root)
            self.ops.write_file(
                self._manifest_path(),
                json.dumps(manifest, indent=2, sort_keys=True) + "\n",
                0o644,
            )
        except OSError as e:
            raise LinkError(link.source, link.target, f"cannot update overlay manifest: {e}") from e
