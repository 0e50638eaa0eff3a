"""Configuration checks that must pass before anything is mounted."""

from __future__ import annotations

import logging

import pathutil
from constants import DEFAULT_ALLOWED_PREFIX
from errors import ConfigError, RuleViolation
from model import PersistenceConfig
from mounttable import BootMountTable

log = logging.getLogger(__name__)


class Validator:
    """Checks a PersistenceConfig against the deployment's rules.

    Every rule runs over the whole config and every offender is reported
    at once, so an operator can fix the configuration in one pass.
    """

    def __init__(self, boot_table: BootMountTable, allowed_prefix: str = DEFAULT_ALLOWED_PREFIX) -> None:
        self.boot_table = boot_table
        self.allowed_prefix = pathutil.normalize(allowed_prefix)

    def files_outside_prefix(self, config: PersistenceConfig) -> list[str]:
        return [p for p in config.all_files if not pathutil.is_under(p, self.allowed_prefix)]

    def roots_not_required_at_boot(self, config: PersistenceConfig) -> list[str]:
        return [p for p in config.root_paths if not self.boot_table.is_required_at_boot(p)]

    def roots_sharing_unit_name(self, config: PersistenceConfig) -> list[str]:
        """Roots whose unit name another root also derives, e.g. /a.b and /ab."""
        by_name: dict[str, list[str]] = {}
        for root in config.roots:
            by_name.setdefault(root.unit_name, []).append(root.path)
        return [p for paths in by_name.values() if len(paths) > 1 for p in paths]

    def violations(self, config: PersistenceConfig) -> list[RuleViolation]:
        found = []

        offenders = self.files_outside_prefix(config)
        if offenders:
            found.append(RuleViolation(
                option="persistence.files",
                summary=f"Only files in {self.allowed_prefix} are supported.",
                offenders=tuple(offenders),
            ))

        offenders = self.roots_not_required_at_boot(config)
        if offenders:
            found.append(RuleViolation(
                option="persistence",
                summary=(
                    "All filesystems used for persistent storage must be "
                    "mounted before activation (x-initrd.mount)."
                ),
                offenders=tuple(offenders),
            ))

        offenders = self.roots_sharing_unit_name(config)
        if offenders:
            found.append(RuleViolation(
                option="persistence",
                summary="Persistent roots must derive distinct unit names.",
                offenders=tuple(offenders),
            ))

        return found

    def validate(self, config: PersistenceConfig) -> list[str]:
        """Validate config and return non-fatal warnings.

        Raises:
            ConfigError: Listing every violated rule and its offending paths
        """
        found = self.violations(config)
        if found:
            raise ConfigError("Refusing to activate an unsafe persistence configuration.", found)

        warnings = self.warnings(config)
        for warning in warnings:
            log.warning(warning)
        return warnings

    def warnings(self, config: PersistenceConfig) -> list[str]:
        """Targets claimed by more than one root: the last activated root wins."""
        return [
            f"{target} is persisted by several roots: {', '.join(roots)}"
            for target, roots in config.targets_by_root().items()
            if len(roots) > 1
        ]
