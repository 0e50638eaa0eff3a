"""Shared constants for persist."""

from pathlib import Path

PERSIST_VERSION = "0.3.0"

# Files may only be persisted below this prefix unless configured otherwise
DEFAULT_ALLOWED_PREFIX = "/etc"

DEFAULT_CONFIG_PATH = Path("/etc/persist/persistence.json")
DEFAULT_FSTAB_PATH = Path("/etc/fstab")
DEFAULT_MOUNTINFO_PATH = Path("/proc/self/mountinfo")

# Staging directory consumed by the /etc overlay composer
DEFAULT_OVERLAY_ROOT = "/run/persist/etc-overlay"
OVERLAY_MANIFEST_NAME = "persist-overlay.json"

# fstab options that mark a filesystem as mounted before activation runs
BOOT_REQUIRED_OPTIONS = frozenset({"x-initrd.mount", "neededForBoot"})

UNIT_NAME_PREFIX = "createDirsIn-"
