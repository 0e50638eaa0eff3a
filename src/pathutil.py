"""Path algebra for persistent and ephemeral paths.

Everything here is pure string manipulation. Nothing touches the
filesystem, so the results are safe to compute before any mount exists.
"""

from __future__ import annotations

import re

from constants import UNIT_NAME_PREFIX
from errors import MalformedPathError

SEP = "/"

_DUPLICATE_SEPS = re.compile(r"/{2,}")
_UNIT_NAME_STRIP = re.compile(r"[^A-Za-z0-9_/-]")


def _require_absolute(path: str) -> None:
    if not path:
        raise MalformedPathError(path, "path is empty")
    if not path.startswith(SEP):
        raise MalformedPathError(path, "path must be absolute")
    if ".." in path.split(SEP):
        raise MalformedPathError(path, "'..' components are not allowed")


def strip_trailing(path: str) -> str:
    """Strip trailing separators, keeping '/' itself intact."""
    stripped = path.rstrip(SEP)
    return stripped if stripped else SEP


def normalize(path: str) -> str:
    """Collapse duplicate separators and strip trailing ones.

    Raises:
        MalformedPathError: If the path is empty, relative or contains '..'
    """
    _require_absolute(path)
    return strip_trailing(_DUPLICATE_SEPS.sub(SEP, path))


def join(base: str, rel: str) -> str:
    """Join a persistent root and an absolute ephemeral path.

    join("/state/", "/etc/ssh") -> "/state/etc/ssh"
    join("/", "/var") -> "/var"
    """
    _require_absolute(base)
    _require_absolute(rel)
    if base.endswith(SEP):
        base = base[:-1]
    return strip_trailing(_DUPLICATE_SEPS.sub(SEP, base + rel))


def segments(path: str) -> tuple[str, ...]:
    """Split an absolute path into its components, dropping empty ones.

    Returns a tuple so callers can walk it more than once.
    """
    _require_absolute(path)
    return tuple(part for part in path.split(SEP) if part)


def ancestors(path: str) -> tuple[str, ...]:
    """Return every ancestor of path, outermost first, including path.

    ancestors("/var/lib/iwd") -> ("/var", "/var/lib", "/var/lib/iwd")
    """
    result = []
    current = ""
    for part in segments(path):
        current = f"{current}{SEP}{part}"
        result.append(current)
    return tuple(result)


def parent(path: str) -> str:
    """Return the parent directory of an absolute path ('/' for top level)."""
    parts = segments(path)
    if len(parts) <= 1:
        return SEP
    return SEP + SEP.join(parts[:-1])


def is_under(path: str, prefix: str) -> bool:
    """Check whether path equals prefix or lies below it, component-wise.

    Unlike a plain string test, "/etcetera" is not under "/etc".
    """
    path_parts = segments(path)
    prefix_parts = segments(prefix)
    return path_parts[: len(prefix_parts)] == prefix_parts


def unit_name(root: str) -> str:
    """Derive a deterministic execution unit name from a persistent root.

    unit_name("/nix/persist") -> "createDirsIn--nix-persist"
    """
    _require_absolute(root)
    cleaned = _UNIT_NAME_STRIP.sub("", strip_trailing(root))
    return f"{UNIT_NAME_PREFIX}{cleaned.replace(SEP, '-')}"
