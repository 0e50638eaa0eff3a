"""Render activation units as standalone POSIX shell scripts.

Early boot environments that cannot run Python (a minimal initrd, say)
can run these instead. Each script mirrors directories, bind mounts and
links for one persistent root the way ActivationRunner.run_unit does,
and exits non-zero if any entry failed.

In overlay mode the scripts only create the links under the overlay
root. The persist-overlay.json manifest is written by `persist activate`
alone.
"""

from __future__ import annotations

import shlex
from pathlib import Path

import pathutil
from errors import ConfigError
from fileutils import write_file_atomic
from model import ActivationSettings, LinkMode, MissingSourcePolicy, RootPlan

MIRROR_DIRS_FUNCTION = r'''
# mirror_dirs SOURCE_BASE TARGET
# Create every ancestor of TARGET under $target_root, copying owner, group
# and mode from the resolved directory at the same place under SOURCE_BASE.
mirror_dirs() {
    source_base="${1%/}"
    target="${2%/}"

    if [ "$strict" = 1 ]; then
        real="$(realpath -m "$source_base$target")"
        if [ ! -d "$real" ]; then
            printf "Bind source '%s' does not exist!\n" "$real" >&2
            return 1
        fi
    fi

    previous=""
    old_ifs=$IFS
    IFS=/
    for part in $target; do
        [ -n "$part" ] || continue
        IFS=$old_ifs
        previous="$previous/$part"
        real_source="$(realpath -m "$source_base$previous")"
        if [ ! -d "$real_source" ]; then
            if [ "$strict" = 1 ]; then
                printf "Bind source '%s' does not exist!\n" "$real_source" >&2
                return 1
            fi
            mkdir "$real_source" || return 1
        fi

        target_path="$target_root$previous"
        if [ -L "$target_path" ] || { [ -e "$target_path" ] && [ ! -d "$target_path" ]; }; then
            printf "Cannot replicate '%s': exists and is not a directory\n" "$target_path" >&2
            return 1
        fi
        [ -d "$target_path" ] || mkdir "$target_path" || return 1
        chown --reference="$real_source" "$target_path" || return 1
        chmod --reference="$real_source" "$target_path" || return 1
        IFS=/
    done
    IFS=$old_ifs
}
'''

LINK_FILE_FUNCTION = r'''
# link_file SOURCE LINK
# Create LINK -> SOURCE. An existing link to SOURCE is kept; anything else
# at LINK is reported and left alone.
link_file() {
    if [ -L "$2" ]; then
        [ "$(readlink "$2")" = "$1" ] && return 0
    elif [ ! -e "$2" ]; then
        ln -s "$1" "$2" && return 0
        return 1
    fi
    printf "Cannot link '%s' -> '%s': target exists and is not the expected link\n" "$2" "$1" >&2
    return 1
}
'''


def _target_prefix(settings: ActivationSettings) -> str:
    return "" if settings.target_root == "/" else settings.target_root


def render_unit_script(plan: RootPlan, settings: ActivationSettings) -> str:
    """Render one persistent root's activation as a shell script."""
    q = shlex.quote
    prefix = _target_prefix(settings)
    strict = 1 if settings.missing_source is MissingSourcePolicy.STRICT else 0

    lines = [
        "#!/bin/sh",
        f"# {plan.unit_name}: restore paths persisted on {plan.root}",
        "set -u",
        "",
        f"target_root={q(prefix)}",
        f"strict={strict}",
        "failed=0",
        MIRROR_DIRS_FUNCTION,
        LINK_FILE_FUNCTION,
    ]
    if any(link.mode is LinkMode.OVERLAY for link in plan.links):
        lines.append("# Overlay links only; persist-overlay.json is not updated here")

    for mount in plan.mounts:
        target = prefix + mount.target
        lines += [
            f"if mirror_dirs {q(plan.root)} {q(mount.target)}; then",
            f"    mountpoint -q {q(target)} || mount --bind {q(mount.source)} {q(target)} || failed=1",
            "else",
            "    failed=1",
            "fi",
        ]

    for link in plan.links:
        if link.mode is LinkMode.OVERLAY:
            path = pathutil.join(pathutil.join(settings.target_root, settings.overlay_root), link.target)
        else:
            path = prefix + link.target
        lines += [
            f"if mirror_dirs {q(plan.root)} {q(pathutil.parent(link.target))}; then",
        ]
        if link.mode is LinkMode.OVERLAY:
            lines.append(f"    mkdir -p {q(pathutil.parent(path))} || failed=1")
        lines += [
            f"    link_file {q(link.source)} {q(path)} || failed=1",
            "else",
            "    failed=1",
            "fi",
        ]

    lines += ["", 'exit "$failed"', ""]
    return "\n".join(lines)


def write_unit_scripts(plans: list[RootPlan], settings: ActivationSettings, out_dir: Path) -> list[Path]:
    """Write one executable script per unit into out_dir, named after the unit.

    Raises:
        ConfigError: If two roots derive the same unit name
    """
    names: dict[str, list[str]] = {}
    for plan in plans:
        names.setdefault(plan.unit_name, []).append(plan.root)
    clashes = [root for roots in names.values() if len(roots) > 1 for root in roots]
    if clashes:
        raise ConfigError(f"Roots share a unit name: {', '.join(clashes)}")

    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for plan in plans:
        path = out_dir / f"{plan.unit_name}.sh"
        write_file_atomic(path, render_unit_script(plan, settings), 0o755)
        written.append(path)
    return written
