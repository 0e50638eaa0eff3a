"""File utilities for secure file operations."""

from __future__ import annotations

import os
from pathlib import Path


def write_file_atomic(path: Path, content: str, mode: int) -> None:
    """Replace path with content, permissions set at creation time.

    The content goes to a sibling temp file created with O_CREAT | O_EXCL
    and the final mode, then renamed over path. Readers see either the old
    file or the new one, never a partial write or a too-open mode.

    Args:
        path: Path to write to
        content: File content
        mode: File permission mode (e.g., 0o644, 0o600)

    Raises:
        OSError: If file creation or the rename fails
    """
    tmp_path = path.with_name(f".{path.name}.tmp-{os.getpid()}")
    fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        try:
            # O_CREAT's mode is filtered through the umask
            os.fchmod(fd, mode)
            os.write(fd, content.encode())
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
