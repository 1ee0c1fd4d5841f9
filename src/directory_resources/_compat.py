"""Cross-platform compatibility helpers."""

import logging
import os
import sys

logger = logging.getLogger(__name__)


def secure_file(path: "os.PathLike[str] | str") -> None:
    """Set restrictive permissions (owner-only read/write) on *path*.

    State files hold resolved configuration, including passwords, so they are
    kept private. POSIX permission bits have no real effect on Windows, where
    this is a no-op.
    """
    if sys.platform == "win32":
        return
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        # Some filesystems (e.g. mounted shares) do not support chmod
        logger.debug(f"Could not restrict permissions on {path}: {e}")
