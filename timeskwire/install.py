from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

from .errors import InstallError

logger = logging.getLogger(__name__)

EXTENSION_NAME = "timeskwire"
DEFAULT_EXTENSION_SUBDIR = Path(".timewarrior") / "extensions"


def default_extension_dir() -> Path:
    return Path.home() / DEFAULT_EXTENSION_SUBDIR


def current_executable() -> Path:
    found = shutil.which(EXTENSION_NAME)
    if found:
        return Path(found).resolve()
    return Path(sys.argv[0]).resolve()


def install_extension(extension_dir: Path, executable: Path, *, force: bool = False) -> Path:
    """Symlink ``executable`` into Timewarrior's extension directory."""
    if not extension_dir.is_dir():
        raise InstallError(f"{extension_dir}: No such file or directory")

    target = extension_dir / EXTENSION_NAME
    try:
        if target.exists() or target.is_symlink():
            if not force:
                raise InstallError(f"{target} already exists, use --force to replace it")
            logger.debug("force is set, removing %s", target)
            target.unlink()

        logger.info("Bootstrapping %s at %s", executable, target)
        target.symlink_to(executable)
    except OSError as exc:
        raise InstallError(f"Could not symlink to {target}: {exc}") from exc
    return target
