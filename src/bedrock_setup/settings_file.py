"""Reading, backing up and rewriting the Claude Code settings file."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import backup_path
from .errors import BackupError, ParseError, ToolUnavailableError, WriteError
from .merge import MergeStrategy
from .record import ConfigurationRecord

logger = logging.getLogger(__name__)

Confirm = Callable[[Path], bool]


@dataclass
class WriteResult:
    path: Path
    strategy: str
    backup: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)


def read_existing(path: Path) -> Optional[bytes]:
    if not path.exists():
        return None
    return path.read_bytes()


def make_backup(path: Path) -> Optional[Path]:
    """Copy ``path`` verbatim to ``<path>.bak``, replacing any older backup.

    Returns the backup path, or None when there was nothing to back up.
    """
    if not path.exists():
        return None
    target = backup_path(path)
    try:
        shutil.copy2(path, target)
    except OSError as e:
        raise BackupError(f"could not back up {path} to {target}: {e}") from e
    logger.debug("backed up %s to %s", path, target)
    return target


def atomic_write(path: Path, content: bytes) -> None:
    """Replace ``path`` with ``content`` in a single rename.

    A symlinked ``path`` is resolved first so the link target is rewritten
    and the link itself survives.
    """
    target = path.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    logger.debug("wrote %d bytes to %s", len(content), target)


class SettingsWriter:
    """Applies a ConfigurationRecord to the settings file.

    Order of operations: read once, merge in memory, confirm if the strategy
    is destructive, back up, then one atomic write. Any failure before the
    write leaves the file untouched.
    """

    def __init__(
        self,
        path: Path,
        strategy: MergeStrategy,
        confirm_overwrite: Optional[Confirm] = None,
    ):
        self.path = path
        self.strategy = strategy
        self.confirm_overwrite = confirm_overwrite

    def render(self, existing: Optional[bytes], record: ConfigurationRecord) -> tuple[bytes, List[str]]:
        """Merge in memory. Unparsable input is treated as an empty document."""
        warnings: List[str] = []
        try:
            content = self.strategy.merge(existing, record)
        except ParseError as e:
            logger.debug("parse error in %s: %s", self.path, e)
            warnings.append(
                f"{self.path} is not valid JSON; starting from an empty settings document."
            )
            content = self.strategy.merge(None, record)
        return content, warnings

    def apply(self, record: ConfigurationRecord) -> WriteResult:
        record.validate()
        try:
            existing = read_existing(self.path)
        except OSError as e:
            raise WriteError(f"could not read {self.path}: {e}") from e

        if self.strategy.destructive and existing is not None:
            if self.confirm_overwrite is None or not self.confirm_overwrite(self.path):
                raise ToolUnavailableError(
                    f"Cannot merge settings with the {self.strategy.name} strategy; refusing to overwrite {self.path}."
                )

        content, warnings = self.render(existing, record)

        backup = make_backup(self.path) if existing is not None else None
        try:
            atomic_write(self.path, content)
        except OSError as e:
            raise WriteError(f"could not write {self.path}: {e}") from e
        return WriteResult(path=self.path, strategy=self.strategy.name, backup=backup, warnings=warnings)
