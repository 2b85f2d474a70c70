"""Document backups taken before the first write of a fix run."""

from __future__ import annotations

import re
import shutil
from pathlib import Path


def create_backup(path: Path) -> Path:
    """Copy ``path`` to the first free name of ``.backup``, ``.backup.1``, ..."""
    backup_path = path.with_name(f"{path.name}.backup")
    counter = 1
    while backup_path.exists():
        backup_path = path.with_name(f"{path.name}.backup.{counter}")
        counter += 1

    shutil.copy2(path, backup_path)
    return backup_path


def restore_backup(backup_path: Path, original_path: Path) -> None:
    if not backup_path.exists():
        msg = f"Backup file not found: {backup_path}"
        raise FileNotFoundError(msg)
    shutil.copy2(backup_path, original_path)


def list_backups(path: Path) -> list[Path]:
    pattern = re.compile(rf"^{re.escape(path.name)}\.backup(\.\d+)?$")
    return sorted(
        candidate
        for candidate in path.parent.iterdir()
        if candidate.is_file() and pattern.match(candidate.name)
    )


__all__ = ["create_backup", "list_backups", "restore_backup"]
