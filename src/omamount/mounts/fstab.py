"""
Managed-block handling for /etc/fstab.

The tool owns exactly one region of the mount table, delimited by
FSTAB_BEGIN / FSTAB_END. Everything outside that region is preserved
verbatim, except legacy entries that would collide with a managed entry.
"""
import logging
import os
import shutil
import tempfile
from datetime import datetime
from typing import Iterable, List

from omamount.errors import MountTableWriteError
from omamount.mounts.models import FS_TYPE, FSTAB_BEGIN, FSTAB_COMMENT, FSTAB_END, DesiredConfig

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".omamount-bak."


def build_block(desired: DesiredConfig) -> List[str]:
    desired.require_complete()
    lines = [FSTAB_BEGIN, FSTAB_COMMENT]
    lines.extend(entry.to_line() for entry in desired.mount_entries())
    lines.append(FSTAB_END)
    return lines


def has_managed_block(text: str) -> bool:
    lines = text.splitlines()
    return FSTAB_BEGIN in lines and FSTAB_END in lines


def _is_under(path: str, root: str) -> bool:
    root = root.rstrip("/") or "/"
    if root == "/":
        return path.startswith("/")
    return path == root or path.startswith(root + "/")


def is_colliding(line: str, desired: DesiredConfig) -> bool:
    """True for an unmanaged entry that targets the managed endpoint or mount root."""
    fields = line.split()
    if len(fields) < 2 or fields[0].startswith("#"):
        return False

    remote, mount_point = fields[0], fields[1]
    if remote.lower().startswith(desired.remote_prefix.lower()):
        return True

    fs_type = fields[2] if len(fields) > 2 else ""
    return fs_type == FS_TYPE and _is_under(mount_point, desired.mount_root)


def _outside_block(lines: Iterable[str]) -> List[str]:
    kept = []
    in_block = False
    for line in lines:
        if line == FSTAB_BEGIN:
            # an unterminated block swallows the rest of the file
            in_block = True
            continue
        if line == FSTAB_END:
            in_block = False
            continue
        if not in_block:
            kept.append(line)
    return kept


def _join(lines: List[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


def strip_managed_block(current_text: str) -> str:
    return _join(_outside_block(current_text.splitlines()))


def merge(current_text: str, desired: DesiredConfig) -> str:
    """Return current_text with a single, freshly built managed block at the end."""
    block = build_block(desired)

    kept = []
    for line in _outside_block(current_text.splitlines()):
        if is_colliding(line, desired):
            logger.info(f"Dropping colliding fstab entry: {line}")
            continue
        kept.append(line)

    return _join(kept + block)


class FstabFile:
    def __init__(self, path: str):
        self.path = path

    def read(self) -> str:
        try:
            with open(self.path, "r") as f:
                return f.read()
        except FileNotFoundError:
            return ""

    def backup(self) -> str:
        backup_path = f"{self.path}{BACKUP_SUFFIX}{datetime.now().strftime('%Y%m%d%H%M%S')}"
        shutil.copy2(self.path, backup_path)
        return backup_path

    def commit(self, new_text: str) -> str:
        """
        Replace the mount table with new_text.

        The original is copied to a timestamped backup, the new content is
        written to a temporary file in the same directory and only then moved
        over the original, so a reader sees either the old or the new table.
        Returns the backup path (None when there was no previous table).
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            backup_path = self.backup() if os.path.exists(self.path) else None

            fd, tmp_path = tempfile.mkstemp(prefix=".fstab.omamount-", dir=directory)
            with os.fdopen(fd, "w") as f:
                f.write(new_text)
                f.flush()
                os.fsync(f.fileno())

            if os.path.exists(self.path):
                st = os.stat(self.path)
                os.chmod(tmp_path, st.st_mode & 0o7777)
                if os.geteuid() == 0:
                    os.chown(tmp_path, st.st_uid, st.st_gid)
            else:
                os.chmod(tmp_path, 0o644)
        except OSError as e:
            raise MountTableWriteError(
                f"Failed to prepare new {self.path} (temporary file: {tmp_path}): {e}",
                tmp_path=tmp_path,
            )

        try:
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise MountTableWriteError(
                f"Failed to replace {self.path}; new content left in {tmp_path}: {e}",
                tmp_path=tmp_path,
            )

        logger.info(f"Replaced {self.path} (backup: {backup_path})")
        return backup_path
