import logging
import os
import shutil
import stat
import subprocess
from datetime import datetime
from typing import List, Optional

import psutil

from omamount.credentials.manager import CredentialStore
from omamount.mounts.models import MountEntry
from omamount.pkgs.manager import detect_package_manager, ensure_client_tool, which
from omamount.system.base import MountResult, PathInfo, System
from omamount.systemd.manager import SystemdManager

logger = logging.getLogger(__name__)


class LocalSystem(System):
    """Probe and effector backed by the running host."""

    def __init__(self, systemd: Optional[SystemdManager] = None):
        self.systemd = systemd or SystemdManager()

    # probe

    def has_command(self, name: str) -> bool:
        return which(name) is not None

    def stat(self, path: str) -> Optional[PathInfo]:
        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        return PathInfo(
            path=path,
            is_dir=stat.S_ISDIR(st.st_mode),
            is_file=stat.S_ISREG(st.st_mode),
            uid=st.st_uid,
            gid=st.st_gid,
            mode=stat.S_IMODE(st.st_mode),
        )

    def read_text(self, path: str) -> str:
        try:
            with open(path, "r") as f:
                return f.read()
        except (FileNotFoundError, NotADirectoryError):
            return ""

    def is_mounted(self, path: str) -> bool:
        target = os.path.realpath(path)
        for part in psutil.disk_partitions(all=True):
            # an idle automount shows up as autofs and does not count
            if part.mountpoint == target and part.fstype != "autofs":
                return True
        return False

    def mounts_under(self, root: str) -> List[str]:
        target = os.path.realpath(root).rstrip("/") or "/"
        prefix = target if target == "/" else target + "/"
        found = [
            part.mountpoint
            for part in psutil.disk_partitions(all=True)
            if part.mountpoint == target or part.mountpoint.startswith(prefix)
        ]
        # later mounts stack on earlier ones at the same path
        found.reverse()
        return sorted(found, key=lambda m: m.count("/"), reverse=True)

    def package_manager_name(self) -> str:
        return detect_package_manager()

    def is_systemd(self) -> bool:
        return self.systemd.is_systemd()

    def network_wait_online_status(self) -> Optional[str]:
        if not self.is_systemd():
            return None
        status = self.systemd.get_service_status("network-wait-online")
        if not status.unit:
            return None
        return f"{status.unit} ({status.active_state}, {status.unit_file_state})"

    # effector

    def install_client_tool(self):
        ensure_client_tool()

    def make_dir(self, path: str, mode: int = 0o755):
        os.makedirs(path, mode=mode, exist_ok=True)
        os.chmod(path, mode)

    def relocate(self, path: str) -> str:
        target = f"{path}.omamount-bak.{datetime.now().strftime('%Y%m%d%H%M%S')}"
        os.rename(path, target)
        logger.info(f"Moved {path} to {target}")
        return target

    def enforce_credential_permissions(self, path: str):
        CredentialStore(path).enforce_permissions()

    def configure_service_manager(self, unit_dir: str) -> bool:
        if not self.is_systemd():
            return False
        self.systemd.enable_network_wait_online()
        self.systemd.install_helper_unit(unit_dir)
        self.systemd.daemon_reload()
        return True

    def remove_service_unit(self, unit_dir: str) -> bool:
        return self.systemd.remove_helper_unit(unit_dir)

    def daemon_reload(self):
        if self.is_systemd():
            self.systemd.daemon_reload()

    def mount(self, entry: MountEntry) -> MountResult:
        # fstab supplies the remote and options
        result = subprocess.run(["mount", entry.mount_point], capture_output=True, text=True)
        output = (result.stderr or result.stdout or "").strip()
        return MountResult(ok=result.returncode == 0, output=output)

    def unmount(self, mount_point: str) -> MountResult:
        if self.is_systemd() and self.systemd.stop_automount(mount_point):
            if os.path.realpath(mount_point) not in self.mounts_under(mount_point):
                return MountResult(ok=True, output="automount stopped")
        result = subprocess.run(["umount", mount_point], capture_output=True, text=True)
        output = (result.stderr or result.stdout or "").strip()
        return MountResult(ok=result.returncode == 0, output=output)

    def remove_file(self, path: str):
        if os.path.lexists(path):
            os.unlink(path)

    def remove_tree(self, path: str):
        if os.path.exists(path):
            shutil.rmtree(path)
