from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel

from omamount.mounts.models import MountEntry


class PathInfo(BaseModel):
    path: str
    is_dir: bool = False
    is_file: bool = False
    uid: int = 0
    gid: int = 0
    mode: int = 0  # permission bits only


class MountResult(BaseModel):
    ok: bool
    output: str = ""


class SystemProbe(ABC):
    """Read-only view of the host."""

    @abstractmethod
    def has_command(self, name: str) -> bool:
        pass

    @abstractmethod
    def stat(self, path: str) -> Optional[PathInfo]:
        """Return info for path, or None when nothing exists there."""
        pass

    @abstractmethod
    def read_text(self, path: str) -> str:
        pass

    @abstractmethod
    def is_mounted(self, path: str) -> bool:
        """True when something is mounted at path; an idle automount does not count."""
        pass

    @abstractmethod
    def mounts_under(self, root: str) -> List[str]:
        """Every mount point at or below root, of any type, deepest first."""
        pass

    @abstractmethod
    def package_manager_name(self) -> str:
        pass

    @abstractmethod
    def is_systemd(self) -> bool:
        pass

    @abstractmethod
    def network_wait_online_status(self) -> Optional[str]:
        """Describe the installed wait-online unit, or None."""
        pass


class SystemEffector(ABC):
    """Mutating operations the orchestrator delegates to the host."""

    @abstractmethod
    def install_client_tool(self):
        pass

    @abstractmethod
    def make_dir(self, path: str, mode: int = 0o755):
        pass

    @abstractmethod
    def relocate(self, path: str) -> str:
        """Move path aside and return where it went."""
        pass

    @abstractmethod
    def enforce_credential_permissions(self, path: str):
        pass

    @abstractmethod
    def configure_service_manager(self, unit_dir: str) -> bool:
        """Install the helper unit and reload; False when there is no service manager."""
        pass

    @abstractmethod
    def remove_service_unit(self, unit_dir: str) -> bool:
        pass

    @abstractmethod
    def daemon_reload(self):
        pass

    @abstractmethod
    def mount(self, entry: MountEntry) -> MountResult:
        pass

    @abstractmethod
    def unmount(self, mount_point: str) -> MountResult:
        pass

    @abstractmethod
    def remove_file(self, path: str):
        pass

    @abstractmethod
    def remove_tree(self, path: str):
        pass


class System(SystemProbe, SystemEffector):
    """A host that can be both inspected and changed."""
