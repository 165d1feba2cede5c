import logging
import os
import shutil
from typing import Optional

from omamount.errors import DependencyUnavailableError
from omamount.mounts.models import CLIENT_PACKAGE, CLIENT_TOOL
from omamount.pkgs.arch import ArchPackageManager
from omamount.pkgs.base import PackageManager
from omamount.pkgs.debian import DebianPackageManager
from omamount.pkgs.fedora import FedoraPackageManager
from omamount.pkgs.suse import SusePackageManager

logger = logging.getLogger(__name__)

# mount helpers usually live in sbin, which is not always on a user's PATH
SBIN_DIRS = ["/usr/local/sbin", "/usr/sbin", "/sbin"]


def which(name: str) -> Optional[str]:
    path = os.pathsep.join([os.environ.get("PATH", "")] + SBIN_DIRS)
    return shutil.which(name, path=path)


def detect_package_manager() -> str:
    if shutil.which("pacman"):
        return "pacman"
    if shutil.which("apt-get"):
        return "apt"
    if shutil.which("dnf") or shutil.which("yum"):
        return "dnf"
    if shutil.which("zypper"):
        return "zypper"
    return "unknown"


def get_package_manager() -> PackageManager:
    pm = detect_package_manager()
    if pm == "pacman":
        return ArchPackageManager()
    elif pm == "apt":
        return DebianPackageManager()
    elif pm == "dnf":
        return FedoraPackageManager()
    elif pm == "zypper":
        return SusePackageManager()
    else:
        raise DependencyUnavailableError(
            f"Could not detect a supported package manager to install {CLIENT_PACKAGE}. "
            f"Install it manually (package usually named '{CLIENT_PACKAGE}'), then re-run."
        )


def ensure_client_tool():
    """Install cifs-utils unless mount.cifs is already available."""
    if which(CLIENT_TOOL):
        return

    pm = get_package_manager()
    logger.info(f"Installing {CLIENT_PACKAGE}: {pm.get_install_command(CLIENT_PACKAGE)}")
    pm.install(CLIENT_PACKAGE)

    if not which(CLIENT_TOOL):
        raise DependencyUnavailableError(
            f"{CLIENT_PACKAGE} was installed but {CLIENT_TOOL} is still missing"
        )
