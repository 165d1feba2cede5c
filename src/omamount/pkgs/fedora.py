import shutil
import subprocess

from omamount.errors import DependencyUnavailableError
from omamount.pkgs.base import PackageManager


class FedoraPackageManager(PackageManager):
    name = "dnf"

    def __init__(self):
        if shutil.which("dnf"):
            self.pm = "dnf"
        elif shutil.which("yum"):
            self.pm = "yum"
        else:
            raise DependencyUnavailableError("No package manager found (dnf or yum)")
        self.name = self.pm

    def install(self, package):
        subprocess.run([self.pm, "install", "-y", package], check=True)

    def get_install_command(self, package: str) -> str:
        return f"{self.pm} install -y {package}"
