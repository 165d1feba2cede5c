import subprocess

from omamount.pkgs.base import PackageManager


class DebianPackageManager(PackageManager):
    name = "apt"

    def install(self, package):
        subprocess.run(["apt-get", "update"], check=True)
        subprocess.run(["apt-get", "install", "-y", package], check=True)

    def get_install_command(self, package: str) -> str:
        return f"apt-get update && apt-get install -y {package}"
