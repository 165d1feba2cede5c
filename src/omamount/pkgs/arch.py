import subprocess

from omamount.pkgs.base import PackageManager


class ArchPackageManager(PackageManager):
    name = "pacman"

    def install(self, package):
        subprocess.run(["pacman", "-Sy", "--noconfirm", "--needed", package], check=True)

    def get_install_command(self, package: str) -> str:
        return f"pacman -Sy --noconfirm --needed {package}"
