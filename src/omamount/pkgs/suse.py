import subprocess

from omamount.pkgs.base import PackageManager


class SusePackageManager(PackageManager):
    name = "zypper"

    def install(self, package):
        subprocess.run(["zypper", "--non-interactive", "in", package], check=True)

    def get_install_command(self, package: str) -> str:
        return f"zypper --non-interactive in {package}"
