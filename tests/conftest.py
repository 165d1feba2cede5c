"""
Pytest configuration and shared fixtures.
"""
import pytest

from omamount.mounts.models import DesiredConfig, ShareSpec
from omamount.system.base import MountResult, PathInfo, System


class FakeSystem(System):
    """In-memory host: records effector calls and answers probes from dicts."""

    def __init__(self):
        self.commands = {"mount.cifs"}
        self.paths = {}
        self.files = {}
        self.mounted = set()
        self.automounts = set()
        self.mount_results = {}
        self.systemd = True
        self.calls = []

    def add_dir(self, path):
        self.paths[path] = PathInfo(path=path, is_dir=True, mode=0o755)

    def add_file(self, path, uid=0, mode=0o600):
        self.paths[path] = PathInfo(path=path, is_file=True, uid=uid, mode=mode)

    # probe
    def has_command(self, name):
        return name in self.commands

    def stat(self, path):
        return self.paths.get(path)

    def read_text(self, path):
        return self.files.get(path, "")

    def is_mounted(self, path):
        return path in self.mounted

    def mounts_under(self, root):
        found = [p for p in self.mounted | self.automounts if p == root or p.startswith(root.rstrip("/") + "/")]
        return sorted(found, key=lambda p: p.count("/"), reverse=True)

    def package_manager_name(self):
        return "pacman"

    def is_systemd(self):
        return self.systemd

    def network_wait_online_status(self):
        return "NetworkManager-wait-online.service (active, enabled)" if self.systemd else None

    # effector
    def install_client_tool(self):
        self.calls.append(("install_client_tool",))
        self.commands.add("mount.cifs")

    def make_dir(self, path, mode=0o755):
        self.calls.append(("make_dir", path, mode))
        self.paths[path] = PathInfo(path=path, is_dir=True, mode=mode)

    def relocate(self, path):
        target = f"{path}.omamount-bak.1"
        self.calls.append(("relocate", path))
        self.paths[target] = self.paths.pop(path)
        return target

    def enforce_credential_permissions(self, path):
        self.calls.append(("enforce_credential_permissions", path))
        self.paths[path] = PathInfo(path=path, is_file=True, uid=0, mode=0o600)

    def configure_service_manager(self, unit_dir):
        self.calls.append(("configure_service_manager", unit_dir))
        return self.systemd

    def remove_service_unit(self, unit_dir):
        self.calls.append(("remove_service_unit", unit_dir))
        return True

    def daemon_reload(self):
        self.calls.append(("daemon_reload",))

    def mount(self, entry):
        self.calls.append(("mount", entry.mount_point))
        result = self.mount_results.get(entry.share, MountResult(ok=True))
        if result.ok:
            self.mounted.add(entry.mount_point)
        return result

    def unmount(self, mount_point):
        self.calls.append(("unmount", mount_point))
        self.mounted.discard(mount_point)
        self.automounts.discard(mount_point)
        return MountResult(ok=True)

    def remove_file(self, path):
        self.calls.append(("remove_file", path))
        self.paths.pop(path, None)

    def remove_tree(self, path):
        self.calls.append(("remove_tree", path))
        self.paths.pop(path, None)


@pytest.fixture
def fake_system():
    return FakeSystem()


@pytest.fixture
def desired():
    return DesiredConfig(
        endpoint="nas.local",
        mount_root="/mnt/nas",
        shares=[ShareSpec(name="media"), ShareSpec(name="backup")],
        credential_path="/etc/samba/credentials/omamount.creds",
        owner_uid=1000,
        owner_gid=1000,
    )


@pytest.fixture
def tmp_desired(tmp_path):
    """A DesiredConfig whose credentials and mount root live under tmp_path."""
    return DesiredConfig(
        endpoint="nas.local",
        mount_root=str(tmp_path / "mnt"),
        shares=[ShareSpec(name="media"), ShareSpec(name="backup")],
        credential_path=str(tmp_path / "creds" / "omamount.creds"),
        owner_uid=1000,
        owner_gid=1000,
    )
