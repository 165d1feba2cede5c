import logging
logger = logging.getLogger(__name__)
import os
import shutil
import subprocess
import tempfile
from typing import Optional
from omamount.systemd.models import SystemdServiceStatus
from omamount.systemd.registry import HELPER_UNIT, HELPER_UNIT_NAME, MANAGED_SERVICES, WAIT_ONLINE_REQUIRES

SYSTEMD_RUNTIME_DIR = "/run/systemd/system"

class SystemdManager:
    def is_systemd(self) -> bool:
        return os.path.isdir(SYSTEMD_RUNTIME_DIR) and shutil.which("systemctl") is not None

    def is_active(self, unit: str) -> bool:
        result = subprocess.run(["systemctl", "is-active", "--quiet", unit])
        return result.returncode == 0

    def _resolve_service_name(self, service_key: str) -> Optional[str]:
        """Resolves the actual systemd unit name from the registry list."""
        if service_key not in MANAGED_SERVICES:
            logger.info(f"Service {service_key} not found in registry, candidates: {list(MANAGED_SERVICES)}")
            return None

        for unit in MANAGED_SERVICES[service_key]:
            try:
                # 'systemctl show' reports LoadState even for inactive units
                res = subprocess.run(
                    ["systemctl", "show", "-p", "LoadState", unit],
                    capture_output=True, text=True
                )
            except FileNotFoundError:
                return None

            logger.info(f"Checked unit {unit} for {service_key}: {res.stdout.strip()}")
            if "LoadState=loaded" not in res.stdout:
                continue
            required = WAIT_ONLINE_REQUIRES.get(unit)
            if required and not self.is_active(required):
                logger.info(f"Skipping {unit}: {required} is not active")
                continue
            return unit
        return None

    def get_service_status(self, service_key: str) -> SystemdServiceStatus:
        """Get the status of a registry service, or a not-found stub."""
        unit = self._resolve_service_name(service_key)
        if not unit:
            return SystemdServiceStatus(
                name=service_key,
                load_state="not-found",
                active_state="inactive",
                sub_state="dead",
                unit_file_state="disabled"
            )

        props = ["LoadState", "ActiveState", "SubState", "UnitFileState", "Description"]
        cmd = ["systemctl", "show", "--no-pager"] + [f"-p{p}" for p in props] + [unit]
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        data = {}
        for line in result.stdout.splitlines():
            if "=" in line:
                k, v = line.split("=", 1)
                data[k] = v.strip()

        return SystemdServiceStatus(
            name=service_key,
            unit=unit,
            description=data.get("Description"),
            load_state=data.get("LoadState", "unknown"),
            active_state=data.get("ActiveState", "unknown"),
            sub_state=data.get("SubState", "unknown"),
            unit_file_state=data.get("UnitFileState") or "unknown"
        )

    def enable_network_wait_online(self) -> Optional[str]:
        """Enable whichever wait-online unit is installed. Returns the unit, if any."""
        unit = self._resolve_service_name("network-wait-online")
        if not unit:
            logger.info("No network wait-online unit installed")
            return None
        # start without waiting for the network to come online
        subprocess.run(["systemctl", "enable", "--now", "--no-block", unit], check=True)
        return unit

    def install_helper_unit(self, unit_dir: str) -> str:
        """Write the oneshot recovery unit. Returns its path."""
        path = os.path.join(unit_dir, HELPER_UNIT_NAME)
        os.makedirs(unit_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{HELPER_UNIT_NAME}.", dir=unit_dir)
        with os.fdopen(fd, "w") as f:
            f.write(HELPER_UNIT)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
        logger.info(f"Installed {path}")
        return path

    def remove_helper_unit(self, unit_dir: str) -> bool:
        path = os.path.join(unit_dir, HELPER_UNIT_NAME)
        if not os.path.exists(path):
            return False
        os.unlink(path)
        logger.info(f"Removed {path}")
        return True

    def daemon_reload(self):
        subprocess.run(["systemctl", "daemon-reload"], check=True)

    def stop_automount(self, mount_point: str) -> bool:
        """Stop the .automount unit systemd generated for mount_point, if any."""
        res = subprocess.run(
            ["systemd-escape", "--path", "--suffix=automount", mount_point],
            capture_output=True, text=True
        )
        if res.returncode != 0:
            return False
        unit = res.stdout.strip()
        result = subprocess.run(["systemctl", "stop", unit], capture_output=True, text=True)
        if result.returncode != 0:
            logger.info(f"Could not stop {unit}: {result.stderr.strip()}")
            return False
        logger.info(f"Stopped {unit}")
        return True
