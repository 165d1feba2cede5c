import logging
import os
import pwd
from typing import Any, Dict, List, Optional, Tuple

import yaml

from omamount.errors import ConfigError
from omamount.mounts.models import (
    DEFAULT_CREDENTIALS_FILE,
    DEFAULT_MOUNT_ROOT,
    FALLBACK_GID,
    FALLBACK_UID,
    DesiredConfig,
    ShareSpec,
)

logger = logging.getLogger(__name__)

LOCAL_OVERRIDE_NAME = "omamount.local.yaml"


class Config:
    fstab_path = os.getenv("OMAMOUNT_FSTAB_PATH", "/etc/fstab")
    systemd_unit_dir = os.getenv("OMAMOUNT_SYSTEMD_UNIT_DIR", "/etc/systemd/system")
    log_level = os.getenv("OMAMOUNT_LOG_LEVEL", "WARNING")

    # First readable file wins
    local_override_paths = [
        os.path.join(os.getcwd(), LOCAL_OVERRIDE_NAME),
        os.path.expanduser(os.path.join("~/.config/omamount", LOCAL_OVERRIDE_NAME)),
    ]

config = Config()


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid configuration file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid configuration file {path}: expected a mapping at top level")
    return data


def _normalize(data: Dict[str, Any], source: str) -> Dict[str, Any]:
    """Map a raw YAML document onto DesiredConfig field names."""
    values = {}
    host = data.get("nas_host", data.get("nas_ip"))
    if host:
        values["endpoint"] = str(host).strip()
    if data.get("mount_root"):
        values["mount_root"] = str(data["mount_root"])
    if data.get("credentials_file"):
        values["credential_path"] = str(data["credentials_file"])
    if "shares" in data:
        shares = data["shares"] or []
        if not isinstance(shares, list):
            raise ConfigError(f"Invalid configuration file {source}: 'shares' must be a list")
        values["shares"] = [str(s).strip() for s in shares if str(s).strip()]
    return values


def find_local_override(paths: Optional[List[str]] = None) -> Optional[str]:
    for path in paths if paths is not None else config.local_override_paths:
        if os.path.isfile(path) and os.access(path, os.R_OK):
            return path
    return None


def resolve_owner(env: Optional[Dict[str, str]] = None) -> Tuple[int, int]:
    """Resolve uid/gid of the invoking user, preferring the sudo caller."""
    env = os.environ if env is None else env
    user = env.get("SUDO_USER")
    if not user or user == "root":
        user = env.get("USER")
    if not user:
        return FALLBACK_UID, FALLBACK_GID
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        logger.warning(f"Could not resolve user {user}, falling back to {FALLBACK_UID}:{FALLBACK_GID}")
        return FALLBACK_UID, FALLBACK_GID
    return entry.pw_uid, entry.pw_gid


def load_desired_config(
    config_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    local_override_paths: Optional[List[str]] = None,
) -> DesiredConfig:
    """
    Build the DesiredConfig for this run.

    Precedence (highest first):
    1. NAS_IP / MOUNT_ROOT / CREDENTIALS_FILE environment variables
    2. explicit config file (argument, else CONFIG_FILE environment variable)
    3. local override file (omamount.local.yaml)
    """
    env = os.environ if env is None else env
    layers = []

    local_path = find_local_override(local_override_paths)
    if local_path:
        logger.info(f"Loading local override from {local_path}")
        layers.append(_normalize(_read_yaml(local_path), local_path))

    if config_file:
        if not os.path.isfile(config_file):
            raise ConfigError(f"Specified config file does not exist: {config_file}")
        logger.info(f"Loading config file {config_file}")
        layers.append(_normalize(_read_yaml(config_file), config_file))
    elif env.get("CONFIG_FILE"):
        path = env["CONFIG_FILE"]
        if os.access(path, os.R_OK):
            logger.info(f"Loading config file {path} from CONFIG_FILE")
            layers.append(_normalize(_read_yaml(path), path))
        else:
            logger.warning(f"CONFIG_FILE={path} is not readable, ignoring it")

    env_layer = {}
    if env.get("NAS_IP"):
        env_layer["endpoint"] = env["NAS_IP"].strip()
    if env.get("MOUNT_ROOT"):
        env_layer["mount_root"] = env["MOUNT_ROOT"]
    if env.get("CREDENTIALS_FILE"):
        env_layer["credential_path"] = env["CREDENTIALS_FILE"]
    layers.append(env_layer)

    merged: Dict[str, Any] = {
        "endpoint": "",
        "mount_root": DEFAULT_MOUNT_ROOT,
        "shares": [],
        "credential_path": DEFAULT_CREDENTIALS_FILE,
    }
    for layer in layers:
        merged.update(layer)

    uid, gid = resolve_owner(env)
    return DesiredConfig(
        endpoint=merged["endpoint"],
        mount_root=merged["mount_root"],
        shares=[ShareSpec(name=name) for name in merged["shares"]],
        credential_path=merged["credential_path"],
        owner_uid=uid,
        owner_gid=gid,
    )
