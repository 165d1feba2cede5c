import functools
import os
import subprocess
import sys

import click

from omamount.config.settings import LOCAL_OVERRIDE_NAME, config, load_desired_config
from omamount.credentials.manager import CredentialManager, CredentialRecord, CredentialStore
from omamount.credentials.validator import SmbclientValidator
from omamount.errors import ConfigMissingError, OmamountError
from omamount.mounts.models import DesiredConfig
from omamount.provision.orchestrator import Orchestrator
from omamount.system.local import LocalSystem

EXIT_FAILURE = 1
EXIT_CONFIG_MISSING = 3

MISSING_CONFIG_HELP = f"""Missing config (NAS host and/or shares).

To configure:
  1) Copy omamount.example.yaml -> {LOCAL_OVERRIDE_NAME}
  2) Edit {LOCAL_OVERRIDE_NAME} with your NAS host/IP and shares
  (or pass --config /path/to/config.yaml, or set NAS_IP/MOUNT_ROOT/CREDENTIALS_FILE)

{LOCAL_OVERRIDE_NAME} is meant to stay out of version control so your network details stay private."""


def handle_errors(f):
    """Map omamount errors onto exit codes."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return f(*args, **kwargs)
        except ConfigMissingError:
            click.echo(MISSING_CONFIG_HELP, err=True)
            ctx.exit(EXIT_CONFIG_MISSING)
        except OmamountError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(EXIT_FAILURE)
        except subprocess.CalledProcessError as e:
            click.echo(f"Error: command failed ({e.returncode}): {' '.join(e.cmd)}", err=True)
            ctx.exit(EXIT_FAILURE)
        except PermissionError as e:
            click.echo(f"Error: {e} (try: sudo {' '.join(sys.argv)})", err=True)
            ctx.exit(EXIT_FAILURE)
    return wrapper


def require_root():
    if os.geteuid() != 0:
        raise OmamountError(f"this command must run as root (try: sudo {' '.join(sys.argv)})")


def load_desired(ctx, require=True) -> DesiredConfig:
    desired = load_desired_config(ctx.obj.get("config_file"))
    if require:
        desired.require_complete()
    return desired


def confirm(question: str) -> bool:
    return click.confirm(question, default=False)


def prompt_for_secret() -> CredentialRecord:
    username = click.prompt("Enter NAS username")
    password = click.prompt("Enter NAS password", hide_input=True)
    return CredentialRecord(username=username, secret=password)


def build_orchestrator(desired: DesiredConfig) -> Orchestrator:
    validator = SmbclientValidator(desired) if desired.is_complete else None
    credentials = CredentialManager(
        CredentialStore(desired.credential_path),
        prompt_for_secret=prompt_for_secret,
        confirm=confirm,
        validate=validator,
    )
    return Orchestrator(
        desired,
        LocalSystem(),
        credentials,
        fstab_path=config.fstab_path,
        unit_dir=config.systemd_unit_dir,
        confirm=confirm,
    )
