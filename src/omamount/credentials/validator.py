import logging
import os
import shutil
import subprocess

from omamount.credentials.manager import CredentialRecord, ValidationResult
from omamount.mounts.models import DesiredConfig

logger = logging.getLogger(__name__)

AUTH_FAILURE_MARKERS = (
    "NT_STATUS_LOGON_FAILURE",
    "NT_STATUS_WRONG_PASSWORD",
    "NT_STATUS_ACCESS_DENIED",
    "NT_STATUS_ACCOUNT_",
    "NT_STATUS_PASSWORD_",
)


class SmbclientValidator:
    """Checks credentials by opening the first configured share with smbclient."""

    def __init__(self, desired: DesiredConfig, timeout: int = 30):
        self.desired = desired
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which("smbclient") is not None

    def __call__(self, record: CredentialRecord) -> ValidationResult:
        if not self.available():
            logger.info("smbclient not installed; skipping credential validation")
            return ValidationResult.INCONCLUSIVE

        share = self.desired.shares[0].name
        cmd = [
            "smbclient",
            f"//{self.desired.endpoint}/{share}",
            "-U", record.username,
            "-m", "SMB3",
            "-c", "exit",
        ]
        # password goes through the environment, never argv
        env = dict(os.environ, PASSWD=record.secret.get_secret_value())
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, env=env, timeout=self.timeout,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"smbclient timed out after {self.timeout}s")
            return ValidationResult.INCONCLUSIVE

        if result.returncode == 0:
            return ValidationResult.CONFIRMED

        output = f"{result.stdout}\n{result.stderr}"
        if any(marker in output for marker in AUTH_FAILURE_MARKERS):
            return ValidationResult.AUTH_REJECTED

        logger.info(f"smbclient returned {result.returncode}: {output.strip()}")
        return ValidationResult.INCONCLUSIVE
