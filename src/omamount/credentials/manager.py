"""
Credential lifecycle: create, rotate and validate the CIFS credentials file.

The file holds exactly two lines (username=, password=). It is always
replaced as a whole via a temporary file in the same directory, so the
mount helper never reads a half-written record.
"""
import logging
import os
import tempfile
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, SecretStr

from omamount.errors import CredentialDirError, ProvisionAbortedError
from omamount.mounts.models import DesiredConfig

logger = logging.getLogger(__name__)

FILE_MODE = 0o600
DIR_MODE = 0o700
MAX_ATTEMPTS = 3


class CredentialRecord(BaseModel):
    username: str
    secret: SecretStr

    def render(self) -> str:
        return f"username={self.username}\npassword={self.secret.get_secret_value()}\n"


class ValidationResult(str, Enum):
    CONFIRMED = "confirmed"
    AUTH_REJECTED = "auth_rejected"
    INCONCLUSIVE = "inconclusive"


class ProvisionOutcome(str, Enum):
    REUSED = "reused"
    WRITTEN = "written"


class ProvisionResult(BaseModel):
    outcome: ProvisionOutcome
    validation: Optional[ValidationResult] = None
    attempts: int = 0
    unconfirmed: bool = False


class CredentialStore:
    def __init__(self, path: str):
        self.path = path

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def ensure_directory(self):
        if os.path.exists(self.directory) and not os.path.isdir(self.directory):
            raise CredentialDirError(f"{self.directory} exists but is not a directory")
        os.makedirs(self.directory, mode=DIR_MODE, exist_ok=True)
        os.chmod(self.directory, DIR_MODE)

    def enforce_permissions(self, path: Optional[str] = None):
        path = path or self.path
        if os.geteuid() == 0:
            os.chown(path, 0, 0)
        os.chmod(path, FILE_MODE)

    def write(self, record: CredentialRecord):
        """Atomically replace the credentials file with record."""
        self.ensure_directory()
        fd, tmp_path = tempfile.mkstemp(prefix=".omamount-creds-", dir=self.directory)
        try:
            # mkstemp already creates the file 0600; ownership is fixed before the rename
            with os.fdopen(fd, "w") as f:
                f.write(record.render())
                f.flush()
                os.fsync(f.fileno())
            self.enforce_permissions(tmp_path)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Credentials written to {self.path}")

    def delete(self):
        if os.path.exists(self.path):
            os.unlink(self.path)


class CredentialManager:
    """
    Drives the provisioning state machine.

    prompt_for_secret() returns a fresh CredentialRecord from the user,
    confirm(question) returns a yes/no answer, and validate(record), when
    given, checks the record against the NAS.
    """

    def __init__(
        self,
        store: CredentialStore,
        prompt_for_secret: Callable[[], CredentialRecord],
        confirm: Callable[[str], bool],
        validate: Optional[Callable[[CredentialRecord], ValidationResult]] = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.store = store
        self.prompt_for_secret = prompt_for_secret
        self.confirm = confirm
        self.validate = validate
        self.max_attempts = max_attempts

    def provision(self, desired: DesiredConfig, recreate: Optional[bool] = None) -> ProvisionResult:
        if self.store.exists():
            if recreate is None:
                recreate = self.confirm(
                    f"Credentials file exists at {self.store.path}. Recreate it?"
                )
            if not recreate:
                logger.info(f"Reusing existing credentials at {self.store.path}")
                return ProvisionResult(outcome=ProvisionOutcome.REUSED)

        attempts = 0
        result = None
        while True:
            record = self.prompt_for_secret()
            self.store.write(record)
            attempts += 1

            if self.validate is None:
                return ProvisionResult(outcome=ProvisionOutcome.WRITTEN, attempts=attempts)

            result = self.validate(record)
            logger.info(f"Credential validation attempt {attempts}: {result.value}")
            if result != ValidationResult.AUTH_REJECTED:
                # inconclusive never blocks provisioning
                return ProvisionResult(
                    outcome=ProvisionOutcome.WRITTEN, validation=result, attempts=attempts
                )

            if attempts >= self.max_attempts:
                break
            if not self.confirm(
                f"{desired.endpoint} rejected these credentials. Re-enter them?"
            ):
                break

        if self.confirm(
            f"Could not confirm credentials for {desired.endpoint}. Continue anyway?"
        ):
            logger.warning("Continuing with unconfirmed credentials")
            return ProvisionResult(
                outcome=ProvisionOutcome.WRITTEN,
                validation=result,
                attempts=attempts,
                unconfirmed=True,
            )
        raise ProvisionAbortedError(
            f"Credentials rejected by {desired.endpoint}; last entry kept in {self.store.path}"
        )
