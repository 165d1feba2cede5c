class OmamountError(Exception):
    """Base class for errors raised by omamount."""


class ConfigMissingError(OmamountError):
    """The NAS endpoint or the share list is not configured."""


class ConfigError(OmamountError):
    """A configuration file could not be read or parsed."""


class DependencyUnavailableError(OmamountError):
    """The CIFS client tooling is missing and could not be installed."""


class CredentialDirError(OmamountError):
    """The credentials directory path exists but is not a directory."""


class ProvisionAbortedError(OmamountError):
    """The user declined to continue provisioning."""


class MountTableWriteError(OmamountError):
    def __init__(self, message: str, tmp_path: str = None):
        super().__init__(message)
        self.tmp_path = tmp_path
