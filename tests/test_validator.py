import subprocess
from unittest.mock import MagicMock, patch

from omamount.credentials.manager import CredentialRecord, ValidationResult
from omamount.credentials.validator import SmbclientValidator


def completed(returncode, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


REC = CredentialRecord(username="alice", secret="hunter2")


@patch("shutil.which", return_value=None)
def test_missing_smbclient_is_inconclusive(mock_which, desired):
    assert SmbclientValidator(desired)(REC) == ValidationResult.INCONCLUSIVE


@patch("shutil.which", return_value="/usr/bin/smbclient")
@patch("subprocess.run")
def test_success_is_confirmed(mock_run, mock_which, desired):
    mock_run.return_value = completed(0)

    assert SmbclientValidator(desired)(REC) == ValidationResult.CONFIRMED

    cmd = mock_run.call_args[0][0]
    assert cmd[:2] == ["smbclient", "//nas.local/media"]
    assert "hunter2" not in cmd
    assert mock_run.call_args[1]["env"]["PASSWD"] == "hunter2"


@patch("shutil.which", return_value="/usr/bin/smbclient")
@patch("subprocess.run")
def test_logon_failure_is_rejected(mock_run, mock_which, desired):
    mock_run.return_value = completed(1, stdout="session setup failed: NT_STATUS_LOGON_FAILURE")
    assert SmbclientValidator(desired)(REC) == ValidationResult.AUTH_REJECTED


@patch("shutil.which", return_value="/usr/bin/smbclient")
@patch("subprocess.run")
def test_network_error_is_inconclusive(mock_run, mock_which, desired):
    mock_run.return_value = completed(1, stderr="do_connect: Connection to nas.local failed (Error NT_STATUS_HOST_UNREACHABLE)")
    assert SmbclientValidator(desired)(REC) == ValidationResult.INCONCLUSIVE


@patch("shutil.which", return_value="/usr/bin/smbclient")
@patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="smbclient", timeout=30))
def test_timeout_is_inconclusive(mock_run, mock_which, desired):
    assert SmbclientValidator(desired)(REC) == ValidationResult.INCONCLUSIVE
