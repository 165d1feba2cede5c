from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from omamount.mounts.fstab import has_managed_block
from omamount.mounts.models import CLIENT_PACKAGE, CLIENT_TOOL, DesiredConfig
from omamount.system.base import SystemProbe

CREDENTIAL_MODE = 0o600
CREDENTIAL_OWNER_UID = 0


class GapKind(str, Enum):
    CLIENT_TOOL_MISSING = "client_tool_missing"
    CREDENTIAL_DIR_WRONG_TYPE = "credential_dir_wrong_type"
    CREDENTIAL_FILE_MISSING = "credential_file_missing"
    CREDENTIAL_PERMISSIONS_WRONG = "credential_permissions_wrong"
    MANAGED_BLOCK_ABSENT = "managed_block_absent"
    MOUNT_POINT_MISSING = "mount_point_missing"


class Gap(BaseModel):
    kind: GapKind
    message: str
    share: Optional[str] = None
    path: Optional[str] = None


class CheckResult(BaseModel):
    section: str
    ok: bool
    message: str
    gap: Optional[Gap] = None


class PreflightReport(BaseModel):
    checks: List[CheckResult] = []

    @property
    def gaps(self) -> List[Gap]:
        return [c.gap for c in self.checks if c.gap is not None]

    @property
    def satisfied(self) -> bool:
        return all(c.ok for c in self.checks)

    def has_gap(self, kind: GapKind) -> bool:
        return any(g.kind == kind for g in self.gaps)


def _pass(section, message):
    return CheckResult(section=section, ok=True, message=message)


def _fail(section, kind, message, share=None, path=None):
    gap = Gap(kind=kind, message=message, share=share, path=path)
    return CheckResult(section=section, ok=False, message=message, gap=gap)


def evaluate(desired: DesiredConfig, system: SystemProbe, fstab_path: str) -> PreflightReport:
    """
    Compare live host state with the desired configuration.

    Every check runs regardless of earlier failures so the report lists all
    gaps at once. Nothing is modified.
    """
    desired.require_complete()
    checks = []

    if system.has_command(CLIENT_TOOL):
        checks.append(_pass("dependencies", f"{CLIENT_TOOL} present"))
    else:
        checks.append(_fail(
            "dependencies", GapKind.CLIENT_TOOL_MISSING,
            f"{CLIENT_TOOL} missing (install {CLIENT_PACKAGE})",
        ))

    cred_dir = desired.credential_dir
    dir_info = system.stat(cred_dir)
    if dir_info is None:
        checks.append(_pass("credentials", f"credentials directory will be created: {cred_dir}"))
    elif dir_info.is_dir:
        checks.append(_pass("credentials", f"credentials directory exists: {cred_dir}"))
    else:
        checks.append(_fail(
            "credentials", GapKind.CREDENTIAL_DIR_WRONG_TYPE,
            f"{cred_dir} exists but is not a directory",
            path=cred_dir,
        ))

    cred_path = desired.credential_path
    file_info = system.stat(cred_path)
    if file_info is not None and file_info.is_file:
        checks.append(_pass("credentials", f"credentials file exists: {cred_path}"))
        if file_info.uid != CREDENTIAL_OWNER_UID or file_info.mode != CREDENTIAL_MODE:
            checks.append(_fail(
                "credentials", GapKind.CREDENTIAL_PERMISSIONS_WRONG,
                f"expected root-owned 600 perms (got uid={file_info.uid} {file_info.mode:o})",
                path=cred_path,
            ))
        else:
            checks.append(_pass("credentials", "credentials file is root-owned with mode 600"))
    else:
        checks.append(_fail(
            "credentials", GapKind.CREDENTIAL_FILE_MISSING,
            f"credentials file missing: {cred_path}",
            path=cred_path,
        ))

    if has_managed_block(system.read_text(fstab_path)):
        checks.append(_pass("fstab", "managed block markers present"))
    else:
        checks.append(_fail(
            "fstab", GapKind.MANAGED_BLOCK_ABSENT,
            "managed block markers not found (run apply once)",
            path=fstab_path,
        ))

    for share in desired.shares:
        mount_point = desired.mount_point(share.name)
        info = system.stat(mount_point)
        if info is not None and info.is_dir:
            checks.append(_pass("mount points", f"{mount_point}"))
        else:
            checks.append(_fail(
                "mount points", GapKind.MOUNT_POINT_MISSING,
                f"missing directory: {mount_point}",
                share=share.name, path=mount_point,
            ))

    return PreflightReport(checks=checks)
