import logging
from typing import Callable, List, Optional

import click
from pydantic import BaseModel

from omamount.credentials.manager import CredentialManager, ProvisionOutcome, ProvisionResult
from omamount.errors import DependencyUnavailableError, MountTableWriteError, ProvisionAbortedError
from omamount.mounts.fstab import FstabFile, merge, strip_managed_block
from omamount.mounts.models import CLIENT_PACKAGE, CLIENT_TOOL, FSTAB_BEGIN, FSTAB_END, DesiredConfig
from omamount.mounts.preflight import Gap, GapKind, PreflightReport, evaluate
from omamount.system.base import System

logger = logging.getLogger(__name__)


class MountFailure(BaseModel):
    share: str
    mount_point: str
    output: str = ""


class ApplyReport(BaseModel):
    preflight: Optional[PreflightReport] = None
    credentials: Optional[ProvisionResult] = None
    fstab_backup: Optional[str] = None
    service_manager: bool = False
    mounted: List[str] = []
    skipped: List[str] = []
    failures: List[MountFailure] = []
    missing: List[str] = []

    @property
    def ok(self) -> bool:
        return not self.failures and not self.missing


class Orchestrator:
    """
    Sequences a full provisioning run:
    dependencies -> credentials -> mount points -> fstab -> systemd -> mount -> verify.
    """

    def __init__(
        self,
        desired: DesiredConfig,
        system: System,
        credentials: CredentialManager,
        fstab_path: str,
        unit_dir: str,
        confirm: Callable[[str], bool] = click.confirm,
    ):
        self.desired = desired
        self.system = system
        self.credentials = credentials
        self.fstab = FstabFile(fstab_path)
        self.unit_dir = unit_dir
        self.confirm = confirm
        self._credentials_ready = False

    def preflight(self) -> PreflightReport:
        return evaluate(self.desired, self.system, self.fstab.path)

    def health_check(self) -> PreflightReport:
        self.desired.require_complete()
        click.echo("[doctor] Checking environment")
        click.echo(f"  pkg_manager={self.system.package_manager_name()}")
        systemd = self.system.is_systemd()
        click.echo(f"  systemd={'yes' if systemd else 'no'}")
        if systemd:
            click.echo(f"  wait_online={self.system.network_wait_online_status() or 'none'}")

        report = self.preflight()
        section = None
        for check in report.checks:
            if check.section != section:
                section = check.section
                click.echo(f"[doctor] Checking {section}")
            click.echo(f"  [{'OK' if check.ok else 'WARN'}] {check.message}")

        click.echo("[doctor] OK" if report.satisfied else "[doctor] Issues found")
        return report

    # steps

    def install_dependencies(self):
        click.echo("Installing necessary packages...")
        try:
            self.system.install_client_tool()
        except DependencyUnavailableError as e:
            click.echo(f"Warning: {e}", err=True)
            if not self.system.has_command(CLIENT_TOOL):
                raise

    def provision_credentials(self) -> ProvisionResult:
        recreate = False if self._credentials_ready else None
        result = self.credentials.provision(self.desired, recreate=recreate)
        self._credentials_ready = True

        path = self.credentials.store.path
        if result.outcome == ProvisionOutcome.REUSED:
            click.echo(f"Reusing existing credentials at {path}")
        else:
            click.echo(f"Credentials written to {path} (root:root, 600)")
        if result.unconfirmed:
            click.echo("Warning: continuing with credentials the NAS did not accept", err=True)
        return result

    def create_mount_points(self):
        click.echo(f"Creating mount point directories under {self.desired.mount_root}/...")
        for share in self.desired.shares:
            self.system.make_dir(self.desired.mount_point(share.name))

    def write_fstab(self) -> Optional[str]:
        click.echo(f"Adding hardened share entries to {self.fstab.path} (managed block)...")
        if not self.credentials.store.exists():
            raise MountTableWriteError(
                f"Credentials file {self.credentials.store.path} is missing; "
                f"refusing to reference it from {self.fstab.path}"
            )
        new_text = merge(self.fstab.read(), self.desired)
        backup = self.fstab.commit(new_text)
        click.echo(f"Updated {self.fstab.path} (backup: {backup or 'none'})")
        return backup

    def configure_service_manager(self) -> bool:
        click.echo("Ensuring network-online integration (systemd)...")
        if not self.system.configure_service_manager(self.unit_dir):
            click.echo("systemd not detected; skipping helper service installation.")
            return False
        return True

    def mount_shares(self, report: ApplyReport):
        click.echo("Mounting all shares (or triggering automount)...")
        for entry in self.desired.mount_entries():
            if self.system.is_mounted(entry.mount_point):
                click.echo(f"  [SKIP] {entry.mount_point} already mounted")
                report.skipped.append(entry.share)
                continue

            result = self.system.mount(entry)
            if result.ok:
                click.echo(f"  [OK] {entry.mount_point}")
                report.mounted.append(entry.share)
            else:
                click.echo(f"  [FAIL] {entry.mount_point} -> {result.output}")
                report.failures.append(
                    MountFailure(share=entry.share, mount_point=entry.mount_point, output=result.output)
                )

        if report.failures:
            names = " ".join(f.share for f in report.failures)
            click.echo(f"Warning: the following shares could not be mounted: {names}")
        else:
            click.echo("All shares mounted successfully!")

    def verify_mounts(self, report: ApplyReport):
        click.echo("Verifying mounts...")
        for share in self.desired.shares:
            mount_point = self.desired.mount_point(share.name)
            if self.system.is_mounted(mount_point):
                click.echo(f"  [OK] {mount_point}")
            else:
                click.echo(f"  [MISSING] {mount_point} is not mounted")
                report.missing.append(share.name)

        if report.missing:
            click.echo(
                f"Warning: the following shares are not currently mounted: {' '.join(report.missing)}"
            )

    # entry points

    def apply(self, assume_yes: bool = False) -> ApplyReport:
        self.desired.require_complete()
        report = ApplyReport()

        # advisory only in this mode
        report.preflight = self.preflight()
        for gap in report.preflight.gaps:
            logger.info(f"Preflight gap: {gap.kind.value}: {gap.message}")
        if not report.preflight.satisfied:
            click.echo(f"Preflight found {len(report.preflight.gaps)} issue(s); apply will address them.")

        if not assume_yes and not self.confirm(
            f"Provision NAS mounts from {self.desired.endpoint} into {self.desired.mount_root} "
            f"using credentials {self.desired.credential_path}?"
        ):
            raise ProvisionAbortedError("Aborted.")

        click.echo(f"[omamount] Provisioning NAS mounts from {self.desired.endpoint} -> {self.desired.mount_root}")
        self.install_dependencies()
        report.credentials = self.provision_credentials()
        self.create_mount_points()
        report.fstab_backup = self.write_fstab()
        report.service_manager = self.configure_service_manager()
        self.mount_shares(report)
        self.verify_mounts(report)

        click.echo(f"Setup complete! NAS shares are configured under {self.desired.mount_root}/")
        if report.service_manager:
            click.echo("Tip: With systemd automount, shares will come up on first access even if the NAS is offline at boot.")
        return report

    def guided_apply(self) -> ApplyReport:
        """Offer a fix for every preflight gap, then run the full apply."""
        self.desired.require_complete()
        report = self.preflight()
        if report.satisfied:
            click.echo("[guided] Preflight OK; nothing to remediate.")
        else:
            click.echo(f"[guided] Found {len(report.gaps)} issue(s).")
            for gap in report.gaps:
                self.remediate(gap)
        return self.apply()

    def remediate(self, gap: Gap) -> bool:
        """Ask before fixing a single gap. Returns True when a fix was applied."""
        click.echo(f"  [WARN] {gap.message}")
        question = self._remediation_question(gap)
        if question is None:
            return False
        if not self.confirm(question):
            click.echo("  [SKIP] left as is")
            return False

        if gap.kind == GapKind.CLIENT_TOOL_MISSING:
            self.install_dependencies()
        elif gap.kind == GapKind.CREDENTIAL_DIR_WRONG_TYPE:
            moved = self.system.relocate(gap.path)
            self.system.make_dir(gap.path, mode=0o700)
            click.echo(f"  Moved {gap.path} to {moved} and created the directory")
        elif gap.kind == GapKind.CREDENTIAL_FILE_MISSING:
            self.provision_credentials()
        elif gap.kind == GapKind.CREDENTIAL_PERMISSIONS_WRONG:
            self.system.enforce_credential_permissions(gap.path)
            click.echo(f"  Set {gap.path} to root:root 600")
        elif gap.kind == GapKind.MANAGED_BLOCK_ABSENT:
            self.write_fstab()
        elif gap.kind == GapKind.MOUNT_POINT_MISSING:
            self.system.make_dir(gap.path)
            click.echo(f"  Created {gap.path}")
        return True

    def _remediation_question(self, gap: Gap) -> Optional[str]:
        if gap.kind == GapKind.CLIENT_TOOL_MISSING:
            return f"Install {CLIENT_PACKAGE} now?"
        if gap.kind == GapKind.CREDENTIAL_DIR_WRONG_TYPE:
            return f"Move {gap.path} aside and create it as a directory?"
        if gap.kind == GapKind.CREDENTIAL_FILE_MISSING:
            return f"Create credentials file {gap.path} now?"
        if gap.kind == GapKind.CREDENTIAL_PERMISSIONS_WRONG:
            return f"Set {gap.path} to root:root mode 600?"
        if gap.kind == GapKind.MANAGED_BLOCK_ABSENT:
            if not self.credentials.store.exists():
                click.echo("  [SKIP] credentials file missing; fstab will be written during apply")
                return None
            return f"Write the managed block to {self.fstab.path} now?"
        if gap.kind == GapKind.MOUNT_POINT_MISSING:
            return f"Create mount point {gap.path}?"
        return None

    def uninstall(self) -> bool:
        if not self.confirm(f"This will remove the managed omamount block from {self.fstab.path}. Continue?"):
            click.echo("Aborted.")
            return False

        text = self.fstab.read()
        lines = text.splitlines()
        if FSTAB_BEGIN in lines or FSTAB_END in lines:
            backup = self.fstab.commit(strip_managed_block(text))
            click.echo(f"Removed managed block from {self.fstab.path} (backup: {backup})")
        else:
            click.echo(f"No managed block found in {self.fstab.path}")

        if self.system.remove_service_unit(self.unit_dir):
            click.echo("Removed omamount helper service")
        self.system.daemon_reload()

        cred_path = self.desired.credential_path
        if self.system.stat(cred_path) is not None and self.confirm(f"Remove credentials file {cred_path}?"):
            self.system.remove_file(cred_path)
            click.echo(f"Removed {cred_path}")

        root = self.desired.mount_root
        if self.system.stat(root) is not None and self.confirm(f"Remove mount root {root}?"):
            self._remove_mount_root(root)

        return True

    def _remove_mount_root(self, root: str):
        # includes idle automounts
        for mount_point in self.system.mounts_under(root):
            result = self.system.unmount(mount_point)
            if not result.ok:
                logger.warning(f"Could not unmount {mount_point}: {result.output}")

        still_mounted = self.system.mounts_under(root)
        if still_mounted:
            click.echo(f"Not removing {root}; still mounted: {' '.join(still_mounted)}", err=True)
            return
        self.system.remove_tree(root)
        click.echo(f"Removed {root}")
