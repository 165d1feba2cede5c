import click

from omamount.cli.utils import build_orchestrator, handle_errors, load_desired
from omamount.config.settings import config
from omamount.mounts.fstab import FstabFile, build_block, merge


@click.command(name="list")
@click.pass_context
@handle_errors
def list_config(ctx):
    """Show current config and share list (no changes)."""
    desired = load_desired(ctx)
    click.echo(f"NAS_HOST={desired.endpoint}")
    click.echo(f"MOUNT_ROOT={desired.mount_root}")
    click.echo(f"CREDENTIALS_FILE={desired.credential_path}")
    click.echo(f"UID={desired.owner_uid}")
    click.echo(f"GID={desired.owner_gid}")
    click.echo("SHARES:")
    for share in desired.shares:
        click.echo(f"  - {share.name}")


@click.command(name="print-fstab")
@click.option("--full", is_flag=True, help="Print the whole merged mount table instead of only the entries.")
@click.pass_context
@handle_errors
def print_fstab(ctx, full):
    """Print the fstab lines that would be written (no changes)."""
    desired = load_desired(ctx)
    if full:
        click.echo(merge(FstabFile(config.fstab_path).read(), desired), nl=False)
        return
    # entries only, without the block markers
    for line in build_block(desired)[2:-1]:
        click.echo(line)


@click.command()
@click.pass_context
@handle_errors
def doctor(ctx):
    """Check dependencies and config health (no changes)."""
    desired = load_desired(ctx)
    report = build_orchestrator(desired).health_check()
    ctx.exit(0 if report.satisfied else 1)
