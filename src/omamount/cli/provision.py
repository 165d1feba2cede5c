import click

from omamount.cli.utils import build_orchestrator, handle_errors, load_desired, require_root


@click.command()
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip the overall confirmation prompt.")
@click.pass_context
@handle_errors
def apply(ctx, assume_yes):
    """Provision mounts (installs deps, writes fstab, mounts)."""
    desired = load_desired(ctx)
    require_root()
    build_orchestrator(desired).apply(assume_yes=assume_yes)


@click.command()
@click.pass_context
@handle_errors
def guided(ctx):
    """Offer a fix for each failed health check, then provision."""
    desired = load_desired(ctx)
    require_root()
    build_orchestrator(desired).guided_apply()


@click.command()
@click.pass_context
@handle_errors
def uninstall(ctx):
    """Remove the managed fstab block (prompts for extras)."""
    desired = load_desired(ctx, require=False)
    require_root()
    if not build_orchestrator(desired).uninstall():
        ctx.exit(1)
