import logging

import click

from omamount.cli.mounts import doctor, list_config, print_fstab
from omamount.cli.provision import apply, guided, uninstall
from omamount.config.settings import config
from omamount.version import __version__


@click.group()
@click.option(
    "--config", "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file (overrides CONFIG_FILE).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="omamount")
@click.pass_context
def main(ctx, config_file, verbose):
    """omamount: provision SMB/CIFS NAS mounts"""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file

    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

main.add_command(list_config)
main.add_command(print_fstab)
main.add_command(doctor)
main.add_command(apply)
main.add_command(guided)
main.add_command(uninstall)

@main.command(name="help")
@click.pass_context
def show_help(ctx):
    """Show this help."""
    click.echo(ctx.parent.get_help())
