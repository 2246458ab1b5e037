import logging

import click
from dotenv import find_dotenv, load_dotenv

from cli import __version__
from cli.commands.install_cmd import install
from cli.commands.local_cmd import local
from cli.commands.repo_cmd import repo
from cli.utils import CliContext
from skill_builder.common.logging_config import setup_colored_logging

log = logging.getLogger(__name__)


@click.group(context_settings=dict(help_option_names=['-h', '--help']))
@click.version_option(
    __version__, "-v", "--version", help="Show the CLI version and exit."
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Path to a skills.json configuration file.",
)
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level.",
)
@click.option(
    "-u",
    "--system-env",
    is_flag=True,
    default=False,
    help="Use system environment variables only; do not load .env file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str, log_level: str, system_env: bool):
    """Store, share and install skills built from llms.txt documentation."""
    setup_colored_logging(level=log_level)

    if not system_env:
        env_path = find_dotenv(usecwd=True)
        if env_path:
            load_dotenv(dotenv_path=env_path, override=True)
            log.info("Loaded environment variables from: %s", env_path)
    else:
        log.info("Using system environment variables only (--system-env flag)")

    ctx.obj = CliContext(config_path=config_path)


cli.add_command(install)
cli.add_command(repo)
cli.add_command(local)


def main():
    cli()


if __name__ == "__main__":
    main()
