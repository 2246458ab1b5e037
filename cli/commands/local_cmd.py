"""CLI commands for the local skill repository (~/.skill-builder/local by default)."""

from typing import Optional

import click

from cli.commands.repo_cmd import echo_skill_entries
from cli.utils import CliContext, error_exit
from skill_builder.storage import StorageError


@click.group("local")
def local():
    """Manage the local skill repository."""
    pass


@local.command(name="list")
@click.pass_obj
def list_skills(ctx: CliContext):
    """List skills and versions in the local repository."""
    repository = ctx.local_repository(required=True)
    try:
        entries = repository.list()
    except StorageError as e:
        error_exit(f"Error: {e}")
    click.echo(f"Local repository: {repository.backend.root}")
    echo_skill_entries(entries, "No skills in local repository.")


@local.command(name="clear")
@click.option("--skill", help="Only clear this skill (default: clear all).")
@click.pass_obj
def clear(ctx: CliContext, skill: Optional[str]):
    """Remove skills from the local repository."""
    repository = ctx.local_repository(required=True)
    try:
        removed = repository.clear(skill)
    except StorageError as e:
        error_exit(f"Error: {e}")
    target = skill if skill else "all skills"
    click.echo(click.style(f"Cleared {target} ({removed} versions removed)", fg="green"))
