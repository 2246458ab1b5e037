"""
CLI commands for the S3-compatible skill repository.

Requires ``repository.bucket_name`` in the configuration (or S3_BUCKET_NAME).
Credentials come from the standard AWS chain: environment variables,
~/.aws/credentials or an instance role.
"""

from pathlib import Path
from typing import Dict, Optional

import click

from cli.utils import CliContext, error_exit
from skill_builder.archive import create_source_archive
from skill_builder.installer import DEFAULT_INSTALL_DIR, InstallError, install_from_file
from skill_builder.repository import SkillEntry
from skill_builder.storage import StorageError


def echo_skill_entries(entries: Dict[str, SkillEntry], empty_message: str):
    if not entries:
        click.echo(empty_message)
        return
    for name, entry in entries.items():
        line = click.style(name, bold=True)
        if entry.description:
            line += f" - {entry.description}"
        click.echo(line)
        if entry.llms_txt_url:
            click.echo(f"    Source: {entry.llms_txt_url}")
        click.echo(f"    Versions: {', '.join(entry.version_names())}")


@click.group("repo")
def repo():
    """Manage skills in the S3-compatible remote repository."""
    pass


@repo.command(name="upload")
@click.argument("skill")
@click.argument("version")
@click.option(
    "--file",
    "skill_file",
    type=click.Path(dir_okay=False),
    help="Path to the .skill file [default: dist/<skill>.skill].",
)
@click.option(
    "--changelog",
    type=click.Path(exists=True, dir_okay=False),
    help="CHANGELOG.md to store next to the artifact.",
)
@click.option(
    "--source-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Documentation source directory to archive and upload.",
)
@click.pass_obj
def upload(
    ctx: CliContext,
    skill: str,
    version: str,
    skill_file: Optional[str],
    changelog: Optional[str],
    source_dir: Optional[str],
):
    """Upload VERSION of SKILL to the repository."""
    path = Path(skill_file) if skill_file else Path("dist") / f"{skill}.skill"
    if not path.is_file():
        error_exit(f"Error: Skill file not found: {path}")

    remote = ctx.require_remote()
    skill_config = ctx.config.find_skill(skill)

    click.echo(click.style(f"Uploading {skill} v{version}...", fg="blue"))
    try:
        remote.upload(
            skill,
            version,
            path.read_bytes(),
            changelog=Path(changelog).read_text(encoding="utf-8") if changelog else None,
            source_archive=create_source_archive(source_dir, skill) if source_dir else None,
            description=skill_config.description if skill_config else None,
            llms_txt_url=skill_config.llms_txt_url if skill_config else None,
        )
    except StorageError as e:
        error_exit(f"Error: {e}")
    click.echo(click.style(f"Uploaded {skill} v{version}", fg="green"))


@repo.command(name="download")
@click.argument("skill")
@click.option("--version", "version", help="Version to download (default: latest).")
@click.option(
    "-o",
    "--output",
    "output_dir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory to write the .skill file to.",
)
@click.pass_obj
def download(ctx: CliContext, skill: str, version: Optional[str], output_dir: str):
    """Download SKILL from the repository."""
    remote = ctx.require_remote()
    try:
        artifact = remote.get_artifact(skill, version)
    except StorageError as e:
        error_exit(f"Error: {e}")

    target = Path(output_dir) / f"{skill}.skill"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(artifact.content)
    click.echo(click.style(f"Downloaded {skill} v{artifact.version} to {target}", fg="green"))


@repo.command(name="install")
@click.argument("skill")
@click.option("--version", "version", help="Version to install (default: latest).")
@click.option(
    "-d",
    "--install-dir",
    default=DEFAULT_INSTALL_DIR,
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory to install the skill into.",
)
@click.pass_obj
def install(ctx: CliContext, skill: str, version: Optional[str], install_dir: str):
    """Download SKILL from the repository and install it."""
    remote = ctx.require_remote()
    try:
        artifact = remote.get_artifact(skill, version)
    except StorageError as e:
        error_exit(f"Error: {e}")

    staging = Path(install_dir) / f".{skill}-{artifact.version}.skill"
    staging.parent.mkdir(parents=True, exist_ok=True)
    staging.write_bytes(artifact.content)
    try:
        result = install_from_file(staging, install_dir)
    except InstallError as e:
        error_exit(f"Error: {e}")
    finally:
        staging.unlink(missing_ok=True)
    click.echo(
        click.style(
            f"Successfully installed {result.skill_name} v{artifact.version} to {result.install_path}",
            fg="green",
        )
    )


@repo.command(name="delete")
@click.argument("skill")
@click.option("--version", "version", help="Version to delete (default: all versions).")
@click.option("--yes", is_flag=True, default=False, help="Confirm the deletion.")
@click.pass_obj
def delete(ctx: CliContext, skill: str, version: Optional[str], yes: bool):
    """Delete SKILL, or one VERSION of it, from the repository."""
    target = f"{skill} v{version}" if version else f"{skill} (all versions)"
    if not yes:
        error_exit(
            f"This will permanently delete {target} from the repository. Use --yes to confirm."
        )

    remote = ctx.require_remote()
    try:
        remote.delete(skill, version)
    except StorageError as e:
        error_exit(f"Error: {e}")
    click.echo(click.style(f"Deleted {target}", fg="green"))


@repo.command(name="list")
@click.option("--skill", help="Only show this skill.")
@click.pass_obj
def list_skills(ctx: CliContext, skill: Optional[str]):
    """List skills and versions in the repository."""
    remote = ctx.require_remote()
    try:
        entries = remote.list(skill)
    except StorageError as e:
        error_exit(f"Error: {e}")
    echo_skill_entries(entries, "No skills found in repository.")
