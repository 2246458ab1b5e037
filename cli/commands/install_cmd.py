"""
CLI command for installing a skill.

By default the local repository, the remote repository and GitHub releases
are searched in that order. --local, --remote and --github restrict the
search to the given sources; the order between them is always the same.
"""

from typing import Optional

import click

from cli.utils import CliContext, error_exit
from skill_builder.installer import DEFAULT_INSTALL_DIR, InstallError, InstallResult, install_from_file
from skill_builder.resolver import (
    SOURCE_PRIORITY,
    InstallResolver,
    ResolutionError,
    ResolutionRequest,
    SourceKind,
)


def echo_install_result(result: InstallResult):
    click.echo(
        click.style(
            f"Successfully installed {result.skill_name} to {result.install_path} "
            f"({result.files_extracted} files)",
            fg="green",
        )
    )


@click.command(name="install")
@click.argument("skill", required=False)
@click.option("--version", "version", help="Version to install (default: latest).")
@click.option("--repo", "github_repo", help="GitHub repository for releases (OWNER/REPO).")
@click.option("--local", "use_local", is_flag=True, default=False, help="Search the local repository.")
@click.option("--remote", "use_remote", is_flag=True, default=False, help="Search the remote repository.")
@click.option("--github", "use_github", is_flag=True, default=False, help="Search GitHub releases.")
@click.option(
    "-f",
    "--file",
    "skill_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Install from a .skill file instead of a repository.",
)
@click.option(
    "-d",
    "--install-dir",
    default=DEFAULT_INSTALL_DIR,
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory to install the skill into.",
)
@click.option(
    "--no-write-back",
    is_flag=True,
    default=False,
    help="Do not copy skills fetched from remote or GitHub into the local repository.",
)
@click.pass_obj
def install(
    ctx: CliContext,
    skill: Optional[str],
    version: Optional[str],
    github_repo: Optional[str],
    use_local: bool,
    use_remote: bool,
    use_github: bool,
    skill_file: Optional[str],
    install_dir: str,
    no_write_back: bool,
):
    """
    Install SKILL from the local repository, remote repository or GitHub.

    Examples:
        skill-builder install my-skill
        skill-builder install my-skill --version 1.0.0
        skill-builder install my-skill --remote --github
        skill-builder install --file ./dist/my-skill.skill
    """
    if skill_file:
        try:
            result = install_from_file(skill_file, install_dir)
        except InstallError as e:
            error_exit(f"Error: {e}")
        echo_install_result(result)
        return

    if not skill:
        error_exit("Error: Provide a SKILL name or --file.")

    flags = {
        SourceKind.LOCAL: use_local,
        SourceKind.REMOTE: use_remote,
        SourceKind.GITHUB: use_github,
    }
    sources = tuple(source for source in SOURCE_PRIORITY if flags[source]) or SOURCE_PRIORITY

    resolver = InstallResolver(
        local=ctx.local_repository(),
        remote=ctx.remote_repository(with_cache=False),
        github=ctx.github_source(github_repo),
    )
    request = ResolutionRequest(
        skill_name=skill,
        version=version,
        sources=sources,
        write_back=not no_write_back,
    )

    try:
        resolution = resolver.resolve(request)
    except ResolutionError as e:
        error_exit(f"Error: {e}")

    click.echo(
        click.style(
            f"Resolved {skill}@{resolution.version} from {resolution.source.value}", fg="blue"
        )
    )
    try:
        result = install_from_file(resolution.path, install_dir)
    except InstallError as e:
        error_exit(f"Error: {e}")
    echo_install_result(result)
