from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Annotated, Any

import click
import typer

from autorelease import __version__
from autorelease.context import Invocation, ParsedOptions
from autorelease.factory import factory
from autorelease.faults import FaultBoundary
from autorelease.options import GLOBAL_OPTIONS, OptionSpec, OptionType, release_type_option
from autorelease.router import CommandRouter, CommandSpec
from autorelease.settings import AutoreleaseSettings

PROG_NAME = 'autorelease'

app = typer.Typer(help='Automate releases: release PRs, tags and GitHub releases.')
router = CommandRouter(app, GLOBAL_OPTIONS)

_DEFAULTED_RELEASE_TYPE = release_type_option(default='node')
_RELEASE_TYPE = release_type_option()
_CHANGELOG_PATH = OptionSpec(
    name='changelog-path',
    description='where can the CHANGELOG be found in the project?',
    default='CHANGELOG.md',
)
_DRAFT = OptionSpec(
    name='draft',
    description=(
        'mark release as a draft. no tag is created but tag_name and target_commitish are '
        'associated with the release for future tag creation upon "un-drafting" the release.'
    ),
    type=OptionType.boolean,
    default=False,
)

_opt = GLOBAL_OPTIONS.annotated


def _leading(name: str) -> Any:
    return GLOBAL_OPTIONS.annotated(name, leading=True)


DebugOption = _opt('debug')
TokenOption = _opt('token')
ApiUrlOption = _opt('api-url')
DefaultBranchOption = _opt('default-branch')
RepoUrlOption = _opt('repo-url')
LabelOption = _opt('label')
ReleaseAsOption = _opt('release-as')
BumpMinorPreMajorOption = _opt('bump-minor-pre-major')
PathOption = _opt('path')
PackageNameOption = _opt('package-name')
MonorepoTagsOption = _opt('monorepo-tags')
VersionFileOption = _opt('version-file')
LastPackageVersionOption = _opt('last-package-version')
ForkOption = _opt('fork')
SnapshotOption = _opt('snapshot')
ReleaseTypeOption = _DEFAULTED_RELEASE_TYPE.annotated()
OptionalReleaseTypeOption = _RELEASE_TYPE.annotated()
ChangelogPathOption = _CHANGELOG_PATH.annotated()
DraftOption = _DRAFT.annotated()

# typer may parse with its own bundled click; usage errors can come from either copy.
_CLICK_ERRORS: tuple[type[Exception], ...] = tuple(
    {click.ClickException, *(cls for cls in typer.BadParameter.__mro__ if cls.__name__ == 'ClickException')},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f'{PROG_NAME} {__version__}')
        raise typer.Exit


@app.callback()
def _root(  # noqa: PLR0913
    ctx: typer.Context,
    *,
    version: Annotated[
        bool,
        typer.Option(
            '--version',
            callback=_version_callback,
            is_eager=True,
            help='Show the version and exit.',
        ),
    ] = False,
    debug: _leading('debug') = None,
    token: _leading('token') = None,
    api_url: _leading('api-url') = None,
    default_branch: _leading('default-branch') = None,
    repo_url: _leading('repo-url') = None,
    label: _leading('label') = None,
    release_as: _leading('release-as') = None,
    bump_minor_pre_major: _leading('bump-minor-pre-major') = None,
    path: _leading('path') = None,
    package_name: _leading('package-name') = None,
    monorepo_tags: _leading('monorepo-tags') = None,
    version_file: _leading('version-file') = None,
    last_package_version: _leading('last-package-version') = None,
    fork: _leading('fork') = None,
    snapshot: _leading('snapshot') = None,
) -> None:
    invocation = ctx.ensure_object(Invocation)
    invocation.command = ctx.invoked_subcommand or ''

    # Options given before the command token outrank configured defaults.
    defaults = {**AutoreleaseSettings().command_defaults(), **router.record_leading_options(ctx)}
    default_map = {name: dict(defaults) for name in router.commands}
    if ctx.default_map is None:
        ctx.default_map = default_map
    else:
        ctx.default_map = {
            **ctx.default_map,
            **default_map,
        }


async def _release_pr(options: ParsedOptions) -> None:
    pull_request = await factory.release_pr(options)
    if pull_request is not None:
        typer.echo(f'Release PR: {pull_request.url}')


async def _latest_tag(options: ParsedOptions) -> None:
    latest = await factory.latest_tag(options)
    typer.echo(latest.name)


async def _github_release(options: ParsedOptions) -> None:
    release = await factory.github_release(options)
    if release is not None:
        typer.echo(f'Release created: {release.url}')


@router.command(
    CommandSpec(
        name='release-pr',
        description='create or update a PR representing the next release',
        handler=_release_pr,
        extra_options=(_DEFAULTED_RELEASE_TYPE,),
    ),
)
def release_pr(  # noqa: PLR0913
    ctx: typer.Context,
    *,
    debug: DebugOption = False,
    token: TokenOption = None,
    api_url: ApiUrlOption = 'https://api.github.com',
    default_branch: DefaultBranchOption = None,
    repo_url: RepoUrlOption,
    label: LabelOption = 'autorelease: pending',
    release_as: ReleaseAsOption = None,
    bump_minor_pre_major: BumpMinorPreMajorOption = False,
    path: PathOption = None,
    package_name: PackageNameOption = None,
    monorepo_tags: MonorepoTagsOption = False,
    version_file: VersionFileOption = None,
    last_package_version: LastPackageVersionOption = None,
    fork: ForkOption = False,
    snapshot: SnapshotOption = False,
    release_type: ReleaseTypeOption = 'node',
) -> None:
    """Create or update a PR representing the next release."""
    router.dispatch(ctx)


@router.command(
    CommandSpec(
        name='latest-tag',
        description='find the sha of the latest release',
        handler=_latest_tag,
        extra_options=(_DEFAULTED_RELEASE_TYPE,),
    ),
)
def latest_tag(  # noqa: PLR0913
    ctx: typer.Context,
    *,
    debug: DebugOption = False,
    token: TokenOption = None,
    api_url: ApiUrlOption = 'https://api.github.com',
    default_branch: DefaultBranchOption = None,
    repo_url: RepoUrlOption,
    label: LabelOption = 'autorelease: pending',
    release_as: ReleaseAsOption = None,
    bump_minor_pre_major: BumpMinorPreMajorOption = False,
    path: PathOption = None,
    package_name: PackageNameOption = None,
    monorepo_tags: MonorepoTagsOption = False,
    version_file: VersionFileOption = None,
    last_package_version: LastPackageVersionOption = None,
    fork: ForkOption = False,
    snapshot: SnapshotOption = False,
    release_type: ReleaseTypeOption = 'node',
) -> None:
    """Print the latest release tag."""
    router.dispatch(ctx)


@router.command(
    CommandSpec(
        name='github-release',
        description='create a GitHub release from a release PR',
        handler=_github_release,
        extra_options=(_RELEASE_TYPE, _CHANGELOG_PATH, _DRAFT),
    ),
)
def github_release(  # noqa: PLR0913
    ctx: typer.Context,
    *,
    debug: DebugOption = False,
    token: TokenOption = None,
    api_url: ApiUrlOption = 'https://api.github.com',
    default_branch: DefaultBranchOption = None,
    repo_url: RepoUrlOption,
    label: LabelOption = 'autorelease: pending',
    release_as: ReleaseAsOption = None,
    bump_minor_pre_major: BumpMinorPreMajorOption = False,
    path: PathOption = None,
    package_name: PackageNameOption = None,
    monorepo_tags: MonorepoTagsOption = False,
    version_file: VersionFileOption = None,
    last_package_version: LastPackageVersionOption = None,
    fork: ForkOption = False,
    snapshot: SnapshotOption = False,
    release_type: OptionalReleaseTypeOption = None,
    changelog_path: ChangelogPathOption = 'CHANGELOG.md',
    draft: DraftOption = False,
) -> None:
    """Create a GitHub release from the latest merged release PR."""
    router.dispatch(ctx)


def run(argv: Sequence[str] | None = None) -> int:
    """Run a single invocation and return its exit code.

    Usage errors are printed with usage text; any other failure is reported through the fault
    boundary. Both exit with status 1.
    """
    invocation = Invocation(argv=list(sys.argv[1:] if argv is None else argv))
    command = typer.main.get_command(app)
    with FaultBoundary(invocation):
        try:
            result = command.main(
                args=invocation.argv,
                prog_name=PROG_NAME,
                standalone_mode=False,
                obj=invocation,
            )
        except _CLICK_ERRORS as exc:
            exc.show()
            invocation.exit_code = 1
        else:
            if isinstance(result, int) and result:
                invocation.exit_code = 1
    return invocation.exit_code


def main() -> None:
    """Main entry point for the CLI."""
    raise SystemExit(run())
