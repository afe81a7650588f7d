from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from github import GithubException

from autorelease import cli
from autorelease.context import ParsedOptions
from autorelease.factory import CreatedRelease
from autorelease.faults import DEBUG_SEPARATOR
from autorelease.github import PullRequest
from autorelease.version_tags import ReleaseTag

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


def _options(mock: object) -> ParsedOptions:
    return mock.call_args.args[0]  # type: ignore[attr-defined]


def test_latest_tag_prints_only_the_tag(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch(
        'autorelease.cli.factory.latest_tag',
        return_value=ReleaseTag(name='v1.2.3', sha='abc', version='1.2.3'),
    )

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo'])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out == 'v1.2.3\n'
    assert captured.err == ''


def test_latest_tag_failure_prints_only_the_summary(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch(
        'autorelease.cli.factory.latest_tag',
        side_effect=GithubException(404, {'message': 'not found', 'secret': 'request-body'}, None),
    )

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo'])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ''
    assert captured.err == 'command latest-tag failed with status 404\n'


def test_latest_tag_failure_with_debug_prints_traceback(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch(
        'autorelease.cli.factory.latest_tag',
        side_effect=GithubException(404, {'message': 'not found'}, None),
    )

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo', '--debug'])

    err = capsys.readouterr().err
    assert exit_code == 1
    summary = err.index('command latest-tag failed with status 404\n')
    separator = err.index(f'\n{DEBUG_SEPARATOR}\n', summary)
    assert 'Traceback (most recent call last)' in err[separator:]
    assert 'GithubException' in err[separator:]


def test_failure_without_status_omits_suffix(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch('autorelease.cli.factory.release_pr', side_effect=RuntimeError('boom'))

    exit_code = cli.run(['release-pr', '--repo-url', 'octo/repo'])

    assert exit_code == 1
    assert capsys.readouterr().err == 'command release-pr failed\n'


def test_token_file_is_resolved_before_the_handler(
    mocker: MockerFixture,
    tmp_path: Path,
) -> None:
    token_file = tmp_path / 'token'
    token_file.write_text('abc123\n', encoding='utf-8')
    latest_tag = mocker.patch(
        'autorelease.cli.factory.latest_tag',
        return_value=ReleaseTag(name='v1.0.0', sha='abc', version='1.0.0'),
    )

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo', '--token', str(token_file)])

    assert exit_code == 0
    assert _options(latest_tag).token == 'abc123'


def test_literal_token_is_passed_through(mocker: MockerFixture) -> None:
    latest_tag = mocker.patch(
        'autorelease.cli.factory.latest_tag',
        return_value=ReleaseTag(name='v1.0.0', sha='abc', version='1.0.0'),
    )

    cli.run(['latest-tag', '--repo-url', 'octo/repo', '--token', 'ghp_literal'])

    assert _options(latest_tag).token == 'ghp_literal'


def test_token_falls_back_to_environment(
    mocker: MockerFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv('GITHUB_TOKEN', 'from-env')
    latest_tag = mocker.patch(
        'autorelease.cli.factory.latest_tag',
        return_value=ReleaseTag(name='v1.0.0', sha='abc', version='1.0.0'),
    )

    cli.run(['latest-tag', '--repo-url', 'octo/repo'])

    assert _options(latest_tag).token == 'from-env'


def test_unreadable_token_file_is_reported_as_a_fault(
    mocker: MockerFixture,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    token_file = tmp_path / 'token'
    token_file.write_text('abc123\n', encoding='utf-8')
    mocker.patch('autorelease.coerce.Path.read_text', side_effect=PermissionError('denied'))
    latest_tag = mocker.patch('autorelease.cli.factory.latest_tag')

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo', '--token', str(token_file)])

    assert exit_code == 1
    assert capsys.readouterr().err == 'command latest-tag failed\n'
    latest_tag.assert_not_called()


def test_release_pr_defaults(mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    release_pr = mocker.patch(
        'autorelease.cli.factory.release_pr',
        return_value=PullRequest(url='https://github.com/octo/repo/pull/7', number=7),
    )

    exit_code = cli.run(['release-pr', '--repo-url', 'octo/repo'])

    assert exit_code == 0
    assert capsys.readouterr().out == 'Release PR: https://github.com/octo/repo/pull/7\n'
    options = _options(release_pr)
    assert options == ParsedOptions(command='release-pr', repo_url='octo/repo', release_type='node')


def test_release_pr_passes_global_options(mocker: MockerFixture) -> None:
    release_pr = mocker.patch('autorelease.cli.factory.release_pr', return_value=None)

    exit_code = cli.run(
        [
            'release-pr',
            '--repo-url',
            'https://github.com/octo/repo.git',
            '--release-type',
            'python',
            '--release-as',
            '2.0.0',
            '--bump-minor-pre-major',
            '--monorepo-tags',
            '--package-name',
            'widgets',
            '--path',
            'packages/widgets',
            '--label',
            'release: pending',
            '--default-branch',
            'develop',
            '--snapshot',
        ],
    )

    assert exit_code == 0
    options = _options(release_pr)
    assert options.release_type == 'python'
    assert options.release_as == '2.0.0'
    assert options.bump_minor_pre_major is True
    assert options.monorepo_tags is True
    assert options.package_name == 'widgets'
    assert options.path == 'packages/widgets'
    assert options.label == 'release: pending'
    assert options.default_branch == 'develop'
    assert options.snapshot is True
    assert options.fork is False


def test_github_release_has_no_release_type_default(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    github_release = mocker.patch(
        'autorelease.cli.factory.github_release',
        return_value=CreatedRelease(
            url='https://github.com/octo/repo/releases/tag/v1.3.0',
            tag_name='v1.3.0',
            version='1.3.0',
            pr_number=7,
        ),
    )

    exit_code = cli.run(['github-release', '--repo-url', 'octo/repo', '--draft', '--changelog-path', 'docs/CHANGES.md'])

    assert exit_code == 0
    assert capsys.readouterr().out == 'Release created: https://github.com/octo/repo/releases/tag/v1.3.0\n'
    options = _options(github_release)
    assert options.release_type is None
    assert options.draft is True
    assert options.changelog_path == 'docs/CHANGES.md'


def test_settings_provide_option_defaults(mocker: MockerFixture, tmp_path: Path) -> None:
    (tmp_path / 'autorelease.toml').write_text(
        'release-type = "python"\nlabel = "release: pending"\n',
        encoding='utf-8',
    )
    release_pr = mocker.patch('autorelease.cli.factory.release_pr', return_value=None)

    cli.run(['release-pr', '--repo-url', 'octo/repo'])
    cli.run(['release-pr', '--repo-url', 'octo/repo', '--label', 'custom'])

    configured, overridden = (call.args[0] for call in release_pr.call_args_list)
    assert configured.release_type == 'python'
    assert configured.label == 'release: pending'
    assert overridden.label == 'custom'


def test_stray_background_failure_fails_the_command(
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def _latest_tag(_options: ParsedOptions) -> ReleaseTag:
        asyncio.get_running_loop().call_exception_handler(
            {'message': 'background task failed', 'exception': RuntimeError('stray')},
        )
        return ReleaseTag(name='v1.0.0', sha='abc', version='1.0.0')

    mocker.patch('autorelease.cli.factory.latest_tag', side_effect=_latest_tag)

    exit_code = cli.run(['latest-tag', '--repo-url', 'octo/repo'])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == 'v1.0.0\n'
    assert captured.err == 'command latest-tag failed\n'


def test_configured_changelog_path_reaches_every_command(mocker: MockerFixture, tmp_path: Path) -> None:
    (tmp_path / 'autorelease.toml').write_text('changelog-path = "docs/CHANGES.md"\n', encoding='utf-8')
    release_pr = mocker.patch('autorelease.cli.factory.release_pr', return_value=None)
    github_release = mocker.patch('autorelease.cli.factory.github_release', return_value=None)

    assert cli.run(['release-pr', '--repo-url', 'octo/repo']) == 0
    assert cli.run(['github-release', '--repo-url', 'octo/repo']) == 0

    assert _options(release_pr).changelog_path == 'docs/CHANGES.md'
    assert _options(github_release).changelog_path == 'docs/CHANGES.md'
