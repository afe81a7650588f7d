from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from autorelease.coerce import coerce_option, resolve_secret_options
from autorelease.context import ParsedOptions
from autorelease.errors import SecretResolutionError

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


def test_coerce_option_returns_literal_values_unchanged() -> None:
    assert coerce_option('ghp_abc123') == 'ghp_abc123'


def test_coerce_option_ignores_directories(tmp_path: Path) -> None:
    assert coerce_option(str(tmp_path)) == str(tmp_path)


def test_coerce_option_tolerates_overlong_values() -> None:
    value = 'x' * 5000
    assert coerce_option(value) == value


def test_coerce_option_reads_and_trims_files(tmp_path: Path) -> None:
    secret = tmp_path / 'secret'
    secret.write_text('  abc123\n', encoding='utf-8')

    assert coerce_option(str(secret)) == 'abc123'


def test_coerce_option_propagates_read_failures(tmp_path: Path, mocker: MockerFixture) -> None:
    secret = tmp_path / 'secret'
    secret.write_text('abc123\n', encoding='utf-8')
    mocker.patch('autorelease.coerce.Path.read_text', side_effect=PermissionError('denied'))

    with pytest.raises(SecretResolutionError) as exc_info:
        coerce_option(str(secret))

    assert exc_info.value.path == str(secret)
    assert isinstance(exc_info.value.__cause__, PermissionError)


def test_resolve_secret_options_only_touches_secret_fields(tmp_path: Path) -> None:
    token = tmp_path / 'token'
    token.write_text('abc123\n', encoding='utf-8')
    api_url = tmp_path / 'api-url'
    api_url.write_text('https://ghe.example.com/api/v3\n', encoding='utf-8')
    options = ParsedOptions(
        command='latest-tag',
        repo_url='octo/repo',
        token=str(token),
        api_url=str(api_url),
        version_file=str(token),
    )

    resolved = resolve_secret_options(options)

    assert resolved.token == 'abc123'
    assert resolved.api_url == 'https://ghe.example.com/api/v3'
    assert resolved.version_file == str(token)
    assert options.token == str(token)


def test_resolve_secret_options_skips_missing_values() -> None:
    options = ParsedOptions(command='latest-tag', repo_url='octo/repo')

    assert resolve_secret_options(options) == options
