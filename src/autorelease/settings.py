from __future__ import annotations

from typing import Any

from pydantic import model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    PyprojectTomlConfigSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


class AutoreleaseSettings(BaseSettings):
    """Project-level defaults for command options.

    Sources, highest precedence first: `AUTORELEASE_*` environment variables, `autorelease.toml`,
    and the `[tool.autorelease]` table of `pyproject.toml`. Keys may be written in kebab-case.
    Explicit command-line flags always override these values.
    """

    model_config = SettingsConfigDict(
        env_prefix='AUTORELEASE_',
        env_nested_delimiter='__',
        toml_file='autorelease.toml',
        pyproject_toml_table_header=('tool', 'autorelease'),
        extra='ignore',
    )

    api_url: str | None = None
    default_branch: str | None = None
    label: str | None = None
    release_type: str | None = None
    changelog_path: str | None = None
    bump_minor_pre_major: bool | None = None
    monorepo_tags: bool | None = None
    fork: bool | None = None

    @model_validator(mode='before')
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {str(key).replace('-', '_'): value for key, value in data.items()}
        return data

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
            PyprojectTomlConfigSettingsSource(settings_cls),
        )

    def command_defaults(self) -> dict[str, object]:
        """Return click `default_map` entries from the configured values.

        `changelog_path` is included even for commands without `--changelog-path` so that
        `release-pr` writes the changelog `github-release` later reads.
        """
        names = [
            'api_url',
            'default_branch',
            'label',
            'release_type',
            'bump_minor_pre_major',
            'monorepo_tags',
            'fork',
            'changelog_path',
        ]
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}
