from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Any

import click
import typer

from autorelease.errors import OptionConflictError
from autorelease.releasers import get_releaser_types


class OptionType(StrEnum):
    """Value type of a command-line option."""

    string = 'string'
    boolean = 'boolean'


@dataclass(frozen=True)
class OptionSpec:
    """Declaration of a single command-line option.

    Attributes:
        name: Flag name without the leading dashes (e.g. `repo-url`).
        description: Help text.
        type: Whether the option takes a string value or is a boolean flag.
        default: Value used when the flag is not supplied.
        choices: If set, the only accepted values, in display order.
        required: If true, parsing fails when the flag is absent.
        envvar: Environment variables consulted when the flag is absent.
    """

    name: str
    description: str
    type: OptionType = OptionType.string
    default: str | bool | None = None
    choices: tuple[str, ...] | None = None
    required: bool = False
    envvar: tuple[str, ...] = ()

    @property
    def param_name(self) -> str:
        """Python parameter name the option binds to."""
        return self.name.replace('-', '_')

    @property
    def python_type(self) -> Any:
        value_type = bool if self.type == OptionType.boolean else str
        if self.required or self.default is not None:
            return value_type
        return value_type | None

    def to_typer(self, *, leading: bool = False) -> Any:
        """Build the `typer.Option` carried in the `Annotated` type of a command parameter.

        A `leading` option is declared on the root callback, before the command token. It never
        reads environment variables and has no default so only flags actually given are recorded.
        """
        if self.type == OptionType.boolean:
            return typer.Option(
                f'--{self.name}/--no-{self.name}',
                help=self.description,
                show_default=not leading,
            )
        envvar = None if leading else list(self.envvar) or None
        return typer.Option(
            f'--{self.name}',
            help=self.description,
            click_type=click.Choice(self.choices) if self.choices else None,
            envvar=envvar,
            show_default=not leading and self.default is not None,
            show_envvar=envvar is not None,
        )

    def annotated(self, *, leading: bool = False) -> Any:
        """Return the `Annotated[...]` parameter type declaring this option."""
        python_type = self.python_type | None if leading else self.python_type
        return Annotated[python_type, self.to_typer(leading=leading)]


class OptionRegistry:
    """A set of option declarations keyed by flag name."""

    def __init__(self, specs: tuple[OptionSpec, ...] = ()) -> None:
        self._specs: dict[str, OptionSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: OptionSpec) -> OptionSpec:
        """Add an option declaration.

        Re-registering an identical declaration is a no-op.

        Raises:
            OptionConflictError: If `spec.name` is already registered with a different definition.
        """
        existing = self._specs.get(spec.name)
        if existing is not None and existing != spec:
            raise OptionConflictError(spec.name)
        self._specs[spec.name] = spec
        return spec

    def annotated(self, name: str, *, leading: bool = False) -> Any:
        """Return the `Annotated[...]` parameter type for a registered flag."""
        return self[name].annotated(leading=leading)

    def __getitem__(self, name: str) -> OptionSpec:
        return self._specs[name]

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


def release_type_option(default: str | None = None) -> OptionSpec:
    """Declare `--release-type` with choices taken from the releaser registry."""
    return OptionSpec(
        name='release-type',
        description='what type of repo is a release being created for?',
        default=default,
        choices=get_releaser_types(),
    )


GLOBAL_OPTIONS = OptionRegistry(
    (
        OptionSpec(
            name='debug',
            description='print verbose errors (use only for local debugging).',
            type=OptionType.boolean,
            default=False,
        ),
        OptionSpec(
            name='token',
            description='GitHub token with repo write permissions (or a path to a file containing it).',
            envvar=('AUTORELEASE_GITHUB_TOKEN', 'GITHUB_TOKEN'),
        ),
        OptionSpec(
            name='api-url',
            description='URL to use when making API requests.',
            default='https://api.github.com',
        ),
        OptionSpec(
            name='default-branch',
            description='The branch to open release PRs against and tag releases on.',
        ),
        OptionSpec(
            name='repo-url',
            description='GitHub URL to generate release for.',
            required=True,
        ),
        OptionSpec(
            name='label',
            description='label to remove from release PR.',
            default='autorelease: pending',
        ),
        OptionSpec(
            name='release-as',
            description='override the semantically determined release version.',
        ),
        OptionSpec(
            name='bump-minor-pre-major',
            description='should we bump the semver minor prior to the first major release.',
            type=OptionType.boolean,
            default=False,
        ),
        OptionSpec(
            name='path',
            description='release from path other than root directory.',
        ),
        OptionSpec(
            name='package-name',
            description='name of package release is being minted for.',
        ),
        OptionSpec(
            name='monorepo-tags',
            description='include library name in tags and release branches.',
            type=OptionType.boolean,
            default=False,
        ),
        OptionSpec(
            name='version-file',
            description='path to version file to update, e.g., version.rb.',
        ),
        OptionSpec(
            name='last-package-version',
            description='last version # that package was released as.',
        ),
        OptionSpec(
            name='fork',
            description='should the PR be created from a fork.',
            type=OptionType.boolean,
            default=False,
        ),
        OptionSpec(
            name='snapshot',
            description='is it a snapshot (or pre-release) being generated?',
            type=OptionType.boolean,
            default=False,
        ),
    ),
)
