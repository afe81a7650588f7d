from __future__ import annotations

from dataclasses import dataclass

from autorelease.errors import UnknownReleaseTypeError


@dataclass(frozen=True)
class Releaser:
    """A release type and the ecosystem conventions it follows.

    Attributes:
        name: Identifier accepted by `--release-type`.
        version_files: Files (relative to the package path) whose version string is bumped
            in a release PR.
    """

    name: str
    version_files: tuple[str, ...] = ()


_RELEASERS: dict[str, Releaser] = {}


def register_releaser(releaser: Releaser) -> Releaser:
    """Add a release type to the registry, replacing any previous one of the same name."""
    _RELEASERS[releaser.name] = releaser
    return releaser


def get_releaser_types() -> tuple[str, ...]:
    """Return the supported release types, sorted by name."""
    return tuple(sorted(_RELEASERS))


def get_releaser(name: str) -> Releaser:
    """Look up a release type.

    Raises:
        UnknownReleaseTypeError: If `name` is not registered.
    """
    try:
        return _RELEASERS[name]
    except KeyError as exc:
        raise UnknownReleaseTypeError(name, known=get_releaser_types()) from exc


for _releaser in (
    Releaser('go'),
    Releaser('java-bom', version_files=('versions.txt',)),
    Releaser('java-lts', version_files=('versions.txt',)),
    Releaser('java-yoshi', version_files=('versions.txt',)),
    Releaser('node', version_files=('package.json',)),
    Releaser('ocaml'),
    Releaser('php-yoshi'),
    Releaser('python', version_files=('setup.py', 'setup.cfg', 'pyproject.toml')),
    Releaser('ruby'),
    Releaser('ruby-yoshi'),
    Releaser('rust', version_files=('Cargo.toml',)),
    Releaser('simple', version_files=('version.txt',)),
    Releaser('terraform-module'),
):
    register_releaser(_releaser)
