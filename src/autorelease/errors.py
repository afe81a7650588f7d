from __future__ import annotations

from collections.abc import Iterable


class AutoreleaseError(Exception):
    """Base class for errors raised by autorelease."""


class OptionConflictError(AutoreleaseError):
    """Raised when an option name is registered twice with different definitions."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Option --{name} is already registered with a different definition.')


class CommandConfigurationError(AutoreleaseError):
    """Raised when a command is registered inconsistently with its option schema."""

    def __init__(self, command: str, *, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f'Command {command!r} is misconfigured: {reason}')


class SecretResolutionError(AutoreleaseError):
    """Raised when a secret-bearing option names a file that cannot be read."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'Unable to read secret from file: {path}')


class UnknownReleaseTypeError(AutoreleaseError):
    """Raised when a release type is not present in the releaser registry."""

    def __init__(self, release_type: str, *, known: Iterable[str]) -> None:
        self.release_type = release_type
        self.known = tuple(known)
        super().__init__(
            f'Unknown release type {release_type!r}. Expected one of: {", ".join(self.known)}',
        )


class InvalidGitHubRemoteError(AutoreleaseError):
    """Raised when a repository URL cannot be mapped to a GitHub repository."""

    def __init__(self, repo_url: str) -> None:
        self.repo_url = repo_url
        super().__init__(f'Unable to determine GitHub repository from URL: {repo_url}')


class InvalidReleaseVersionError(AutoreleaseError):
    """Raised when a release version is not valid semver."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f'Invalid release version: {version}')


class ReleaseTagNotFoundError(AutoreleaseError):
    """Raised when no release tag matches the requested package."""

    def __init__(self, *, package_name: str | None = None) -> None:
        self.package_name = package_name
        if package_name:
            message = f'No release tag found for package {package_name!r}.'
        else:
            message = 'No release tag found.'
        super().__init__(message)


class MissingPackageNameError(AutoreleaseError):
    """Raised when monorepo tags are requested without a package name."""

    def __init__(self) -> None:
        super().__init__('--package-name is required when --monorepo-tags is set.')
