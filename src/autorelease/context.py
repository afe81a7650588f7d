from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any


@dataclass(frozen=True)
class ParsedOptions:
    """Validated options for a single invocation.

    Built once by the router from the parsed click parameters. Options that a command does not
    declare keep their defaults here (e.g. `draft` outside `github-release`).
    """

    command: str
    repo_url: str
    debug: bool = False
    token: str | None = None
    api_url: str = 'https://api.github.com'
    default_branch: str | None = None
    label: str = 'autorelease: pending'
    release_as: str | None = None
    bump_minor_pre_major: bool = False
    path: str | None = None
    package_name: str | None = None
    monorepo_tags: bool = False
    version_file: str | None = None
    last_package_version: str | None = None
    fork: bool = False
    snapshot: bool = False
    release_type: str | None = None
    changelog_path: str = 'CHANGELOG.md'
    draft: bool = False

    @classmethod
    def from_params(cls, command: str, params: Mapping[str, Any]) -> ParsedOptions:
        """Build options from click's `ctx.params` for `command`."""
        known = {f.name for f in fields(cls)}
        return cls(command=command, **{k: v for k, v in params.items() if k in known})


@dataclass
class Invocation:
    """State shared from parsing through dispatch to the fault boundary.

    Attributes:
        argv: The raw argument vector (without the program name).
        command: Name of the selected command, empty until a command is resolved.
        options: Parsed options, set once dispatch begins.
        exit_code: Terminal exit status for the process.
        stray_faults: Exceptions reported by the event loop outside the handler's own call chain.
        leading_options: Global options given before the command token, by parameter name.
    """

    argv: list[str] = field(default_factory=list)
    command: str = ''
    options: ParsedOptions | None = None
    exit_code: int = 0
    stray_faults: list[BaseException] = field(default_factory=list)
    leading_options: dict[str, Any] = field(default_factory=dict)

    @property
    def debug(self) -> bool:
        return self.options is not None and self.options.debug
