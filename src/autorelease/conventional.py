from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from semver import VersionInfo

from autorelease.version_tags import parse_version

INITIAL_VERSION = '1.0.0'
SNAPSHOT = 'SNAPSHOT'

_HEADER_RE = re.compile(
    r'^(?P<type>[a-zA-Z]+)(?:\((?P<scope>[^()]+)\))?(?P<breaking>!)?: (?P<subject>.+)$',
)
_BREAKING_FOOTER_RE = re.compile(r'^BREAKING[ -]CHANGE: (?P<note>.+)$', re.MULTILINE)


class Bump(IntEnum):
    """Version bump levels, ordered by significance."""

    none = 0
    patch = 1
    minor = 2
    major = 3


@dataclass(frozen=True)
class ConventionalCommit:
    """A commit whose message follows the Conventional Commits format.

    Attributes:
        sha: Commit SHA.
        type: Commit type (`feat`, `fix`, ...).
        scope: Optional scope in parentheses.
        subject: The header description.
        breaking: Breaking-change note, if the commit is breaking.
    """

    sha: str
    type: str
    scope: str | None
    subject: str
    breaking: str | None = None

    @property
    def bump(self) -> Bump:
        if self.breaking is not None:
            return Bump.major
        if self.type == 'feat':
            return Bump.minor
        if self.type in ('fix', 'perf'):
            return Bump.patch
        return Bump.none


def parse_commit(sha: str, message: str) -> ConventionalCommit | None:
    """Parse a commit message, returning None if its header is not conventional."""
    header, _, body = message.strip().partition('\n')
    match = _HEADER_RE.match(header.strip())
    if not match:
        return None
    subject = match.group('subject').strip()
    breaking: str | None = None
    footer = _BREAKING_FOOTER_RE.search(body)
    if footer:
        breaking = footer.group('note').strip()
    elif match.group('breaking'):
        breaking = subject
    return ConventionalCommit(
        sha=sha,
        type=match.group('type').lower(),
        scope=match.group('scope'),
        subject=subject,
        breaking=breaking,
    )


def next_version(  # noqa: PLR0911
    *,
    previous: str | None,
    commits: Sequence[ConventionalCommit],
    release_as: str | None = None,
    bump_minor_pre_major: bool = False,
    snapshot: bool = False,
) -> VersionInfo | None:
    """Compute the version for the next release.

    Args:
        previous: The last released version, if any.
        commits: Commits since the last release.
        release_as: Explicit version that overrides the computed one.
        bump_minor_pre_major: Bump minor instead of major for breaking changes before 1.0.0.
        snapshot: Produce the next patch version with a `SNAPSHOT` prerelease.

    Returns:
        The next version, or None if nothing warrants a release.
    """
    if release_as:
        return parse_version(release_as)
    if previous is None:
        return VersionInfo.parse(INITIAL_VERSION)

    version = parse_version(previous)
    if snapshot:
        return version.bump_patch().replace(prerelease=SNAPSHOT)

    bump = max((commit.bump for commit in commits), default=Bump.none)
    if bump == Bump.none:
        return None
    if version.prerelease:
        return version.finalize_version()
    if bump == Bump.major and bump_minor_pre_major and version.major == 0:
        bump = Bump.minor
    if bump == Bump.major:
        return version.bump_major()
    if bump == Bump.minor:
        return version.bump_minor()
    return version.bump_patch()
