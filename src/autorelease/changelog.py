from __future__ import annotations

import posixpath
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from autorelease.conventional import ConventionalCommit

CHANGELOG_HEADER = '# Changelog\n'

_SECTIONS = (
    ('feat', 'Features'),
    ('fix', 'Bug Fixes'),
    ('perf', 'Performance Improvements'),
    ('revert', 'Reverts'),
)
_VERSION_HEADING_RE = re.compile(r'^#{2,3} \[?v?\d+\.\d+\.\d+', re.MULTILINE)


@dataclass(frozen=True)
class ChangelogContext:
    """Inputs for rendering a changelog section.

    Attributes:
        version: The version being released.
        html_url: Repository web URL used for commit and compare links.
        previous_tag: Tag of the previous release, if any.
        current_tag: Tag the new release will get.
        release_date: Date printed in the heading.
    """

    version: str
    html_url: str
    previous_tag: str | None
    current_tag: str
    release_date: date


def resolve_changelog_path(changelog_path: str, package_path: str | None) -> str:
    """Resolve the changelog path relative to the package path within the repository."""
    if package_path:
        return posixpath.join(package_path.strip('/'), changelog_path)
    return changelog_path


def _commit_line(commit: ConventionalCommit, html_url: str) -> str:
    scope = f'**{commit.scope}:** ' if commit.scope else ''
    return f'* {scope}{commit.subject} ([{commit.sha[:7]}]({html_url}/commit/{commit.sha}))'


def render_section(context: ChangelogContext, commits: Sequence[ConventionalCommit]) -> str:
    """Render the markdown section for a release.

    Args:
        context: Version and link details for the heading.
        commits: Commits included in the release, newest first.

    Returns:
        The section markdown, ending with a blank line.
    """
    if context.previous_tag:
        target = f'{context.html_url}/compare/{context.previous_tag}...{context.current_tag}'
    else:
        target = f'{context.html_url}/releases/tag/{context.current_tag}'
    lines = [f'## [{context.version}]({target}) ({context.release_date.isoformat()})', '']

    breaking = [commit for commit in commits if commit.breaking is not None]
    if breaking:
        lines.extend(['', '### ⚠ BREAKING CHANGES', ''])
        lines.extend(
            f'* {commit.breaking} ([{commit.sha[:7]}]({context.html_url}/commit/{commit.sha}))'
            for commit in breaking
        )

    for commit_type, title in _SECTIONS:
        matching = [commit for commit in commits if commit.type == commit_type]
        if not matching:
            continue
        lines.extend(['', f'### {title}', ''])
        lines.extend(_commit_line(commit, context.html_url) for commit in matching)

    return '\n'.join(lines) + '\n'


def prepend_section(changelog: str | None, section: str) -> str:
    """Insert `section` above the previous releases, keeping any preamble."""
    if not changelog:
        return f'{CHANGELOG_HEADER}\n{section}'
    match = _VERSION_HEADING_RE.search(changelog)
    if match is None:
        return f'{changelog.rstrip()}\n\n{section}'
    return f'{changelog[: match.start()]}{section}\n{changelog[match.start() :]}'


def extract_section(changelog: str, version: str) -> str | None:
    """Return the notes recorded for `version`, without the heading."""
    heading = re.compile(rf'^#{{2,3}} \[?v?{re.escape(version)}\b.*$', re.MULTILINE)
    match = heading.search(changelog)
    if match is None:
        return None
    following = _VERSION_HEADING_RE.search(changelog, match.end())
    end = following.start() if following else len(changelog)
    return changelog[match.end() : end].strip()
