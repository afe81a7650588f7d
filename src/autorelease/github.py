from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from github import Auth, Github

from autorelease.errors import InvalidGitHubRemoteError

if TYPE_CHECKING:
    from github.Repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequest:
    """A minimal representation of a created or updated GitHub pull request.

    Attributes:
        url: The PR URL.
        number: The PR number.
    """

    url: str
    number: int


@dataclass(frozen=True)
class PullRequestRequest:
    """Parameters for opening (or refreshing) a release pull request.

    Attributes:
        base: The base branch for the PR.
        head: The head branch for the PR, `owner:branch` when opened from a fork.
        title: The PR title.
        body: The PR body.
        labels: Labels to add to the PR.
    """

    base: str
    head: str
    title: str
    body: str
    labels: list[str]


_SCP_SSH_RE = re.compile(r'^git@[^:/]+:(?P<full>[^/]+/[^/]+?)(?:\.git)?/?$')
_SSH_URL_RE = re.compile(r'^ssh://git@[^/]+/(?P<full>[^/]+/[^/]+?)(?:\.git)?/?$')
_HTTPS_RE = re.compile(r'^https?://[^/]+/(?P<full>[^/]+/[^/]+?)(?:\.git)?/?$')
_FULL_NAME_RE = re.compile(r'^(?P<full>[\w.-]+/[\w.-]+?)(?:\.git)?$')


def parse_github_full_name(repo_url: str) -> str:
    """Map a repository URL (https, ssh or `owner/repo`) to `owner/repo`.

    Raises:
        InvalidGitHubRemoteError: If the URL has no recognizable owner and repository.
    """
    repo_url = repo_url.strip()
    for regex in (_SCP_SSH_RE, _SSH_URL_RE, _HTTPS_RE, _FULL_NAME_RE):
        m = regex.match(repo_url)
        if m:
            return m.group('full')
    raise InvalidGitHubRemoteError(repo_url)


def open_repository(*, repo_url: str, token: str | None, api_url: str) -> Repository:
    """Open a repository through the GitHub REST API.

    Args:
        repo_url: Repository URL or `owner/repo`.
        token: Token used for authentication; anonymous access if None.
        api_url: Base URL of the API (for GitHub Enterprise).

    Raises:
        InvalidGitHubRemoteError: If `repo_url` cannot be mapped to a repository.
    """
    full_name = parse_github_full_name(repo_url)
    auth = Auth.Token(token) if token else None
    gh = Github(auth=auth, base_url=api_url.rstrip('/'))
    logger.debug('Opening %s via %s', full_name, api_url)
    return gh.get_repo(full_name)


def upsert_pull_request(repo: Repository, request: PullRequestRequest) -> PullRequest:
    """Create a pull request, or update the open one for the same head branch.

    Returns:
        The PR URL and number.
    """
    head = request.head if ':' in request.head else f'{repo.owner.login}:{request.head}'
    existing = next(iter(repo.get_pulls(state='open', head=head, base=request.base)), None)
    if existing is not None:
        logger.debug('Updating pull request #%s', existing.number)
        existing.edit(title=request.title, body=request.body)
        pr = existing
    else:
        pr = repo.create_pull(
            title=request.title,
            body=request.body,
            base=request.base,
            head=request.head,
        )
    if request.labels:
        pr.add_to_labels(*request.labels)
    return PullRequest(url=pr.html_url, number=pr.number)
