from __future__ import annotations

import asyncio
import logging
import posixpath
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from github import GithubException

from autorelease.changelog import (
    ChangelogContext,
    extract_section,
    prepend_section,
    render_section,
    resolve_changelog_path,
)
from autorelease.conventional import ConventionalCommit, next_version, parse_commit
from autorelease.errors import MissingPackageNameError, ReleaseTagNotFoundError
from autorelease.github import PullRequest, PullRequestRequest, open_repository, upsert_pull_request
from autorelease.releasers import get_releaser
from autorelease.version_tags import ReleaseTag, parse_version, select_latest, tag_name

if TYPE_CHECKING:
    from github.PullRequest import PullRequest as GithubPullRequest
    from github.Repository import Repository

    from autorelease.context import ParsedOptions

logger = logging.getLogger(__name__)

TAGGED_LABEL = 'autorelease: tagged'
DEFAULT_RELEASE_TYPE = 'node'
_MERGED_PR_SCAN_LIMIT = 100
HTTP_NOT_FOUND = 404


@dataclass(frozen=True)
class CreatedRelease:
    """A GitHub release published from a merged release PR.

    Attributes:
        url: The release page URL.
        tag_name: The tag the release points at.
        version: The released version.
        pr_number: The release PR the release was created from.
    """

    url: str
    tag_name: str
    version: str
    pr_number: int


@dataclass(frozen=True)
class _ReleaseTarget:
    repo: Repository
    base_branch: str
    component: str | None


def _component(options: ParsedOptions) -> str | None:
    if not options.monorepo_tags:
        return None
    if not options.package_name:
        raise MissingPackageNameError
    return options.package_name


def _release_branch(version: str, component: str | None) -> str:
    if component:
        return f'release-{component}-v{version}'
    return f'release-v{version}'


def _release_title(version: str, options: ParsedOptions) -> str:
    if options.package_name:
        return f'chore: release {options.package_name} {version}'
    return f'chore: release {version}'


def _package_file(options: ParsedOptions, name: str) -> str:
    if options.path:
        return posixpath.join(options.path.strip('/'), name)
    return name


def bump_version_text(text: str, *, previous: str, version: str) -> str:
    """Replace `previous` with `version` on version-assignment lines of a manifest."""
    if text.strip() == previous:
        return text.replace(previous, version)
    pattern = re.compile(
        rf'(?P<prefix>version\W{{1,6}}){re.escape(previous)}(?P<suffix>\b)',
        re.IGNORECASE,
    )
    return pattern.sub(rf'\g<prefix>{version}\g<suffix>', text)


class ReleaseFactory:
    """GitHub-backed release operations.

    Each public coroutine runs the blocking PyGithub calls in a worker thread.
    """

    def _target(self, options: ParsedOptions) -> _ReleaseTarget:
        component = _component(options)
        repo = open_repository(
            repo_url=options.repo_url,
            token=options.token,
            api_url=options.api_url,
        )
        return _ReleaseTarget(
            repo=repo,
            base_branch=options.default_branch or repo.default_branch,
            component=component,
        )

    async def latest_tag(self, options: ParsedOptions) -> ReleaseTag:
        """Find the latest release tag.

        Raises:
            ReleaseTagNotFoundError: If no tag is a release of the package.
        """
        return await asyncio.to_thread(self._latest_tag, options)

    async def release_pr(self, options: ParsedOptions) -> PullRequest | None:
        """Create or update the PR representing the next release.

        Returns:
            The release PR, or None if no commits warrant a release.
        """
        return await asyncio.to_thread(self._release_pr, options)

    async def github_release(self, options: ParsedOptions) -> CreatedRelease | None:
        """Publish a GitHub release from the latest merged release PR.

        Returns:
            The created release, or None if there is no pending release PR.
        """
        return await asyncio.to_thread(self._github_release, options)

    def _latest_tag(self, options: ParsedOptions) -> ReleaseTag:
        target = self._target(options)
        found = self._find_latest_tag(target)
        if found is None:
            raise ReleaseTagNotFoundError(package_name=target.component)
        return found

    def _find_latest_tag(self, target: _ReleaseTarget) -> ReleaseTag | None:
        tags = ((tag.name, tag.commit.sha) for tag in target.repo.get_tags())
        return select_latest(tags, component=target.component)

    def _commits_since(
        self,
        target: _ReleaseTarget,
        options: ParsedOptions,
        latest: ReleaseTag | None,
    ) -> list[ConventionalCommit]:
        kwargs: dict[str, Any] = {'sha': target.base_branch}
        if options.path:
            kwargs['path'] = options.path
        commits: list[ConventionalCommit] = []
        for commit in target.repo.get_commits(**kwargs):
            if latest is not None and commit.sha == latest.sha:
                break
            parsed = parse_commit(commit.sha, commit.commit.message)
            if parsed is not None:
                commits.append(parsed)
        logger.debug('Found %d conventional commits since %s', len(commits), latest and latest.name)
        return commits

    def _release_pr(self, options: ParsedOptions) -> PullRequest | None:
        target = self._target(options)
        releaser = get_releaser(options.release_type or DEFAULT_RELEASE_TYPE)
        latest = self._find_latest_tag(target)
        previous = latest.version if latest is not None else options.last_package_version
        commits = self._commits_since(target, options, latest)

        version = next_version(
            previous=previous,
            commits=commits,
            release_as=options.release_as,
            bump_minor_pre_major=options.bump_minor_pre_major,
            snapshot=options.snapshot,
        )
        if version is None:
            logger.info('No user facing commits since %s; skipping release PR', previous)
            return None
        version_str = str(version)

        section = render_section(
            ChangelogContext(
                version=version_str,
                html_url=target.repo.html_url,
                previous_tag=latest.name if latest is not None else None,
                current_tag=tag_name(version=version_str, component=target.component),
                release_date=datetime.now(tz=UTC).date(),
            ),
            commits,
        )

        head_repo = target.repo.create_fork() if options.fork else target.repo
        branch = _release_branch(version_str, target.component)
        self._reset_branch(head_repo, branch=branch, sha=target.repo.get_branch(target.base_branch).commit.sha)

        message = _release_title(version_str, options)
        changelog_path = resolve_changelog_path(options.changelog_path, options.path)
        self._write_file(
            head_repo,
            path=changelog_path,
            branch=branch,
            message=message,
            update=lambda text: prepend_section(text, section),
        )
        if previous is not None:
            files = [*releaser.version_files]
            if options.version_file:
                files.append(options.version_file)
            for name in files:
                self._write_file(
                    head_repo,
                    path=_package_file(options, name),
                    branch=branch,
                    message=message,
                    update=lambda text, prev=previous: bump_version_text(
                        text or '',
                        previous=prev,
                        version=version_str,
                    ),
                    create=False,
                )

        head = f'{head_repo.owner.login}:{branch}' if options.fork else branch
        return upsert_pull_request(
            target.repo,
            PullRequestRequest(
                base=target.base_branch,
                head=head,
                title=message,
                body=f':robot: I have created a release\n---\n\n{section}',
                labels=[options.label],
            ),
        )

    def _reset_branch(self, repo: Repository, *, branch: str, sha: str) -> None:
        try:
            ref = repo.get_git_ref(f'heads/{branch}')
        except GithubException as exc:
            if exc.status != HTTP_NOT_FOUND:
                raise
            repo.create_git_ref(ref=f'refs/heads/{branch}', sha=sha)
            return
        ref.edit(sha=sha, force=True)

    def _write_file(  # noqa: PLR0913
        self,
        repo: Repository,
        *,
        path: str,
        branch: str,
        message: str,
        update: Callable[[str | None], str],
        create: bool = True,
    ) -> None:
        try:
            contents = repo.get_contents(path, ref=branch)
        except GithubException as exc:
            if exc.status != HTTP_NOT_FOUND:
                raise
            if not create:
                logger.debug('Skipping missing file %s', path)
                return
            repo.create_file(path, message, update(None), branch=branch)
            return
        if isinstance(contents, list):
            logger.debug('Skipping %s: path is a directory', path)
            return
        text = contents.decoded_content.decode('utf-8')
        updated = update(text)
        if updated == text:
            return
        repo.update_file(path, message, updated, contents.sha, branch=branch)

    def _find_release_pr(self, target: _ReleaseTarget, options: ParsedOptions) -> GithubPullRequest | None:
        prefix = _release_branch('', target.component)
        pulls = target.repo.get_pulls(
            state='closed',
            base=target.base_branch,
            sort='updated',
            direction='desc',
        )
        for index, pr in enumerate(pulls):
            if index >= _MERGED_PR_SCAN_LIMIT:
                break
            if pr.merged_at is None or not pr.head.ref.startswith(prefix):
                continue
            if options.label in {label.name for label in pr.labels}:
                return pr
        return None

    def _read_notes(self, repo: Repository, *, path: str, ref: str, version: str) -> str | None:
        try:
            contents = repo.get_contents(path, ref=ref)
        except GithubException as exc:
            if exc.status != HTTP_NOT_FOUND:
                raise
            logger.debug('No changelog at %s', path)
            return None
        if isinstance(contents, list):
            logger.debug('Skipping %s: path is a directory', path)
            return None
        notes = extract_section(contents.decoded_content.decode('utf-8'), version)
        if notes is None:
            logger.debug('No changelog entry for %s in %s', version, path)
        return notes

    def _github_release(self, options: ParsedOptions) -> CreatedRelease | None:
        target = self._target(options)
        pr = self._find_release_pr(target, options)
        if pr is None:
            logger.info('No merged release PR labelled %r found', options.label)
            return None

        prefix = _release_branch('', target.component)
        version = str(parse_version(pr.head.ref.removeprefix(prefix)))
        tag = tag_name(version=version, component=target.component)

        changelog_path = resolve_changelog_path(options.changelog_path, options.path)
        notes = self._read_notes(target.repo, path=changelog_path, ref=pr.merge_commit_sha, version=version)

        release = target.repo.create_git_release(
            tag=tag,
            name=f'{target.component} {tag}' if target.component else tag,
            message=notes or '',
            draft=options.draft,
            prerelease=parse_version(version).prerelease is not None,
            target_commitish=pr.merge_commit_sha,
        )
        pr.remove_from_labels(options.label)
        pr.add_to_labels(TAGGED_LABEL)
        return CreatedRelease(
            url=release.html_url,
            tag_name=tag,
            version=version,
            pr_number=pr.number,
        )


factory = ReleaseFactory()
