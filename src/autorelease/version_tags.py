import re
from collections.abc import Iterable
from dataclasses import dataclass

from semver import VersionInfo

from autorelease.errors import InvalidReleaseVersionError


@dataclass(frozen=True)
class ReleaseTag:
    """A release tag found in the repository.

    Attributes:
        name: The tag name (e.g. `v2.3.4` or `my-pkg-v2.3.4`).
        sha: The commit the tag points at.
        version: The semver version encoded in the tag.
    """

    name: str
    sha: str
    version: str


_TAG_RE = re.compile(
    r'^(?:(?P<component>.+)-)?v?(?P<version>(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)\.(?:0|[1-9]\d*)'
    r'(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$',
)


def parse_version(version: str) -> VersionInfo:
    """Parse a semver version, tolerating a leading `v`.

    Raises:
        InvalidReleaseVersionError: If `version` is not valid semver.
    """
    try:
        return VersionInfo.parse(version.strip().removeprefix('v'))
    except ValueError as exc:
        raise InvalidReleaseVersionError(version) from exc


def tag_name(*, version: str, component: str | None = None) -> str:
    """Compute the tag for a release version.

    Args:
        version: The release version (`x.y.z`), optionally prefixed with `v`.
        component: Package name to prefix the tag with (monorepo tags).

    Returns:
        `vX.Y.Z`, or `<component>-vX.Y.Z` when `component` is set.
    """
    normalized = str(parse_version(version))
    if component:
        return f'{component}-v{normalized}'
    return f'v{normalized}'


def parse_tag(name: str, *, component: str | None = None) -> VersionInfo | None:
    """Return the version encoded in a tag, or None if the tag is not a release of `component`."""
    match = _TAG_RE.match(name.strip())
    if not match:
        return None
    if match.group('component') != component:
        return None
    return VersionInfo.parse(match.group('version'))


def select_latest(
    tags: Iterable[tuple[str, str]],
    *,
    component: str | None = None,
) -> ReleaseTag | None:
    """Select the highest release among `(name, sha)` tag pairs."""
    latest: tuple[VersionInfo, str, str] | None = None
    for name, sha in tags:
        version = parse_tag(name, component=component)
        if version is None:
            continue
        if latest is None or version > latest[0]:
            latest = (version, name, sha)
    if latest is None:
        return None
    version, name, sha = latest
    return ReleaseTag(name=name, sha=sha, version=str(version))
