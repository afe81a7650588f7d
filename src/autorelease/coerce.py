from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from autorelease.context import ParsedOptions
from autorelease.errors import SecretResolutionError

logger = logging.getLogger(__name__)

SECRET_OPTIONS = ('token', 'api_url')


def coerce_option(value: str) -> str:
    """Resolve an option that may be given as a path to a file.

    Args:
        value: The raw option value.

    Returns:
        The trimmed file contents if `value` names a regular file, otherwise `value` unchanged.

    Raises:
        SecretResolutionError: If the file exists but cannot be read.
    """
    if not os.path.isfile(value):
        return value
    try:
        return Path(value).read_text(encoding='utf-8').strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise SecretResolutionError(value) from exc


def resolve_secret_options(options: ParsedOptions) -> ParsedOptions:
    """Resolve the secret-bearing options so credentials can be passed by file path."""
    changes: dict[str, str] = {}
    for name in SECRET_OPTIONS:
        value = getattr(options, name)
        if value:
            resolved = coerce_option(value)
            if resolved != value:
                logger.debug('Loaded --%s from file', name.replace('_', '-'))
            changes[name] = resolved
    return dataclasses.replace(options, **changes)
