"""Conversion of failures into short, non-leaking diagnostics.

Errors raised by the GitHub client carry the request and response payloads, which may include
credentials. By default only `command <name> failed [with status <code>]` is printed; the
traceback is shown with `--debug` (use that locally, not in CI/CD).
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from types import TracebackType
from typing import Self

import typer

from autorelease.context import Invocation

logger = logging.getLogger(__name__)

DEBUG_SEPARATOR = '---------'


@dataclass(frozen=True)
class FaultRecord:
    """A failure captured from an exception.

    Attributes:
        message: The exception message.
        stack: The formatted traceback.
        status: HTTP status code, when the failure came from an API response.
        body: The opaque response payload, if any. Never printed.
    """

    message: str
    stack: str
    status: int | None = None
    body: object | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> FaultRecord:
        status = getattr(exc, 'status', None)
        if isinstance(status, bool) or not isinstance(status, int):
            status = None
        body = getattr(exc, 'data', None)
        if body is None:
            body = getattr(exc, 'body', None)
        return cls(
            message=str(exc),
            stack=''.join(traceback.format_exception(exc)),
            status=status,
            body=body,
        )


def format_fault(fault: FaultRecord, *, command: str) -> str:
    """Return the one-line summary shown for a failed command."""
    status = f' with status {fault.status}' if fault.status else ''
    return f'command {command} failed{status}'


def handle_error(fault: FaultRecord, invocation: Invocation) -> None:
    """Report a failure on stderr and mark the invocation as failed."""
    typer.secho(
        format_fault(fault, command=invocation.command),
        err=True,
        fg=typer.colors.RED,
    )
    if invocation.debug:
        typer.echo(DEBUG_SEPARATOR, err=True)
        typer.echo(fault.stack.rstrip('\n'), err=True)
    invocation.exit_code = 1


class FaultBoundary:
    """Scope that normalizes the first exception escaping an invocation.

    Exceptions are reported through `handle_error` at most once and then suppressed; the caller
    reads the outcome from `invocation.exit_code`. `KeyboardInterrupt` and `SystemExit` pass
    through untouched.
    """

    def __init__(self, invocation: Invocation) -> None:
        self.invocation = invocation
        self.fault: FaultRecord | None = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None or not isinstance(exc, Exception):
            return False
        self.report(exc)
        return True

    def report(self, exc: BaseException) -> None:
        if self.fault is not None:
            logger.debug('Ignoring additional fault after the first: %r', exc)
            return
        self.fault = FaultRecord.from_exception(exc)
        handle_error(self.fault, self.invocation)
