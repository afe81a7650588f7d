from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import typer

from autorelease.coerce import resolve_secret_options
from autorelease.context import Invocation, ParsedOptions
from autorelease.errors import CommandConfigurationError, OptionConflictError
from autorelease.options import OptionRegistry, OptionSpec

logger = logging.getLogger(__name__)

Handler = Callable[[ParsedOptions], Awaitable[None]]
F = TypeVar('F', bound=Callable[..., Any])


@dataclass(frozen=True)
class CommandSpec:
    """Declaration of a subcommand.

    Attributes:
        name: Command token (e.g. `latest-tag`).
        description: Help text.
        handler: Coroutine function invoked with the parsed options.
        extra_options: Options accepted by this command on top of the global ones.
    """

    name: str
    description: str
    handler: Handler
    extra_options: tuple[OptionSpec, ...] = ()


class CommandRouter:
    """Registers subcommands on a typer app and dispatches to their handlers."""

    def __init__(self, app: typer.Typer, global_options: OptionRegistry) -> None:
        self.app = app
        self.global_options = global_options
        self._commands: dict[str, CommandSpec] = {}

    @property
    def commands(self) -> dict[str, CommandSpec]:
        return dict(self._commands)

    def command(self, spec: CommandSpec) -> Callable[[F], F]:
        """Register `spec` and the typer command function that declares its options.

        The function's keyword parameters (besides `ctx`) must be exactly the global options plus
        the command's extra options.

        Raises:
            CommandConfigurationError: If the name is taken or the signature does not match.
            OptionConflictError: If an extra option shadows a global option.
        """

        def decorator(func: F) -> F:
            self._validate(spec, func)
            self._commands[spec.name] = spec
            self.app.command(spec.name, help=spec.description)(func)
            return func

        return decorator

    def _validate(self, spec: CommandSpec, func: Callable[..., Any]) -> None:
        if spec.name in self._commands:
            raise CommandConfigurationError(spec.name, reason='command name is already registered')
        for option in spec.extra_options:
            if option.name in self.global_options:
                raise OptionConflictError(option.name)

        options = [*self.global_options, *spec.extra_options]
        expected = {option.param_name for option in options}
        parameters = inspect.signature(func).parameters
        declared = set(parameters) - {'ctx'}
        if declared != expected:
            missing = sorted(expected - declared)
            unknown = sorted(declared - expected)
            raise CommandConfigurationError(
                spec.name,
                reason=f'missing parameters {missing}, undeclared parameters {unknown}',
            )
        for option in options:
            default = inspect.Parameter.empty if option.required else option.default
            actual = parameters[option.param_name].default
            if actual != default:
                raise CommandConfigurationError(
                    spec.name,
                    reason=f'parameter {option.param_name} defaults to {actual!r}, expected {default!r}',
                )

    def record_leading_options(self, ctx: typer.Context) -> dict[str, Any]:
        """Record the global options given before the command token on the invocation."""
        invocation = ctx.ensure_object(Invocation)
        invocation.leading_options = {
            option.param_name: ctx.params[option.param_name]
            for option in self.global_options
            if ctx.params.get(option.param_name) is not None
        }
        return invocation.leading_options

    def dispatch(self, ctx: typer.Context) -> None:
        """Run the handler for the command that `ctx` belongs to.

        Configured defaults for options the command does not declare still reach the handler, and
        global options given before the command token apply unless repeated after it.
        """
        invocation = ctx.ensure_object(Invocation)
        spec = self._commands[ctx.info_name or '']
        invocation.command = spec.name

        params = {**(ctx.default_map or {}), **ctx.params}
        for name, value in invocation.leading_options.items():
            if not _given_on_command_line(ctx, name):
                params[name] = value
        options = ParsedOptions.from_params(spec.name, params)
        invocation.options = options
        if options.debug:
            logging.basicConfig(level=logging.DEBUG)
        logger.debug('Dispatching %s', spec.name)

        invocation.options = resolve_secret_options(options)
        self._run(spec.handler, invocation)

    def _run(self, handler: Handler, invocation: Invocation) -> None:
        options = invocation.options
        if options is None:  # pragma: no cover
            raise CommandConfigurationError(invocation.command, reason='options were not parsed')

        def _on_loop_error(_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
            exc = context.get('exception')
            if exc is None:
                logger.debug('Event loop error: %s', context.get('message'))
                return
            invocation.stray_faults.append(exc)

        try:
            with asyncio.Runner() as runner:
                runner.get_loop().set_exception_handler(_on_loop_error)
                runner.run(handler(options))
        except Exception:
            for fault in invocation.stray_faults:
                logger.debug('Dropping event loop fault after handler failure: %r', fault)
            raise

        # The handler succeeded; surface the first background failure instead.
        if invocation.stray_faults:
            raise invocation.stray_faults[0]


def _given_on_command_line(ctx: typer.Context, name: str) -> bool:
    # typer may bundle its own click, so the source enum is matched by name.
    source = ctx.get_parameter_source(name)
    return source is not None and source.name == 'COMMANDLINE'
