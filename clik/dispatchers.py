"""
Clik dispatcher: the root of a command tree and the owner of its state.

What this module provides
- Dispatcher(state): holds one application-defined state object and the top-level
  name -> Command mapping.
  • handle(line) / handle_async(line): tokenize a raw line and route it.
  • add_command(): register a top-level command, returning the one it displaced.
  • str(dispatcher): "Available commands" header followed by every command's tree.
  • report(fault): render a fault with this dispatcher's display options.

Routing rules
- An empty line is a no-op.
- An unrecognized first token is a no-op, not an error.
- Otherwise the matching command dispatches the remaining tokens and any fault or
  callback error propagates unchanged to the caller.

State ownership
- The dispatcher passes its state object into every callback; callbacks mutate it in
  place. A dispatch holds the state exclusively: starting another handle() or
  handle_async() on the same dispatcher while one is in flight raises RuntimeError.
  There is no locking; hosts that want concurrency serialize calls themselves
  (or keep one dispatcher per worker).
"""
from contextlib import contextmanager

from .commands import Command, command
from .faults import report
from .tokens import tokenize
from .utils import mirror, rename


class Dispatcher:
    """
    Root owner of the shared state and the top-level command mapping.

    Parameters
    - state: any object handed to every callback as its first argument.
    - prog: program name used in fault headers (keyword-only, default "clik").
    - colorful/fancy: fault rendering options used by report().
    """

    commands = mirror("commands")

    def __init__(self, state, /, *, prog="clik", colorful=True, fancy=False):
        if not isinstance(prog, str):
            raise TypeError("dispatcher 'prog' must be a string")
        elif not (prog := prog.strip()):
            raise ValueError("dispatcher 'prog' cannot be empty")

        self._state = state
        self._commands = {}
        self._prog = prog
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._busy = False

    @property
    def state(self):
        """
        The live state object (not a copy).
        """
        return self._state

    def __contains__(self, name):
        return name in self._commands

    def __getitem__(self, name):
        return self._commands[name]

    def __repr__(self):
        return f"dispatcher(state={self._state!r}, commands={list(self._commands)!r})"

    def __str__(self):
        return "Available commands: \n\n" + "".join(command.info(0) for command in self._commands.values())

    @contextmanager
    def _exclusive(self):
        if self._busy:
            raise RuntimeError("dispatcher is already handling a line")
        self._busy = True
        try:
            yield self._state
        finally:
            self._busy = False

    def handle(self, line, /):
        """
        Tokenize a line and run the matching command synchronously.

        Raises whatever the resolved command raises (binding faults,
        AsyncCallbackError, callback errors). Unknown commands are ignored.
        """
        tokens = tokenize(line)
        with self._exclusive() as state:
            if not tokens or (command := self._commands.get(tokens[0])) is None:
                return
            command.dispatch(state, tokens[1:])

    async def handle_async(self, line, /):
        """
        Coroutine counterpart of handle(); Async callbacks are awaited.
        """
        tokens = tokenize(line)
        with self._exclusive() as state:
            if not tokens or (command := self._commands.get(tokens[0])) is None:
                return
            await command.dispatch_async(state, tokens[1:])

    def add_command(self, command, /):
        """
        Register a top-level command under its name.

        The insertion always happens; returns the command previously registered under
        the same name, or None.
        """
        if not isinstance(command, Command):
            raise TypeError("dispatcher command must be a command")
        previous = self._commands.get(command.name)
        self._commands[command.name] = command
        return previous

    def command(self, *parameters):
        """
        Build a command with clik.command(...) and register it at the top level.

        Supports direct (dispatcher.command(function)) and decorator forms
        (@dispatcher.command, @dispatcher.command("name", "help")). Returns the new Command.
        """
        match parameters:
            case (source,) if callable(source) and not isinstance(source, str):
                self.add_command(new := command(source))
                return new

        decorator = command(*parameters)

        @rename("command")
        def wrapper(source, /):
            self.add_command(new := decorator(source))
            return new

        return wrapper

    def report(self, fault, /, **options):
        """
        Render a fault to stderr using this dispatcher's prog/colorful/fancy options.

        Explicit options override the dispatcher's.
        """
        report(fault, **{"prog": self._prog, "colorful": self._colorful, "fancy": self._fancy} | options)


__all__ = (
    "Dispatcher",
)
