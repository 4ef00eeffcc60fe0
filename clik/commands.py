"""
Clik command layer: build command trees and dispatch tokens through them.

What this module provides
- Sync / Async: the two callback variants, a tagged union matched at invocation time.
  • Sync(function): function(state, tokens) runs to completion inside dispatch().
  • Async(function): function(state, tokens) returns an awaitable; only dispatch_async()
    drives it.
- Command: a named node holding help text, one callback and a mapping of subcommands.
  • dispatch()/dispatch_async(): walk the subcommand tree on the leading tokens and call
    the most specific node with the remaining (residual) tokens.
  • add_subcommand(): insert a child, returning the node it displaced (if any).
  • info(): render the node and its descendants as an indented, dot-padded tree.
- Factories and helpers:
  • command(...): build a Command from a plain function signature; positional parameters
    after the state become typed arguments bound from the residual tokens.
  • argument(name, descr): describe one of those parameters.

Quick start
    from clik import Dispatcher, command, argument

    @command("add", "add two numbers")
    @argument("a", "first operand")
    def add(state, a: int, b: int):
        state["total"] = a + b

    cli = Dispatcher({"total": 0})
    cli.add_command(add)
    cli.handle("add 2 3")        # state["total"] == 5

Design notes
- A Command exclusively owns its children; there is no parent back-reference, and
  add_subcommand() refuses insertions that would create a cycle.
- The synchronous path never awaits: reaching an Async callback through dispatch()
  raises AsyncCallbackError before the callback is called.
- Callback exceptions propagate verbatim; nothing here catches or logs them.
"""
import functools
import inspect
import operator
import re
from inspect import Parameter

from .arguments import Argument, bind
from .faults import FaultCode, AsyncCallbackError
from .utils import Unset, coalesce, mirror, rename


class _Callback:
    __slots__ = ("function",)
    __match_args__ = ("function",)

    def __init__(self, function, /):
        if not callable(function):
            raise TypeError(f"{type(self).__name__}() argument must be callable")
        self.function = function

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.function == other.function

    def __hash__(self):
        return hash((type(self), self.function))

    def __repr__(self):
        return f"{type(self).__name__.lower()}({getattr(self.function, '__qualname__', self.function)!s})"


class Sync(_Callback):
    """
    Synchronous callback: function(state, tokens) -> None.
    """
    __slots__ = ()


class Async(_Callback):
    """
    Asynchronous callback: function(state, tokens) -> Awaitable[None].
    """
    __slots__ = ()


def _is_coroutine_callable(object, /):
    """
    Tell whether calling object produces a coroutine, including instances whose
    __call__ is an async def.
    """
    return (
        inspect.iscoroutinefunction(object) or
        inspect.iscoroutinefunction(getattr(type(object), "__call__", None))
    )


def _async_callback_error(name, /):
    return AsyncCallbackError(
        "command %r has an async callback and cannot be run by the sync handler" % name,
        title="async callback",
        code=FaultCode.ASYNC_CALLBACK,
        hint="use handle_async() / dispatch_async() to run this command",
        command=name,
    )


def _resolve_callback(object, /):
    """
    Normalize a callback into its tagged variant.

    Sync/Async values pass through; coroutine functions become Async, any other
    callable becomes Sync.
    """
    if isinstance(object, Sync | Async):
        return object
    if _is_coroutine_callable(object):
        return Async(object)
    if callable(object):
        return Sync(object)
    raise TypeError("command 'callback' must be callable")


def _sanitized(tokens, /):
    """
    Copy tokens into a fresh list, rejecting non-string items.
    """
    tokens = list(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("dispatch() tokens must be strings")
    return tokens


class CommandType(type):
    """
    Metaclass that gives Command its introspectable, read-only surface.

    Responsibilities
    - Expose every name in __introspectable__ as a read-only property via mirror().
    - Provide stable, readable __repr__/__rich_repr__ for diagnostics and rich.pretty.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens).
    - __displayable__ (if set) narrows which properties __rich_repr__ shows;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation, e.g. command(name='add', help='...', ...).
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _process_strings(cls, metadata):
    """
    Normalize the name/help scalars in place.

    - name: required, trimmed, non-empty.
    - help: trimmed string, may be empty.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    if not isinstance(help := metadata["help"], str):
        raise TypeError(f"{cls.__typename__} 'help' must be a string")
    metadata["help"] = help.strip()


def _process_arguments(cls, metadata):
    """
    Freeze argument descriptors into a tuple and check their positions.
    """
    arguments = tuple(metadata["arguments"])
    for position, argument in enumerate(arguments):
        if not isinstance(argument, Argument):
            raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of arguments")
        if argument.position != position:
            raise ValueError(f"{cls.__typename__} 'arguments' positions must be a contiguous 0-based sequence")
    metadata["arguments"] = arguments


class Command(metaclass=CommandType):
    """
    Named node of the dispatch tree.

    Fields (read-only)
    - name: key under which the node is registered; unique among its siblings.
    - help: one-line description shown by info().
    - callback: Sync or Async variant.
    - arguments: Argument descriptors bound ahead of the callback (empty unless the
      command was built by command()).
    - subcommands: copy of the name -> Command mapping, in insertion order.

    Construction
    - Command(name, help, callback): callback may be a Sync/Async value or a bare
      callable (coroutine functions are tagged Async).
    """

    __introspectable__ = (
        "name",
        "help",
        "callback",
        "arguments",
        "subcommands",
    )

    __displayable__ = (
        "name",
        "help",
        "callback",
        "subcommands",
    )

    def __new__(cls, name, help, callback, /, *, arguments=(), function=Unset):
        metadata = {
            "name": name,
            "help": help,
            "callback": _resolve_callback(callback),
            "arguments": arguments,
            "subcommands": {},
        }
        _process_strings(cls, metadata)
        _process_arguments(cls, metadata)

        self = super().__new__(cls)
        # The user-facing function, when the callback is a generated binding wrapper.
        self._function = coalesce(function, metadata["callback"].function)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __call__(self, *args, **kwargs):
        """
        Call the underlying function directly, bypassing token binding.
        """
        return self._function(*args, **kwargs)

    def __contains__(self, name):
        return name in self._subcommands

    def __getitem__(self, name):
        return self._subcommands[name]

    def dispatch(self, state, tokens, /):
        """
        Route tokens through the subcommand tree and run the matching synchronous callback.

        Behavior
        - If tokens[0] names a subcommand, recurse into it with tokens[1:].
        - Otherwise call this node's callback with (state, tokens).

        Raises
        - AsyncCallbackError: the matching node holds an Async callback. The callback is
          not called, so nothing of it runs. A Sync callback that hands back an awaitable
          raises it too; a returned coroutine is closed without running.
        - Anything the callback raises, unchanged.
        """
        tokens = _sanitized(tokens)
        if tokens and (subcommand := self._subcommands.get(tokens[0])) is not None:
            return subcommand.dispatch(state, tokens[1:])

        match self._callback:
            case Sync(function):
                if inspect.isawaitable(result := function(state, tokens)):
                    if inspect.iscoroutine(result):
                        result.close()
                    raise _async_callback_error(self._name)
            case Async():
                raise _async_callback_error(self._name)

    async def dispatch_async(self, state, tokens, /):
        """
        Coroutine counterpart of dispatch().

        Sync callbacks run directly (an awaitable they return is awaited); Async callbacks
        are awaited. The caller's event loop
        decides when the returned coroutine is driven.
        """
        tokens = _sanitized(tokens)
        if tokens and (subcommand := self._subcommands.get(tokens[0])) is not None:
            return await subcommand.dispatch_async(state, tokens[1:])

        match self._callback:
            case Sync(function):
                if inspect.isawaitable(result := function(state, tokens)):
                    await result
            case Async(function):
                await function(state, tokens)

    def add_subcommand(self, command, /):
        """
        Register a child under its name.

        The insertion always happens. Returns the child previously registered under the
        same name, or None.

        Raises
        - TypeError: command is not a Command.
        - ValueError: command is this node or one of its ancestors' subtree would loop
          back into itself.
        """
        if not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} subcommand must be a command")

        pending = [command]
        while pending:
            if (node := pending.pop()) is self:
                raise ValueError(f"{type(self).__typename__} {self._name!r} cannot contain itself")
            pending.extend(node._subcommands.values())

        previous = self._subcommands.get(command.name)
        self._subcommands[command.name] = command
        return previous

    def command(self, *parameters):
        """
        Build a command with command(...) and register it as a subcommand of this node.

        Supports the same forms as command(...): direct (self.command(function)) and
        decorator (@self.command, @self.command("name"), @self.command("name", "help")).
        Returns the new Command.
        """
        match parameters:
            case (source,) if callable(source) and not isinstance(source, str):
                self.add_subcommand(child := command(source))
                return child

        decorator = command(*parameters)

        @rename("command")
        def wrapper(source, /):
            self.add_subcommand(child := decorator(source))
            return child

        return wrapper

    def info(self, depth=0, /):
        """
        Render this node and all descendants as an indented tree.

        Each line is "<indent>|-- <name> " dot-padded to 35 columns, a space, and the
        help text; the indent is "|  " repeated depth times.
        """
        if not isinstance(depth, int) or isinstance(depth, bool):
            raise TypeError("info() argument must be an integer")
        if depth < 0:
            raise ValueError("info() argument cannot be negative")

        head = "%s|-- %s " % ("|  " * depth, self._name)
        lines = [f"{head:.<35} {self._help}\n"]
        for subcommand in self._subcommands.values():
            lines.append(subcommand.info(depth + 1))
        return "".join(lines)


def _build(function, name, help, /):
    """
    Turn a plain function into a Command with an argument-binding preamble.

    Signature rules
    - first parameter: the state (required, positional).
    - following positional parameters: typed arguments, position = order of declaration,
      type = annotation (str when unannotated). Defaults are not allowed.
    - *args: receives the residual tokens after the last argument, as strings.
    - keyword-only parameters and **kwargs are rejected.
    """
    try:
        signature = inspect.signature(function, eval_str=True)
    except (TypeError, ValueError, NameError) as exception:
        raise TypeError(f"command function {function!r} must be inspectable") from exception

    parameters = list(signature.parameters.values())
    if not parameters or parameters[0].kind not in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
        raise TypeError("command function must accept the state as its first positional parameter")

    descriptions = dict(getattr(function, "__clik_arguments__", {}))
    arguments = []
    variadic = False

    for parameter in parameters[1:]:
        match parameter.kind:
            case Parameter.POSITIONAL_ONLY | Parameter.POSITIONAL_OR_KEYWORD:
                if parameter.default is not Parameter.empty:
                    raise TypeError(
                        f"command parameter {parameter.name!r} cannot have a default;"
                        " use *args to accept optional trailing tokens"
                    )
                arguments.append(Argument(
                    parameter.name,
                    str if parameter.annotation is Parameter.empty else parameter.annotation,
                    len(arguments),
                    descriptions.pop(parameter.name, Unset),
                ))
            case Parameter.VAR_POSITIONAL:
                variadic = True
            case _:
                raise TypeError(f"command parameter {parameter.name!r} must be positional")

    if descriptions:
        raise TypeError(f"describing non-existing argument {next(iter(descriptions))!r}")

    arguments = tuple(arguments)
    count = len(arguments)

    if _is_coroutine_callable(function):
        async def callback(state, tokens):
            values = bind(arguments, tokens)
            await function(state, *values.values(), *(tokens[count:] if variadic else ()))
        callback = Async(rename(callback, getattr(function, "__qualname__", "callback")))
    else:
        def callback(state, tokens):
            values = bind(arguments, tokens)
            return function(state, *values.values(), *(tokens[count:] if variadic else ()))
        callback = Sync(rename(callback, getattr(function, "__qualname__", "callback")))

    return Command(
        coalesce(name, getattr(function, "__name__", Unset)),
        coalesce(help, (inspect.getdoc(function) or "").partition("\n")[0]),
        callback,
        arguments=arguments,
        function=function,
    )


def command(*parameters):
    """
    Create a Command from a function signature, or return a decorator to do it later.

    Invocation modes
    - Direct:     cmd = command(function)
    - Decorator:  @command / @command() / @command("name") / @command("name", "help")

    Defaults
    - name: the function's __name__.
    - help: first line of the function's docstring ("" when it has none).

    Returns
    - Command | Callable[[Callable], Command]
    """
    match parameters:
        case (source,) if callable(source) and not isinstance(source, str | Command):
            return _build(source, Unset, Unset)
        case ():
            name, help = Unset, Unset
        case (str() as name,):
            help = Unset
        case (str() as name, str() as help):
            pass
        case _:
            raise TypeError("command() takes a function, or a name and an optional help string")

    @rename("command")
    def wrapper(source, /):
        if isinstance(source, Command) or not callable(source):
            raise TypeError("@command() must be applied to a function")
        return _build(source, name, help)

    return wrapper


def argument(name, descr, /):
    """
    Describe one positional parameter of a function later turned into a command.

    Must sit below @command(...) so it runs first. The description shows up in
    binding hints and on the Argument descriptor.

    Raises
    - TypeError: non-string name/descr, or (at @command time) a description for a
      parameter the function does not declare.
    - ValueError: the same parameter described twice.
    """
    if not isinstance(name, str) or not isinstance(descr, str):
        raise TypeError("argument() arguments must be strings")

    @rename("argument")
    def wrapper(function, /):
        if isinstance(function, Command):
            raise TypeError("@argument() must be applied below @command()")
        if not callable(function):
            raise TypeError("@argument() must be applied to a function")
        if (descriptions := getattr(function, "__clik_arguments__", None)) is None:
            function.__clik_arguments__ = descriptions = {}
        if name in descriptions:
            raise ValueError(f"@argument() {name!r} is already described")
        descriptions[name] = descr
        return function

    return wrapper


__all__ = (
    "Sync",
    "Async",
    "Command",
    "command",
    "argument",
)

# Not part of the public API.
del CommandType
