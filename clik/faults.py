"""
Clik faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
  Codes are grouped by domain so logs and searches stay predictable.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- MissingArgumentError / WrongArgumentError: binding faults raised while turning
  residual tokens into typed parameters.
- AsyncCallbackError: an asynchronous callback was reached through the synchronous
  dispatch path.
- report(): render any fault to stderr via rich.

Propagation
- Faults are plain exceptions. The dispatcher never catches, logs or swallows them;
  the host decides whether to print them (report) or let them bubble up.

UX goals
- Position-first messages: every binding message names the ordinal position of the
  offending token (“at second position”), counted from the first residual token.
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across clik (stable identifiers).

    grouping (by high-level domain)
    - dispatch (111xx)
      • ASYNC_CALLBACK
    - binding (112xx)
      • MISSING_ARGUMENT, WRONG_ARGUMENT

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- dispatch errors (111xx) ---
    ASYNC_CALLBACK              = 11101

    # --- binding errors (112xx) ---
    MISSING_ARGUMENT            = 11201
    WRONG_ARGUMENT              = 11202

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _field(name, /):
    """
    read-only property exposing one entry of a fault's options.
    """
    def getter(self):
        return self.options[name]
    getter.__name__ = getter.__qualname__ = name
    return property(getter)


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message or ""

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog") or "clik"), styler("prog-name"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if isinstance(code, FaultCode) else code, styler("code")),
            " | ",
            text(str(self.options.get("title", "error")).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint"), styler("hint")))

        if self.options.get("fancy", False):
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class MissingArgumentError(CommandException):
    """
    a residual token was required at 'position' but the token slice was shorter.
    """
    name = _field("name")
    position = _field("position")
    type = _field("type")


class WrongArgumentError(CommandException):
    """
    a token existed at 'position' but could not be parsed into the declared type.

    the underlying parse failure is kept in 'inner' (and as __cause__).
    """
    name = _field("name")
    position = _field("position")
    type = _field("type")
    inner = _field("inner")


class AsyncCallbackError(CommandException):
    """
    the synchronous dispatch path reached a command whose callback is asynchronous.
    """
    command = _field("command")


def report(fault, /, **options):
    """
    render a fault to stderr with the given display options.

    contract
    - fault must be a CommandException (anything providing __rich__ and __replace__).
    - options are merged into the fault via __replace__(**options) before printing;
      the original fault is left untouched.

    typical options
    - prog: program name for the header (overridden by __main__.__prog__).
    - colorful: bool, default True.
    - fancy: bool, render inside a rounded panel.
    """
    if (
        not hasattr(fault, "__rich__") or
        not callable(fault.__rich__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("report() argument must have a __rich__ and __replace__ methods")
    console.print(fault.__replace__(**options))


__all__ = (
    "FaultCode",
    "CommandException",
    "MissingArgumentError",
    "WrongArgumentError",
    "AsyncCallbackError",
    "report",
)
