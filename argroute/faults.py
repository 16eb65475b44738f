"""
Argroute faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every user-facing issue raised
  while routing tokens to a command and parsing its options.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Registration mistakes (bad option names, duplicated aliases, reused command
names) are not faults: they are programming errors and raise TypeError or
ValueError immediately.

Integration
- Programs and commands call trigger(fault, **ctx) through their own trigger()
  method, which injects tool/shell/fancy/colorful.
- In non-shell mode, exceptions are raised and warnings go through warnings.warn;
  in shell mode, both are rendered via rich on stderr and exceptions exit(1).
"""
import copy
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the router (stable identifiers).

    grouping
    - routing (1110x)
      • UNKNOWN_COMMAND, MISSING_COMMAND
    - options (111xx)
      • UNKNOWN_OPTION, FLAG_ASSIGNMENT, DUPLICATED_OPTION,
        OPTION_VALUE_REQUIRED, INVALID_NUMBER
    - warnings (121xx)
      • EMPTY_INLINE_VALUE

    normalize() allows the host to relabel codes while keeping them stable.
    """
    # --- routing errors ---
    UNKNOWN_COMMAND       = 11101
    MISSING_COMMAND       = 11103

    # --- option errors ---
    UNKNOWN_OPTION        = 11112
    FLAG_ASSIGNMENT       = 11113
    DUPLICATED_OPTION     = 11115
    OPTION_VALUE_REQUIRED = 11117
    INVALID_NUMBER        = 11126

    # --- warnings ---
    EMPTY_INLINE_VALUE    = 12111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, kind, /):
    """
    Build the rich renderable shared by exceptions and warnings.

    Layout
    - header: "[ prog — code | Title ]"
    - body: the message, then " → hint"
    - fancy: the body goes in a Panel titled with the header.
    """
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def styler(style):
        return styles[style] if fault.options["colorful"] else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not fault.options["colorful"]:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = text(getattr(main, "__prog__", fault.options["tool"].root.name), styler("prog-name"))

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(fault.options["code"].normalize(), styler("code")),
        " | ",
        text(fault.options["title"].title(), styler(f"{kind}-title")),
        " ]"
    )
    message = text(fault.message, styler(f"{kind}-message"))
    hint = Text.assemble(text(" → ", styler("hint-arrow")), text(fault.options["hint"], styler("hint")))

    if fault.options["fancy"]:
        return Panel(Group(message, hint), title=header, title_align="left")

    return Group(header, message, hint)


class Fault:
    """
    Shared body of routing errors and warnings.

    A fault keeps its message and a read-only mapping of options. The options
    hold the runtime context (tool, shell, fancy, colorful) merged in by
    trigger(), plus title, code, hint and whatever the raising site adds
    (input, index, suggestions, ...).
    """
    __kind__ = "error"
    __palette__ = {}

    def __init__(self, message, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, self.__palette__, self.__kind__)

    def __replace__(self, /, **overrides):
        return type(self)(self.message, **self.options | overrides)


class CommandException(Fault, Exception):
    __palette__ = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #00E5FF",
        "error-title": "bold #FF4DA6",
        "error-message": "#C8C8D0",
        "hint-arrow": "#9CE19C dim",
        "hint": "italic #9CE19C",
    }

    def __trigger__(self):
        if not self.options["shell"]:
            raise self from None
        console.print(self)
        sys.exit(1)


class UnknownCommandError(CommandException): ...
# A route that stops before naming any command.
class MissingCommandError(UnknownCommandError): ...
class UnknownOptionError(CommandException): ...
class FlagAssignmentError(CommandException): ...
class DuplicatedOptionError(CommandException): ...
class OptionValueRequiredError(CommandException): ...
class InvalidNumberError(CommandException): ...


class CommandWarning(Fault, Warning):
    __kind__ = "warning"
    __palette__ = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #FFB400",
        "warning-title": "bold #FFC2E0",
        "warning-message": "#D6D6DE",
        "hint-arrow": "#B8EFAF dim",
        "hint": "italic #B8EFAF",
    }

    def __trigger__(self):
        if not self.options["shell"]:
            # Attribute the warning to the outermost caller, not to argroute internals.
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)


class EmptyOptionValueWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    Surface a fault: merge options into a copy of it, then raise, warn or print.

    The merged options must hold tool, shell, fancy, colorful, title, code and hint.
    """
    if not all(callable(getattr(fault, name, None)) for name in ("__trigger__", "__replace__")):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    Documentation registered for a code in __main__.__docs__, or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "CommandException",
    "UnknownCommandError",
    "MissingCommandError",
    "UnknownOptionError",
    "FlagAssignmentError",
    "DuplicatedOptionError",
    "OptionValueRequiredError",
    "InvalidNumberError",
    "CommandWarning",
    "EmptyOptionValueWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
