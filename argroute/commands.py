"""
Argroute command layer: register commands on a program tree, route tokens, run actions.

What this module provides
- Program: a node of the command tree. It owns the commands registered on it and
  the sub-programs created from it, and keeps a back-reference to its parent.
- Command: a leaf invocable unit with a name, a path, option specs and an action.
  It parses its own options and calls the action with the result.

- Factories and helpers:
  • program(name): create a root Program.
  • find_deepest_parent(node): walk parent references up to the root.
  • iter_commands(program): every command of a subtree in registration order.
  • invoke(object, prompt): convenience runner for programs and commands.

Core ideas
- Paths mirror the tree: a command registered on sub-program "db" of the root
  program "cli" has path ("db", "migrate"); the root's own name is not part of it.
- Leaf names may repeat across programs; the resolver picks one (see resolver).
- The tree is append-only: programs are parented once, at creation.
- Registration mistakes fail fast (TypeError/ValueError); runtime faults go
  through trigger() and honour shell/fancy/colorful.

Quick start
    from argroute import program

    cli = program("cli")
    db = cli.program("db")

    @db.command("migrate", options=[{"name": "dry-run", "aliases": ["n"], "type": "boolean"}])
    def migrate(arguments, options):
        print(arguments, options["dry-run"])

    if __name__ == "__main__":
        cli.run()  # e.g. "cli db migrate -n head" or "cli migrate --dry-run head"

Action contract
- Actions are called as action(arguments, options): a tuple of positional
  tokens and a read-only mapping of every declared option by canonical name
  (booleans default to False, value options to None). The action's return
  value is returned by run().
"""
import copy
import difflib
import functools
import itertools
import operator
import re
import shlex
import sys
from collections import deque
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from rich.console import Console

from .faults import *
from .formatting import help_message_for_command, help_message_for_program, render
from .options import OptionSpec, ValueType, is_option, split_option
from .resolver import match_commands, consumed, find_exact_command
from .utils import *

_NAME = re.compile(r"[^\s-]\S*")
# Negative numbers look like options; a number option still accepts them as a spaced value.
_NEGATIVE = re.compile(r"-(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")
_HELP = frozenset({"-h", "--help"})


class CommandType(type):
    """
    Metaclass that makes programs and commands introspectable.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the private "_{name}" field (see mirror()).
    - Provide stable __repr__/__rich_repr__ for diagnostics, restricted to
      __displayable__ so parent/child references never recurse.
    - Derive __typename__ from the class name for consistent messages.
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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_name(cls, name, /):
    """
    Internal: validate a program or command name.

    Names are single shell words that cannot be mistaken for an option flag:
    no whitespace and no leading hyphen.
    """
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not _NAME.fullmatch(name):
        raise ValueError(f"{cls.__typename__} 'name' cannot start with '-' or contain whitespace, got {name!r}")
    return name


def _sanitize_options(cls, name, options, /):
    """
    Internal: coerce option specs and reject keys shared between them.

    Every name and alias of a command must be unique across all of its options,
    otherwise matching a flag to an option would be ambiguous.
    """
    if isinstance(options, str | Mapping) or not isinstance(options, Iterable):
        raise TypeError(f"{cls.__typename__} 'options' must be an iterable of option specs or mappings")

    specs = list(map(OptionSpec.coerce, options))
    owners = {}
    for spec in specs:
        for key in spec.keys:
            if key in owners:
                raise ValueError(f"{cls.__typename__} {name!r} option key {key!r} is already in use by '--{owners[key].name}'")
            owners[key] = spec
    return specs


def _sanitize_path(cls, name, path, parent, /):
    """
    Internal: derive or validate a command path.

    - Unset: derived from the parent's route followed by the name.
    - Given: a non-empty sequence of strings ending with the name; with a parent
      it must also agree with the parent's route.
    """
    if path is Unset:
        return (*getattr(parent, "route", ()), name)
    if isinstance(path, str) or not isinstance(path, Iterable):
        raise TypeError(f"{cls.__typename__} 'path' must be an iterable of strings")
    path = tuple(path)
    if not all(isinstance(step, str) for step in path):
        raise TypeError(f"{cls.__typename__} 'path' must be an iterable of strings")
    if not path or path[-1] != name:
        raise ValueError(f"{cls.__typename__} 'path' must end with the command name {name!r}, got {path!r}")
    if parent and path != (*parent.route, name):
        raise ValueError(f"{cls.__typename__} 'path' {path!r} does not match its program route {parent.route!r}")
    return path


def _attach_to_parent(self, registry, /):
    """
    Register a program or command on its parent, enforcing unique names.

    Parameters
    - registry: "_programs" or "_commands", the parent's list to append to.
    """
    if not self.parent:
        return
    siblings = getattr(self.parent, registry)
    if any(sibling.name == self.name for sibling in siblings):
        raise ValueError(f"{type(self).__typename__} name {self.name!r} is already in use on program {self.parent.name!r}")
    siblings.append(self)


def _tokenize(prompt, /):
    """
    Normalize a prompt into a list of tokens.

    - Unset: sys.argv[1:].
    - str: split shell-style with shlex.split.
    - Iterable[str]: items are trimmed; empty items are dropped.
    """
    if prompt is Unset:
        return sys.argv[1:]
    elif isinstance(prompt, str):
        return shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = []
        for item in prompt:
            if not isinstance(item, str):
                raise TypeError("run() argument must be a string or an iterable of strings")
            if item := item.strip():
                tokens.append(item)
        return tokens
    raise TypeError("run() argument must be a string or an iterable of strings")


def _echo(tool, message, /, *, stderr=False):
    # Plain help keeps its exact whitespace; the Panel adds its own line ending.
    console = Console(stderr=stderr, highlight=False)
    renderable = render(message, title=tool.root.name, fancy=tool.fancy, colorful=tool.colorful)
    console.print(renderable, end="\n" if tool.fancy else "", soft_wrap=not tool.fancy)


def _surface(tool, fault, message, /, **options):
    """
    Shared trigger() body of programs and commands.

    Injects the runtime context into the fault. In shell mode an error is
    preceded by the tool's help on stderr so the user sees the valid forms.
    """
    fault = copy.replace(fault, **options, tool=tool, shell=tool.shell, fancy=tool.fancy, colorful=tool.colorful)
    if tool.shell and isinstance(fault, CommandException):
        _echo(tool, message, stderr=True)
    trigger(fault)


def find_deepest_parent(node, /):
    """
    Return the root of the tree a program or command belongs to.

    A node without a parent is its own root. Programs are parented once at
    creation, so the walk always ends.
    """
    while node.parent:
        node = node.parent
    return node


def iter_commands(program, /):
    """
    Yield every command of the subtree rooted at program.

    Order: the program's own commands in registration order, then each child
    program's subtree, depth first.
    """
    yield from program.commands
    for child in program.programs:
        yield from iter_commands(child)


def _descend(program, tokens, /):
    """
    Internal: the sub-program named by the whole leading route of tokens, or None.
    """
    route = itertools.takewhile(lambda token: not is_option(token) and token != "--", tokens)
    for name in route:
        for child in program.programs:
            if child.name == name:
                program = child
                break
        else:
            return None
    return program


class Program(metaclass=CommandType):
    """
    Node of the command tree (the top-level CLI or one of its sub-programs).

    Responsibilities
    - Registration: command() registers a Command here, program() creates a
      child Program (fluent: both return what they created).
    - Routing: run() resolves tokens to one command of the subtree and runs it.
    - Rendering: prints the program help when no command is given.

    Runtime flags
    - shell: render faults on stderr and exit(1) instead of raising.
    - fancy: render help and faults inside rich panels.
    - colorful: style help and faults (palette overridable via __styles__ in __main__).
    Children inherit each flag from their parent unless it is given explicitly.
    """

    __introspectable__ = (
        "name",
        "parent",
        "commands",
        "programs",
        "shell",
        "fancy",
        "colorful",
    )

    __displayable__ = (
        "name",
        "route",
        "commands",
        "programs",
    )

    def __new__(cls, name, /, parent=Unset, *, shell=Unset, fancy=Unset, colorful=Unset):
        if not isinstance(parent, Program | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a program")

        self = super().__new__(cls)
        self._name = _sanitize_name(cls, name)
        self._parent = coalesce(parent)
        self._commands = []
        self._programs = []
        self._shell = bool(coalesce(shell, getattr(parent, "shell", False)))
        self._fancy = bool(coalesce(fancy, getattr(parent, "fancy", False)))
        self._colorful = bool(coalesce(colorful, getattr(parent, "colorful", False)))
        _attach_to_parent(self, "_programs")
        return self

    @property
    def root(self):
        """
        The topmost program of this tree (see find_deepest_parent).
        """
        return find_deepest_parent(self)

    @property
    def route(self):
        """
        Names of the programs from below the root down to this one; () for the root.
        """
        route, program = [], self
        while program.parent:
            route.append(program.name)
            program = program.parent
        return tuple(reversed(route))

    def program(self, name, /, **flags):
        """
        Create, attach and return a child program.

        Raises
        - ValueError: a child program with that name already exists here.
        """
        return Program(name, self, **flags)

    def command(self, name, action=Unset, /, options=(), **flags):
        """
        Register a command on this program.

        Invocation modes
        - Direct: cli.command("build", build, options=[...]) -> Command
        - Decorator:
            @cli.command("build", options=[...])
            def build(arguments, options): ...
          The decorated name is bound to the resulting Command.

        Raises
        - TypeError / ValueError on bad names, options or a reused command name.
        """
        if action is not Unset:
            return Command(name, action, options, parent=self, **flags)

        @rename("command")
        def wrapper(action, /):
            return Command(name, action, options, parent=self, **flags)

        return wrapper

    def trigger(self, fault, /, **options):
        _surface(self, fault, help_message_for_program(self), **options)

    def run(self, prompt=Unset, /):
        """
        Resolve the prompt to one command of this subtree and run it.

        Behavior
        - no tokens: print the program help and return None.
        - an option or "--" first (no route): print the program help when
          -h/--help comes before "--", otherwise MissingCommandError (a kind
          of UnknownCommandError).
        - candidates come from match_commands() and are narrowed by
          find_exact_command(). A route naming only sub-programs prints the
          deepest one's help; anything else unmatched is an
          UnknownCommandError with suggestions.
        - the remaining tokens are handed to the command (see Command.run).
        """
        tokens = _tokenize(prompt)
        route = " ".join((self.root.name, *self.route))
        head = list(itertools.takewhile(lambda token: token != "--", tokens))

        if not tokens:
            return _echo(self, help_message_for_program(self))

        if is_option(tokens[0]) or tokens[0] == "--":
            if _HELP & set(head):
                return _echo(self, help_message_for_program(self))
            return self.trigger(MissingCommandError(
                "expected a command at first position, got %r" % tokens[0],
                title="missing command",
                code=FaultCode.MISSING_COMMAND,
                input=tokens[0],
                index=1,
                hint="put the command first, or run '%s --help' to see available commands" % route,
                docs=getdoc(FaultCode.MISSING_COMMAND),
            ))

        commands = list(iter_commands(self))
        command = find_exact_command(match_commands(commands, tokens), head)

        if command is None and (program := _descend(self, tokens)) is not None:
            return _echo(program, help_message_for_program(program))

        if command is None:
            choices = sorted({command.name for command in commands} | {" ".join(command.path) for command in commands})
            suggestions = difflib.get_close_matches(tokens[0], choices, 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available commands" % (suggestions[0], route)
            except IndexError:
                hint = "run '%s --help' to see available commands" % route
            return self.trigger(UnknownCommandError(
                "unknown command %r at first position" % tokens[0],
                title="unknown command",
                code=FaultCode.UNKNOWN_COMMAND,
                input=tokens[0],
                index=1,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_COMMAND),
            ))

        index = consumed(command, tokens)
        return command._execute(tokens[index:], index=index + 1)

    def __invoke__(self, prompt=Unset, /):
        return self.run(prompt)


class Command(metaclass=CommandType):
    """
    Leaf invocable unit: name, path, option specs and an opaque action.

    Lifecycle
    - Created by Program.command() (or directly, for free-standing commands
      that only need a path); immutable afterwards.
    - Options may be OptionSpec instances or mappings with the keys
      name, aliases, type and description.
    - Runtime flags are inherited from the program it is registered on.
    """

    __introspectable__ = (
        "name",
        "path",
        "action",
        "options",
        "parent",
        "shell",
        "fancy",
        "colorful",
    )

    __displayable__ = (
        "name",
        "path",
        "options",
    )

    def __new__(
            cls,
            name,
            action,
            /,
            options=(),
            *,
            path=Unset,
            parent=Unset,
            shell=Unset,
            fancy=Unset,
            colorful=Unset
    ):
        if not isinstance(parent, Program | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a program")
        if not callable(action):
            raise TypeError(f"{cls.__typename__} 'action' must be callable")

        name = _sanitize_name(cls, name)
        metadata = {
            "name": name,
            "path": _sanitize_path(cls, name, path, parent),
            "action": action,
            "options": _sanitize_options(cls, name, options),
            "parent": coalesce(parent),
            "shell": bool(coalesce(shell, getattr(parent, "shell", False))),
            "fancy": bool(coalesce(fancy, getattr(parent, "fancy", False))),
            "colorful": bool(coalesce(colorful, getattr(parent, "colorful", False))),
        }

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        _attach_to_parent(self, "_commands")
        return self

    @property
    def root(self):
        return find_deepest_parent(self)

    def lookup(self, key, /):
        """
        Return the option answering to key (a name or alias, without hyphens), or None.
        """
        for option in self._options:
            if key in option.keys:
                return option
        return None

    def trigger(self, fault, /, **options):
        _surface(self, fault, help_message_for_command(self), **options)

    def parse(self, tokens, /, *, index=1):
        """
        Parse option tokens into (arguments, options).

        Parameters
        - tokens: the tokens following the command route.
        - index: 1-based position of the first token in the whole prompt, used
          for position-first fault messages.

        Returns
        - arguments: tuple of positional tokens (everything after "--" included).
        - options: read-only mapping of every declared option by canonical name,
          in declaration order. Absent booleans are False, absent values None.

        Faults
        - UnknownOptionError, DuplicatedOptionError, FlagAssignmentError,
          OptionValueRequiredError, InvalidNumberError; EmptyOptionValueWarning
          for "--name=" on a string option.
        """
        tokens = deque(tokens)
        arguments = []
        namespace = {}
        usage = " ".join((self.root.name, *self.path)) if self.parent else " ".join(self.path)

        while tokens:
            token = tokens.popleft()

            if token == "--":
                arguments.extend(tokens)
                break

            if not is_option(token):
                arguments.append(token)
                index += 1
                continue

            key, value = split_option(token)
            input = token.partition("=")[0]

            if (option := self.lookup(key)) is None:
                suggestions = difflib.get_close_matches(input, [flag for option in self._options for flag in option.flags], 5)
                try:
                    hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], usage)
                except IndexError:
                    hint = "try '%s --help' to see all available options" % usage
                return self.trigger(UnknownOptionError(
                    "unknown option %r at %s position" % (input, ordinal(index)),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    input=input,
                    index=index,
                    suggestions=suggestions,
                    hint=hint,
                    docs=getdoc(FaultCode.UNKNOWN_OPTION),
                ))

            if option.name in namespace:
                return self.trigger(DuplicatedOptionError(
                    "option %r at %s position was already provided" % (input, ordinal(index)),
                    title="duplicated option",
                    code=FaultCode.DUPLICATED_OPTION,
                    input=input,
                    index=index,
                    argument=option,
                    hint="keep a single %r; each option can be specified only once" % option.flags[0],
                    docs=getdoc(FaultCode.DUPLICATED_OPTION),
                ))

            if not option.takes_value:
                if value is not None:
                    return self.trigger(FlagAssignmentError(
                        "option %r at %s position cannot have an inline value" % (input, ordinal(index)),
                        title="option cannot take a value",
                        code=FaultCode.FLAG_ASSIGNMENT,
                        input=input,
                        index=index,
                        argument=option,
                        hint="remove everything from '=' (for example: %s)" % input,
                        docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                    ))
                namespace[option.name] = True
                index += 1
                continue

            start = index
            if value is None:
                if not tokens or tokens[0] == "--" or (is_option(tokens[0]) and not (
                        option.type is ValueType.NUMBER and _NEGATIVE.fullmatch(tokens[0])
                )):
                    return self.trigger(OptionValueRequiredError(
                        "option %r at %s position requires a value" % (input, ordinal(start)),
                        title="option value required",
                        code=FaultCode.OPTION_VALUE_REQUIRED,
                        input=input,
                        index=start,
                        argument=option,
                        hint="pass a value after a space or inline (for example: %s=<value>)" % input,
                        docs=getdoc(FaultCode.OPTION_VALUE_REQUIRED),
                    ))
                value = tokens.popleft()
                index += 1
            elif not value and option.type is ValueType.STRING:
                self.trigger(EmptyOptionValueWarning(
                    "empty inline value for option %r at %s position" % (input, ordinal(start)),
                    title="empty inline value",
                    code=FaultCode.EMPTY_INLINE_VALUE,
                    input=input,
                    index=start,
                    argument=option,
                    hint="add a value after '=' (for example: %s=<value>)" % input,
                    docs=getdoc(FaultCode.EMPTY_INLINE_VALUE),
                ))

            try:
                namespace[option.name] = option.convert(value)
            except ValueError:
                return self.trigger(InvalidNumberError(
                    "option %r at %s position expects a number, got %r" % (input, ordinal(start), value),
                    title="invalid number",
                    code=FaultCode.INVALID_NUMBER,
                    input=input,
                    index=start,
                    argument=option,
                    value=value,
                    hint="use an integer or a decimal number (for example: %s=42)" % input,
                    docs=getdoc(FaultCode.INVALID_NUMBER),
                ))
            index += 1

        return tuple(arguments), MappingProxyType({
            option.name: namespace.get(option.name, None if option.takes_value else False)
            for option in self._options
        })

    def _execute(self, tokens, /, *, index=1):
        head = set(itertools.takewhile(lambda token: token != "--", tokens))
        if head & _HELP and not (self.lookup("help") or self.lookup("h")):
            return _echo(self, help_message_for_command(self))
        arguments, options = self.parse(tokens, index=index)
        return self._action(arguments, options)

    def run(self, prompt=Unset, /):
        """
        Parse the prompt as this command's options and call its action.

        -h/--help (before "--") prints the command help instead, unless the
        command declares its own help/h option.
        """
        return self._execute(_tokenize(prompt))

    def __invoke__(self, prompt=Unset, /):
        return self.run(prompt)


def program(name, /, **flags):
    """
    Create a root program.

    Parameters
    - name: program name shown in help and fault headers.
    - flags: shell, fancy, colorful (inherited by every sub-program and command).
    """
    return Program(name, **flags)


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for programs and commands.

    - prompt: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.
    - returns whatever the resolved action returns (None after printing help).

    Raises
    - TypeError: when object does not implement __invoke__.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Program",
    "Command",
    "program",
    "find_deepest_parent",
    "iter_commands",
    "invoke",
)

# Not part of the public API.
del CommandType
