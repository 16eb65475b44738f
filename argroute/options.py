r"""
Argroute option specifications and the option-token classifier.

Overview
- Specs
  • OptionSpec: the declared shape of one flag a command accepts
    (canonical name, aliases, value type, description).
  • ValueType: boolean (presence-only), string, number (value-bearing).

- Classifier
  • is_option(token): True when a raw token is an option flag.
  • has_options(tokens): True when at least one token is an option flag.

Token grammar
- An option flag starts with one or two hyphens followed by at least one
  character that is not a hyphen: r"--?[^-].*".
  • "--name", "-n", "--name=value" are option flags.
  • "--" is the end-of-options marker, never an option flag.
  • "-" alone and "---x" are positional.
- A flag's key is what follows the hyphens, up to the first "=":
  "--name=value" -> ("name", "value"), "-n" -> ("n", None).

Validation highlights
- Names and aliases are given without hyphens and must match r"[^\W_]+(-[^\W_]+)*".
- Aliases cannot repeat the name or each other.
- description is optional; when provided it must be a non-empty string.

Quick example:
    >>> from argroute.options import OptionSpec, has_options
    >>> spec = OptionSpec("output", aliases=("o",), type="string", description="output path")
    >>> spec.flags
    ('--output', '-o')
    >>> has_options(["build", "-o", "dist"])
    True
"""
import functools
import operator
import re
from collections.abc import Iterable, Mapping
from enum import StrEnum

from .utils import *

_OPTION = re.compile(r"--?[^-].*", re.DOTALL)
_SPLIT = re.compile(r"--?(?P<key>[^=]*)(=(?P<value>.*))?", re.DOTALL)
_NAME = re.compile(r"[^\W_]+(-[^\W_]+)*")


def is_option(token, /):
    """
    Tell whether a raw token is an option flag.

    - "--" (end-of-options) and "-" are not option flags.
    - "--name=value" is an option flag; the value is not inspected.
    """
    return isinstance(token, str) and _OPTION.fullmatch(token) is not None


def has_options(tokens, /):
    """
    Return True if at least one of the tokens is an option flag.
    """
    return any(map(is_option, tokens))


def split_option(token, /):
    """
    Split an option flag into (key, inline value).

    The inline value is None when no '=' is present and "" when '=' ends the
    token. Callers must check is_option(token) first.
    """
    match = _SPLIT.fullmatch(token)
    return match["key"], match["value"]


class ValueType(StrEnum):
    """
    value type of an option; decides whether the flag consumes a value.
    """
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"


class SpecType(type):
    """
    Metaclass that makes specs introspectable.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the private "_{name}" field (see mirror()).
    - Provide stable __repr__/__rich_repr__ implementations for diagnostics.
    - Derive __typename__ from the class name (camel-case split with hyphens)
      for consistent wording in messages.
    """
    __introspectable__ = ()

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
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate and normalize name and aliases.

    Raises
    - TypeError: when the name or an alias is not a string, or aliases is not iterable.
    - ValueError: when a name is empty, is not a valid shell-style identifier
      (hyphens are added by the parser, not given here), or repeats.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not _NAME.fullmatch(name):
        raise ValueError(f"{cls.__typename__} 'name' must be a valid option name without hyphens, got {name!r}")
    metadata["name"] = name

    if isinstance(aliases := metadata["aliases"], str) or not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")

    names = [name]
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"{cls.__typename__} aliases must be strings")
        elif not (alias := alias.strip()):
            raise ValueError(f"{cls.__typename__} aliases cannot be empty-strings")
        elif not _NAME.fullmatch(alias):
            raise ValueError(f"{cls.__typename__} aliases must be valid option names without hyphens, got {alias!r}")
        elif alias in names:
            raise ValueError(f"{cls.__typename__} {name!r} cannot repeat {alias!r} in its name or aliases")
        names.append(alias)

    metadata["aliases"] = tuple(names[1:])


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate and normalize the value type and description.

    - type: a ValueType or one of its string values ("boolean", "string", "number").
    - description: Unset (becomes None) or a non-empty string after trimming.
      An explicit None is rejected; omit the parameter instead.
    """
    if not isinstance(type := metadata["type"], str):
        raise TypeError(f"{cls.__typename__} 'type' must be a string")
    try:
        metadata["type"] = ValueType(type)
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'type' must be one of %s, got %r" % (
            ", ".join(map(repr, map(str, ValueType))), type
        )) from None

    if not isinstance(description := metadata["description"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'description' must be a string")
    elif isinstance(description, str) and not (description := description.strip()):
        raise ValueError(f"{cls.__typename__} 'description' cannot be empty")
    metadata["description"] = coalesce(description)


class OptionSpec(metaclass=SpecType):
    """
    Declared shape of one option a command accepts.

    Properties
    - name: canonical long flag, rendered as "--name".
    - aliases: alternate flags in declaration order, rendered as "-alias".
    - type: ValueType; boolean options are presence-only, the others take a value.
    - description: free text for help output, or None.

    Notes
    - Specs are immutable; every field is exposed read-only.
    - On the command line both "-" and "--" prefixes are accepted for the
      name and every alias; help output shows the canonical forms only.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "type",
        "description",
    )

    def __new__(cls, name, /, aliases=(), type=ValueType.BOOLEAN, description=Unset):
        metadata = {
            "name": name,
            "aliases": aliases,
            "type": type,
            "description": description,
        }
        _sanitize_names(cls, metadata)
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @classmethod
    def coerce(cls, object, /):
        """
        Build a spec from a registration-style mapping, or pass a spec through.

        Accepted mapping keys: name, aliases, type, description.
        """
        if isinstance(object, OptionSpec):
            return object
        if not isinstance(object, Mapping):
            raise TypeError(f"{cls.__typename__} must be built from a mapping, got {type(object).__name__!r}")
        if "name" not in object:
            raise TypeError(f"{cls.__typename__} mapping must specify a 'name'")
        return cls(object["name"], **{key: value for key, value in object.items() if key != "name"})

    @property
    def keys(self):
        """
        The name followed by the aliases: every key this option answers to.
        """
        return (self.name, *self.aliases)

    @property
    def flags(self):
        """
        Canonical flag spellings, as shown in help: ("--name", "-alias", ...).
        """
        return ("--" + self.name, *("-" + alias for alias in self.aliases))

    @property
    def takes_value(self):
        return self.type is not ValueType.BOOLEAN

    def matches(self, token, /):
        """
        Return True if the raw token is an option flag naming this spec.
        """
        return is_option(token) and split_option(token)[0] in self.keys

    def convert(self, value, /):
        """
        Convert a raw value to the option's type.

        Raises
        - ValueError: when a number option receives something that is neither
          an integer nor a float literal.
        """
        if self.type is ValueType.NUMBER:
            try:
                return int(value)
            except ValueError:
                return float(value)
        return value


__all__ = (
    "ValueType",
    "OptionSpec",
    "is_option",
    "has_options",
    "split_option",
)

# Not part of the public API.
del SpecType
