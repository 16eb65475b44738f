"""
Argroute utilities shared by the option, command and fault modules.

- Unset: "not provided" marker, distinct from None. Falsey, prints as "Unset",
  and usable on the right of a PEP 604 union (str | Unset).
- coalesce(value, default=None): Unset becomes default, anything else is kept.
- @rename("name"): stable __name__/__qualname__ for generated methods.
- mirror("attr"): read-only property over the private "_attr" field.
- ordinal(number): "first", "second", ..., "11th" for position-first messages.
"""
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker; one instance per process.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __ror__(self, other, /):
        # Program | Unset: type.__or__ gives up on instances, so build the union here.
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return object, or default when object is Unset. None, 0 and "" are kept.
    """
    return default if object is Unset else object


def rename(name, /):
    """
    Decorator giving the decorated callable a fixed __name__ and __qualname__.
    """
    if not isinstance(name, str):
        raise TypeError("rename() argument must be a string")

    def decorator(function):
        if not callable(function):
            raise TypeError("rename() must be applied to a callable")
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _freeze(object):
    """
    Shallow-freeze a backing value for public exposure.

    - Sequence (non-string) -> tuple
    - Mapping -> a fresh dict copy
    - Set -> frozenset
    - Anything else (specs, commands, programs, callables) -> as-is
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    elif isinstance(object, Mapping):
        return dict(object)
    elif isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance. Lists are handed out as
    tuples so the registry cannot be mutated through the public API.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with English suffixes ("11th", "21st").
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, ...)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
)
