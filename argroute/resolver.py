"""
Command resolution: pick the single command a token stream addresses.

Routing
- The route is the leading run of tokens that are neither option flags nor "--".
- match_commands(commands, tokens) keeps a command when the route starts with its
  full path ("test1 test ...") or when the first route token is its leaf name
  ("test ..."), so a nested command can be reached by its name alone.
- consumed(command, tokens) tells how many route tokens the chosen command used.

Disambiguation (find_exact_command)
- one candidate: returned as-is.
- option flags present: the candidate declaring the most options named among the
  tokens wins (each option counts once, by name or alias).
- still tied, or no option flags at all: the longest path wins, so a command on a
  deeper sub-program shadows a shallower one with the same name.
- still tied: the first candidate in the given (registration) order.
"""
import itertools

from .options import is_option, has_options, split_option


def _route(tokens):
    return list(itertools.takewhile(lambda token: not is_option(token) and token != "--", tokens))


def match_commands(commands, tokens, /):
    """
    Yield the commands addressed by the leading route of tokens, in the given order.
    """
    if not (route := _route(tokens)):
        return
    for command in commands:
        if route[:len(command.path)] == list(command.path) or route[0] == command.name:
            yield command


def consumed(command, tokens, /):
    """
    Return how many leading tokens name the command: the whole path when
    spelled out, otherwise one (the leaf name).
    """
    route = _route(tokens)
    if route[:len(command.path)] == list(command.path):
        return len(command.path)
    return 1


def _score(command, keys):
    return sum(any(key in keys for key in option.keys) for option in command.options)


def find_exact_command(commands, tokens, /):
    """
    Return the best candidate for the tokens, or None if there are no candidates.

    Parameters
    - commands: candidate commands, in registration order.
    - tokens: raw tokens used for disambiguation; only option flags matter.
    """
    candidates = list(commands)
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    keys = set()
    if has_options(tokens):
        keys = {split_option(token)[0] for token in tokens if is_option(token)}

    # max() keeps the first of equal keys, which gives registration order on full ties.
    return max(candidates, key=lambda command: (_score(command, keys), len(command.path)))


__all__ = (
    "match_commands",
    "consumed",
    "find_exact_command",
)
