"""
Help rendering for commands and programs.

help_message_for_command(command) builds the plain usage text:

    Usage: test [args]
        --test, -t     testing

- one line per option, in declaration order: four spaces, "--name", ", -alias"
  for each alias, five spaces, the description (if any), one space.
- a command without options renders the usage line alone.

The text is whitespace-exact and never printed here; render() wraps it into a
rich renderable for programs and commands to print.
"""
from collections import defaultdict

from rich.panel import Panel
from rich.text import Text


def help_message_for_command(command, /):
    message = f"Usage: {command.name} [args]\n"
    for option in command.options:
        flags = ", ".join(option.flags)
        message += f"    {flags}     {option.description or ''} \n"
    return message


def help_message_for_program(program, /):
    """
    Usage text for a program: its route, then every command reachable from it.

        Usage: cli <command> [args]
        Commands:
            build
            test1 test
    """
    from .commands import iter_commands

    route = " ".join((program.root.name, *program.route))
    message = f"Usage: {route} <command> [args]\n"
    if commands := list(iter_commands(program)):
        message += "Commands:\n"
        for command in commands:
            message += f"    {' '.join(command.path)}\n"
    return message


def render(message, /, *, title=None, fancy=False, colorful=False):
    """
    Wrap a help message into a rich renderable.

    - markup in the message is never interpreted ("[args]" stays literal).
    - colorful highlights the usage label and option flags; __styles__ in
      __main__ can override the palette.
    - fancy puts the message in a Panel titled with title.
    """
    styles = defaultdict(str, {
        "usage-label": "bold #00E6FF",
        "option-name": "bold #00E6FF",
        "section-label": "bold #FFFFFF",
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))

    text = Text(message.rstrip("\n") if fancy else message)
    if colorful:
        text.highlight_regex(r"(?m)^Usage:", styles["usage-label"])
        text.highlight_regex(r"(?m)^Commands:", styles["section-label"])
        text.highlight_regex(r"(?<=[ ,])--?[^\W_]+(-[^\W_]+)*", styles["option-name"])

    if fancy:
        return Panel(text, title=Text(title or "", styles["panel-title"] if colorful else ""), title_align="left")
    return text


__all__ = (
    "help_message_for_command",
    "help_message_for_program",
    "render",
)
