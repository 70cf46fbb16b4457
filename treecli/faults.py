"""
treecli faults (errors raised while resolving and running commands).

Scope
- FaultCode: stable numeric identifiers for every user-facing failure, grouped
  by domain so logs and searches stay predictable.
- CommandException: base type carrying a message plus read-only options
  (title, code, hint, path, ...) and knowing how to render itself with rich.
- Concrete subclasses for tree setup, flag parsing and the help signal.

Integration
- The flag parser raises FlagError subclasses without a command path; the
  command layer adds the path and a usage hint through copy.replace() before
  re-raising, unless the application installed its own error handler.
- HelpRequested is the reserved "help was shown, nothing else ran" signal.
  Callers that only care about real failures catch it first.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - setup (101xx): trees that can not run as built.
    - flags (111xx): malformed, unknown, missing or invalid flag input.
    - signals (131xx): outcomes reported as exceptions that are not failures.

    normalize() lets the host remap codes to custom labels through a
    __codes__ mapping in __main__.
    """
    # --- setup errors (101xx) ---
    DETACHED_COMMAND            = 10101
    DETACHED_DEFAULT            = 10102

    # --- flag errors (111xx) ---
    MALFORMED_FLAG              = 11111
    UNKNOWN_FLAG                = 11112
    MISSING_FLAG_VALUE          = 11117
    INVALID_FLAG_VALUE          = 11124

    # --- signals (131xx) ---
    HELP_REQUESTED              = 13101

    def normalize(self):
        """
        return the host label for this code, or its numeric value as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    output = None

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def title(self):
        return self.options.get("title", "")

    @property
    def hint(self):
        return self.options.get("hint")

    @property
    def path(self):
        return self.options.get("path")

    def __str__(self):
        if not self.hint:
            return self.message
        return "%s\n%s" % (self.message, self.hint)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), style)

        path = self.path or ""
        prog = text(getattr(main, "__prog__", path.partition(" ")[0] or "treecli"), styler("prog-name"))

        parts = ["[ ", prog]
        if isinstance(self.code, FaultCode):
            parts += [" - ", text(self.code.normalize(), styler("code"))]
        if self.title:
            parts += [" | ", text(self.title.title(), styler("error-title"))]
        parts.append(" ]")
        header = Text.assemble(*parts)

        message = text(self.message, styler("error-message"))
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left", width=console.width - 4)

        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SetupError(CommandException): ...
class FlagError(CommandException): ...
class MalformedFlagError(FlagError): ...
class UnknownFlagError(FlagError): ...
class MissingFlagValueError(FlagError): ...
class InvalidFlagValueError(FlagError): ...
class HelpRequested(CommandException): ...


__all__ = (
    "CommandException",
    "SetupError",
    "FlagError",
    "MalformedFlagError",
    "UnknownFlagError",
    "MissingFlagValueError",
    "InvalidFlagValueError",
    "HelpRequested",
    "FaultCode",
)
