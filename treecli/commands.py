"""
treecli commands (command tree, resolution and help).

Scope
- Command: one node of the tree. It owns its children, its flag schema and an
  optional action; run() resolves the node that should handle an argument
  list and executes it.
- App: the wrapper owning the root node plus the application-wide policy
  (version, banner, default command, error/help handlers, pre-run hook) and
  the run/run_buffer/run_line/run_unmarshal entry points.

Resolution (Command.run)
1. Nodes not reachable from an App root raise SetupError.
2. A first argument naming a child delegates to that child with the rest.
3. Otherwise this node parses its flags; parse failures go to the app error
   handler, or are re-raised with the command path and a usage hint.
4. --help prints help and returns None.
5. The node action runs when set.
6. With no action and no positional arguments left, the app default command
   runs (unless this node is the default); a default that is not attached
   below the same app raises SetupError.
7. The app help handler runs when set; otherwise help is printed and
   HelpRequested is raised.

Conventions
- Everything an invocation learns (flag values, output stream, JSON toggle)
  lives in the Scope passed down the call; nodes are never written during a
  run, so a finished tree is safe to run from several threads at once.
- Builders return the receiver so trees can be declared fluently.
"""
import copy
import io
import json
import logging
import re
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import FaultCode, SetupError, FlagError, HelpRequested, CommandException
from .flags import FlagKind, FlagSet, help_flag, other_args
from .scopes import Scope, stdout, with_stdout, with_json
from .utils import ReflectiveType

logger = logging.getLogger(__name__)


def _sanitize_naming(cls, name, descr, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not re.fullmatch(r"\S*", name):
        raise ValueError(f"{cls.__typename__} 'name' cannot contain whitespace")
    if not isinstance(descr, str):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")


class Command(metaclass=ReflectiveType):
    __introspectable__ = (
        "name",
        "descr",
        "long_descr",
        "parent",
        "children",
        "hidden",
    )
    __displayable__ = (
        "name",
        "descr",
        "hidden",
    )

    def __init__(self, name, descr="", /):
        _sanitize_naming(type(self), name, descr)
        self._name = name
        self._descr = descr
        self._long_descr = ""
        self._parent = None
        self._children = {}
        self._flags = FlagSet()
        self._action = None
        self._hidden = False
        self._app = None

    @property
    def flags(self):
        return self._flags

    @property
    def root(self):
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def path(self):
        nodes = []
        node = self
        while node is not None:
            nodes.append(node)
            node = node._parent
        return tuple(reversed(nodes))

    @property
    def app(self):
        """
        The App owning the root of this node's tree, or None.
        """
        return self.root._app

    def command_path(self):
        """
        Space-joined names from the root to this node; empty ancestor names are skipped.
        """
        *ancestors, node = self.path
        return " ".join([ancestor.name for ancestor in ancestors if ancestor.name] + [node.name])

    def _add_flag(self, kind, name, descr, default, storage):
        self._flags.add(name, descr, default, storage, kind=kind)
        return self

    def bool_flag(self, name, descr="", default=False, storage=None, /):
        return self._add_flag(FlagKind.BOOLEAN, name, descr, default, storage)

    def string_flag(self, name, descr="", default="", storage=None, /):
        return self._add_flag(FlagKind.TEXT, name, descr, default, storage)

    def int_flag(self, name, descr="", default=0, storage=None, /):
        return self._add_flag(FlagKind.INTEGER, name, descr, default, storage)

    def float_flag(self, name, descr="", default=0.0, storage=None, /):
        return self._add_flag(FlagKind.FLOAT, name, descr, default, storage)

    def action(self, callback, /):
        if callback is not None and not callable(callback):
            raise TypeError(f"{type(self).__typename__} action must be callable or None")
        self._action = callback
        return self

    def long_description(self, text, /):
        if not isinstance(text, str):
            raise TypeError(f"{type(self).__typename__} long description must be a string")
        self._long_descr = text
        return self

    def hide(self):
        self._hidden = True
        return self

    def add_command(self, child, /):
        """
        Attach child under this node.

        A node can have one parent only, an App root can never become a child,
        and a node can not be attached below itself.
        """
        typename = type(self).__typename__
        if not isinstance(child, Command):
            raise TypeError(f"{typename} children must be commands")
        elif child._parent is not None:
            raise ValueError(f"{typename} {child.name!r} is already attached to {child._parent.command_path()!r}")
        elif child._app is not None:
            raise ValueError(f"{typename} {child.name!r} is the root of an application")
        elif any(node is child for node in self.path):
            raise ValueError(f"{typename} {child.name!r} can not be attached below itself")
        elif not child.name:
            raise ValueError(f"{typename} children must have a name")
        elif child.name in self._children:
            raise ValueError(f"{typename} name {child.name!r} is already in use under {self.command_path()!r}")
        child._parent = self
        self._children[child.name] = child
        return self

    def subcommands(self, *children):
        for child in children:
            self.add_command(child)
        return self

    def command(self, name, descr="", /):
        child = Command(name, descr)
        self.add_command(child)
        return child

    def run(self, scope, args=(), /):
        """
        Resolve and execute the node handling args; see the module docstring.
        """
        if (app := self.app) is None:
            raise SetupError(
                "command %r is not part of an application" % self.command_path(),
                title="detached command",
                code=FaultCode.DETACHED_COMMAND,
                hint="attach it below an App before running it",
            )

        args = tuple(args)
        if args and (child := self._children.get(args[0])) is not None:
            logger.debug("descending from %r into %r", self.command_path(), child.name)
            return child.run(scope, args[1:])

        path = self.command_path()
        try:
            scope = self._flags.parse(scope, path, args)
        except FlagError as error:
            logger.debug("flag parsing failed for %r: %s", path, error)
            if app._error_handler is not None:
                result = app._error_handler(path, error)
                if result is error:
                    raise
                if isinstance(result, BaseException):
                    raise result from error
                return result
            raise copy.replace(error, path=path, hint="See '%s --help' for usage" % path) from None

        if help_flag(scope):
            self.print_help(scope)
            return None

        if self._action is not None:
            return self._action(scope)

        if (default := app._default) is not None and default is not self and not other_args(scope):
            if default.app is not app:
                raise SetupError(
                    "default command %r is not part of %r" % (default.command_path(), app.name),
                    title="detached default command",
                    code=FaultCode.DETACHED_DEFAULT,
                    hint="attach the default command below the application before running it",
                )
            logger.debug("delegating %r to default command %r", path, default.command_path())
            return default.run(scope, ())

        if app._help_handler is not None:
            return app._help_handler(scope, app)

        self.print_help(scope)
        raise HelpRequested(
            "help requested",
            title="help requested",
            code=FaultCode.HELP_REQUESTED,
            path=path,
        )

    def help_description(self):
        return "Get help on the '%s' command." % self.command_path().lower()

    def print_help(self, scope, /):
        """
        Render help for this node to the scope output.

        Palette keys
        - banner, title, long-description
        - children-title, children, children-description, default-marker
        - flags-title, flag-name, metavar, flag-description
        - panel-title

        Define a mapping named __styles__ in __main__ to override any entry.
        Styling only applies when the owning app is colorful.
        """
        app = self.app
        colorful = app is not None and app._colorful
        fancy = app is not None and app._fancy
        console = _console(scope)

        styles = defaultdict(str, {
            "banner": "bold #FF4D94",
            "title": "bold #36C5F0",
            "long-description": "italic #A3A3A3",

            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",
            "default-marker": "#22C55E dim",

            "flags-title": "bold #FFFFFF",
            "flag-name": "bold #00E6FF",
            "metavar": "bold #FFD600",
            "flag-description": "#9CA3AF",

            "panel-title": "bold #FF4D94",
        } | getattr(__import__('__main__'), "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            return Text(str(fragment), styler(style))

        renders = []

        if app is not None and not fancy:
            renders += [text(app._banner(scope, app), "banner"), Text("")]

        if self.command_path() != self._name:
            title = self.command_path() + (" - " + self._descr if self._descr else "")
            renders.append(text(title, "title"))

        if self._long_descr:
            renders += [text(self._long_descr, "long-description"), Text("")]

        if visible := [child for child in self._children.values() if not child._hidden]:
            default = app._default if app is not None else None
            if fancy:
                table = Table(
                    "name", "help",
                    title=text("commands", "children-title"),
                    box=ROUNDED,
                    style=styler("children-table"),
                    header_style=styler("children-title"),
                )
                for child in visible:
                    help = text(child._descr, "children-description")
                    if child is default:
                        help.append_text(text(" [default]", "default-marker"))
                    table.add_row(text(child._name, "children"), help)
                renders.append(table)
            else:
                renders += [text("Available commands:", "children-title"), Text("")]
                longest = max(len(child._name) for child in visible)
                for child in visible:
                    line = Text.assemble(
                        "   ",
                        text(child._name, "children"),
                        " " * (3 + longest - len(child._name)),
                        text(child._descr, "children-description"),
                    )
                    if child is default:
                        line.append_text(text(" [default]", "default-marker"))
                    renders.append(line)
                renders.append(Text(""))

        if len(self._flags):
            renders += [text("Flags:", "flags-title"), Text("")]
            rows = [
                (flag.name, "" if flag.kind is FlagKind.BOOLEAN else flag.kind.value, flag.descr, _default_note(flag))
                for flag in self._flags
            ]
            rows.append(("help", "", self.help_description(), ""))
            rows.sort()
            longest = max(len(name) + len(metavar) + bool(metavar) for name, metavar, _, _ in rows)
            for name, metavar, descr, note in rows:
                width = len(name) + len(metavar) + bool(metavar)
                renders.append(Text.assemble(
                    "  ",
                    text("--" + name, "flag-name"),
                    " " if metavar else "",
                    text(metavar, "metavar"),
                    " " * (3 + longest - width),
                    text(descr + note, "flag-description"),
                ))
            renders.append(Text(""))

        while renders and isinstance(renders[-1], Text) and not renders[-1].plain:
            renders.pop()

        renderable = Group(*renders)
        if fancy:
            renderable = Panel(
                renderable,
                title=text(app._banner(scope, app), "panel-title"),
                title_align="left",
            )
        console.print(renderable)


def _default_note(flag):
    if flag.default == flag.kind.zero:
        return ""
    return " (default %s)" % json.dumps(flag.default)


def _console(scope):
    return Console(file=stdout(scope), highlight=False, emoji=False, soft_wrap=True)


def _banner(scope, app):
    version = " " + app.version if app.version else ""
    return "%s%s - %s" % (app.name, version, app.descr)


class App(metaclass=ReflectiveType):
    """
    Application wrapper: the root command plus application-wide policy.

    The root is created with the app and can not be replaced. Every policy
    setter returns the app.
    """
    __introspectable__ = (
        "root",
        "version",
        "default",
        "colorful",
        "fancy",
    )
    __displayable__ = (
        "name",
        "version",
        "descr",
    )

    def __init__(self, name, descr="", version="", /, *, colorful=False, fancy=False):
        if not isinstance(version, str):
            raise TypeError(f"{type(self).__typename__} 'version' must be a string")
        self._root = Command(name, descr)
        self._root._app = self
        self._version = version
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._default = None
        self._banner = _banner
        self._error_handler = None
        self._help_handler = None
        self._pre_run = None

    @property
    def name(self):
        return self._root.name

    @property
    def descr(self):
        return self._root.descr

    def bool_flag(self, name, descr="", default=False, storage=None, /):
        self._root.bool_flag(name, descr, default, storage)
        return self

    def string_flag(self, name, descr="", default="", storage=None, /):
        self._root.string_flag(name, descr, default, storage)
        return self

    def int_flag(self, name, descr="", default=0, storage=None, /):
        self._root.int_flag(name, descr, default, storage)
        return self

    def float_flag(self, name, descr="", default=0.0, storage=None, /):
        self._root.float_flag(name, descr, default, storage)
        return self

    def action(self, callback, /):
        self._root.action(callback)
        return self

    def long_description(self, text, /):
        self._root.long_description(text)
        return self

    def commands(self, *children):
        self._root.subcommands(*children)
        return self

    def command(self, name, descr="", /):
        return self._root.command(name, descr)

    def default_command(self, command, /):
        if command is not None and not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} default command must be a command or None")
        self._default = command
        return self

    def _policy(self, attribute, callback):
        if callback is not None and not callable(callback):
            raise TypeError(f"{type(self).__typename__} {attribute.strip("_").replace("_", " ")} must be callable or None")
        setattr(self, attribute, callback)
        return self

    def banner(self, callback, /):
        """
        Replace the banner function, called as callback(scope, app) -> str.
        """
        return self._policy("_banner", callback if callback is not None else _banner)

    def error_handler(self, callback, /):
        """
        Install callback(path, error) for flag parsing failures.

        An exception returned by the handler is raised; anything else is
        returned from run() as the result of the invocation.
        """
        return self._policy("_error_handler", callback)

    def help_handler(self, callback, /):
        return self._policy("_help_handler", callback)

    def pre_run(self, callback, /):
        return self._policy("_pre_run", callback)

    def print_banner(self, scope, /):
        _console(scope).print(Group(Text(self._banner(scope, self)), Text("")))

    def print_help(self, scope, /):
        self._root.print_help(scope)

    def run(self, scope, /, *args):
        scope = scope if scope is not None else Scope()
        if self._pre_run is not None:
            self._pre_run(scope, self)
        return self._root.run(scope, args)

    def run_buffer(self, scope, /, *args, as_json=False):
        """
        Run with output captured; returns (text, result).

        A CommandException raised by the run carries the captured text as
        its output attribute.
        """
        buffer = io.StringIO()
        scope = with_json(with_stdout(scope if scope is not None else Scope(), buffer), as_json)
        try:
            result = self.run(scope, *args)
        except CommandException as exception:
            exception.output = buffer.getvalue()
            raise
        return buffer.getvalue(), result

    def run_line(self, scope, line, /, *, as_json=False):
        return self.run_buffer(scope, *line.split(), as_json=as_json)

    def run_unmarshal(self, scope, line, /):
        text, _ = self.run_line(scope, line, as_json=True)
        return json.loads(text)


__all__ = (
    "Command",
    "App",
)
