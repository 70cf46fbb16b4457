"""
treecli flags (schema, per-invocation binding and typed accessors).

Scope
- FlagKind: the four supported value kinds and their string conversions.
- Cell: a typed, mutable storage slot for one flag value.
- Flag: one flag declaration (name, description, default, kind, optional
  caller-supplied storage cell).
- FlagSet: the ordered schema of a command; parse() binds a fresh set of cells
  for one invocation and returns a scope carrying them.
- FlagValues: the per-invocation result (cells plus residual positional args).
- string_flag/int_flag/float_flag/bool_flag/help_flag/other_args: read the
  innermost FlagValues of a scope.

Conventions
- Flags are written "--name value", "--name=value", or "--name" alone for
  booleans. "--" ends flag parsing; the first non-flag token does too.
- Every parse gets its own cells unless the declaration carries a storage
  cell, in which case that cell is reset to the default and written in place.
- Accessors never raise: an absent name or a kind mismatch yields the
  caller's fallback.
"""
import re
from collections import deque
from enum import Enum
from types import MappingProxyType

from .faults import (
    FaultCode,
    MalformedFlagError,
    UnknownFlagError,
    MissingFlagValueError,
    InvalidFlagValueError,
)
from .scopes import ScopeKey
from .utils import Unset, ReflectiveType, coalesce

_TRUTHS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSITIES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class FlagKind(Enum):
    """
    the closed set of flag value kinds; the value doubles as the help metavar.
    """
    TEXT = "string"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"

    @property
    def zero(self):
        match self:
            case FlagKind.TEXT:
                return ""
            case FlagKind.INTEGER:
                return 0
            case FlagKind.FLOAT:
                return 0.0
            case FlagKind.BOOLEAN:
                return False

    def accepts(self, value, /):
        match self:
            case FlagKind.TEXT:
                return isinstance(value, str)
            case FlagKind.INTEGER:
                return isinstance(value, int) and not isinstance(value, bool)
            case FlagKind.FLOAT:
                return isinstance(value, float)
            case FlagKind.BOOLEAN:
                return isinstance(value, bool)

    def convert(self, raw, /):
        """
        convert a raw command-line string; raises ValueError when impossible.
        """
        match self:
            case FlagKind.TEXT:
                return raw
            case FlagKind.INTEGER:
                if raw != raw.strip():
                    raise ValueError("invalid integer literal %r" % raw)
                try:
                    return int(raw, 0)
                except ValueError:
                    # int(..., 0) rejects "007"
                    return int(raw, 10)
            case FlagKind.FLOAT:
                if raw != raw.strip():
                    raise ValueError("invalid float literal %r" % raw)
                return float(raw)
            case FlagKind.BOOLEAN:
                if raw in _TRUTHS:
                    return True
                if raw in _FALSITIES:
                    return False
                raise ValueError("invalid boolean literal %r" % raw)

    @classmethod
    def of(cls, value, /):
        match value:
            case bool():
                return cls.BOOLEAN
            case int():
                return cls.INTEGER
            case float():
                return cls.FLOAT
            case str():
                return cls.TEXT
            case _:
                raise TypeError("unsupported flag value type %r" % type(value).__name__)


class Cell:
    """
    Typed storage for one flag value.

    Cells handed to a flag declaration are shared by every invocation of the
    command, so only one invocation may use such a command at a time.
    """
    __slots__ = ("_kind", "_value")
    __match_args__ = ("kind", "value")

    def __init__(self, kind, value=Unset, /):
        if not isinstance(kind, FlagKind):
            raise TypeError("cell kind must be a flag-kind")
        self._kind = kind
        self.value = coalesce(value, kind.zero)

    @property
    def kind(self):
        return self._kind

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, value):
        if self._kind is FlagKind.FLOAT and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not self._kind.accepts(value):
            raise TypeError("%s cell can not hold %r" % (self._kind.value, value))
        self._value = value

    def set(self, raw, /):
        self.value = self._kind.convert(raw)

    def __repr__(self):
        return "cell(kind=%s, value=%r)" % (self._kind.value, self._value)


def _sanitize_flag(cls, metadata, /):
    """
    Internal: validate and normalize flag declaration metadata in place.

    - name: non-empty after trimming, a letter or digit first, no "=" or
      whitespace, and never "help" (reserved for the synthesized flag).
    - descr: a string (may be empty).
    - kind/default: the kind is inferred from the default when not given; the
      default falls back to the zero value of the kind.
    - storage: None or a Cell of the same kind.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not re.fullmatch(r"[^\W_][^\s=]*", name):
        raise ValueError(f"{cls.__typename__} 'name' must start with a letter or digit and contain no '=' or spaces")
    elif name == "help":
        raise ValueError(f"{cls.__typename__} name 'help' is reserved")
    metadata["name"] = name

    if not isinstance(metadata["descr"], str):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")

    kind, default = metadata["kind"], metadata["default"]
    if kind is Unset:
        if default is Unset:
            raise TypeError(f"{cls.__typename__} needs a default or an explicit kind")
        kind = FlagKind.of(default)
    elif not isinstance(kind, FlagKind):
        raise TypeError(f"{cls.__typename__} 'kind' must be a flag-kind")
    default = coalesce(default, kind.zero)
    if kind is FlagKind.FLOAT and isinstance(default, int) and not isinstance(default, bool):
        default = float(default)
    if not kind.accepts(default):
        raise TypeError(f"{cls.__typename__} default {default!r} is not a valid {kind.value}")
    metadata["kind"], metadata["default"] = kind, default

    match metadata["storage"]:
        case None:
            pass
        case Cell(kind=storage) if storage is kind:
            pass
        case Cell():
            raise TypeError(f"{cls.__typename__} storage must be a {kind.value} cell")
        case _:
            raise TypeError(f"{cls.__typename__} storage must be a cell")


class Flag(metaclass=ReflectiveType):
    __introspectable__ = (
        "name",
        "descr",
        "default",
        "kind",
        "storage",
    )
    __displayable__ = (
        "name",
        "kind",
        "default",
        "descr",
    )

    def __init__(self, name, descr="", default=Unset, storage=None, /, *, kind=Unset):
        metadata = {
            "name": name,
            "descr": descr,
            "default": default,
            "storage": storage,
            "kind": kind,
        }
        _sanitize_flag(type(self), metadata)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def bind(self):
        """
        Return the cell this declaration writes to for one invocation.
        """
        if self._storage is None:
            return Cell(self._kind, self._default)
        self._storage.value = self._default
        return self._storage


class FlagValues:
    """
    Read-only result of one parse: cells by name and the residual arguments.
    """
    __slots__ = ("_cells", "_args")

    def __init__(self, cells, args=(), /):
        self._cells = MappingProxyType(dict(cells))
        self._args = tuple(args)

    @property
    def cells(self):
        return self._cells

    @property
    def args(self):
        return self._args

    def get(self, name, default=None, /):
        return self._cells.get(name, default)

    def __contains__(self, name):
        return name in self._cells

    def __repr__(self):
        return "flag-values(%s, args=%r)" % (
            ", ".join("%s=%r" % (name, cell.value) for name, cell in self._cells.items()),
            self._args,
        )


class FlagSet:
    """
    Ordered flag schema of one command.

    Re-adding a name replaces the earlier declaration.
    """

    def __init__(self):
        self._flags = {}

    def add(self, name, descr="", default=Unset, storage=None, /, *, kind=Unset):
        flag = Flag(name, descr, default, storage, kind=kind)
        self._flags.pop(flag.name, None)
        self._flags[flag.name] = flag
        return flag

    def __getitem__(self, name):
        return self._flags[name]

    def __contains__(self, name):
        return name in self._flags

    def __iter__(self):
        return iter(self._flags.values())

    def __len__(self):
        return len(self._flags)

    def __repr__(self):
        return "flag-set(%s)" % ", ".join(self._flags)

    def parse(self, scope, path, args, /):
        """
        Bind fresh cells, consume flag tokens from args and return a new scope.

        The synthesized help flag is always accepted. Parsing stops at "--"
        (dropped) or at the first token that is not a "--name" flag; that token
        and the rest become FlagValues.args.
        """
        cells = {flag.name: flag.bind() for flag in self._flags.values()}
        cells["help"] = Cell(FlagKind.BOOLEAN, False)

        tokens = deque(args)
        while tokens:
            token = tokens[0]
            if token == "--":
                tokens.popleft()
                break
            if not token.startswith("--"):
                break
            tokens.popleft()

            name, assigned, raw = token[2:].partition("=")
            if not name or name.startswith("-"):
                raise MalformedFlagError(
                    "bad flag syntax: %s" % token,
                    title="malformed flag",
                    code=FaultCode.MALFORMED_FLAG,
                    flag=token,
                )

            try:
                cell = cells[name]
            except KeyError:
                raise UnknownFlagError(
                    "flag provided but not defined: --%s" % name,
                    title="unknown flag",
                    code=FaultCode.UNKNOWN_FLAG,
                    flag=name,
                ) from None

            if cell.kind is FlagKind.BOOLEAN:
                raw = raw if assigned else "true"
            elif not assigned:
                if not tokens:
                    raise MissingFlagValueError(
                        "flag needs an argument: --%s" % name,
                        title="missing flag value",
                        code=FaultCode.MISSING_FLAG_VALUE,
                        flag=name,
                    )
                raw = tokens.popleft()

            try:
                cell.set(raw)
            except ValueError:
                raise InvalidFlagValueError(
                    "invalid value %r for flag --%s: expected %s" % (raw, name, cell.kind.value),
                    title="invalid flag value",
                    code=FaultCode.INVALID_FLAG_VALUE,
                    flag=name,
                    value=raw,
                ) from None

        return scope.with_value(ScopeKey.FLAG_VALUES, FlagValues(cells, tokens))


def flag_values(scope, /):
    values = scope.value(ScopeKey.FLAG_VALUES)
    return values if isinstance(values, FlagValues) else None


def _cell(scope, name):
    if (values := flag_values(scope)) is None:
        return None
    return values.get(name)


def string_flag(scope, name, otherwise="", /):
    match _cell(scope, name):
        case Cell(FlagKind.TEXT, value):
            return value
        case _:
            return otherwise


def int_flag(scope, name, otherwise=0, /):
    match _cell(scope, name):
        case Cell(FlagKind.INTEGER, value):
            return value
        case _:
            return otherwise


def float_flag(scope, name, otherwise=0.0, /):
    match _cell(scope, name):
        case Cell(FlagKind.FLOAT, value):
            return value
        case _:
            return otherwise


def bool_flag(scope, name, otherwise=False, /):
    match _cell(scope, name):
        case Cell(FlagKind.BOOLEAN, value):
            return value
        case _:
            return otherwise


def help_flag(scope, /):
    return bool_flag(scope, "help", False)


def other_args(scope, /):
    if (values := flag_values(scope)) is None:
        return ()
    return values.args


def string_flags(scope, /, *names):
    return tuple(string_flag(scope, name, "") for name in names)


__all__ = (
    "FlagKind",
    "Cell",
    "Flag",
    "FlagSet",
    "FlagValues",
    "flag_values",
    "string_flag",
    "int_flag",
    "float_flag",
    "bool_flag",
    "help_flag",
    "other_args",
    "string_flags",
)
