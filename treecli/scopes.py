"""
treecli scopes (per-invocation context).

A Scope is an immutable chain of key/value layers. Every call that needs to
add context (parsed flags, an output destination, the JSON toggle) wraps the
scope it was given and passes the new one downward; nothing is ever written
back. Two invocations running at the same time therefore never observe each
other's state, even when they share the same command tree.

The package reserves a handful of keys through ScopeKey. They are enum
members, so no string key chosen by a host can collide with them.
"""
import json
import sys
from enum import Enum


class ScopeKey(Enum):
    FLAG_VALUES = "flag-values"
    STDOUT = "stdout"
    PRINT_JSON = "print-json"
    QUIET = "quiet"
    SETTINGS = "settings"


class Scope:
    """
    Immutable layered association of keys to values.

    Scope() is the empty root. with_value() returns a new layer wrapping the
    receiver; value() walks from the innermost layer outward.
    """
    __slots__ = ("_parent", "_key", "_value", "_depth")

    def __init__(self):
        self._parent = None
        self._key = _ROOT
        self._value = None
        self._depth = 0

    def with_value(self, key, value, /):
        scope = object.__new__(Scope)
        scope._parent = self
        scope._key = key
        scope._value = value
        scope._depth = self._depth + 1
        return scope

    def with_values(self, values, /):
        scope = self
        for key, value in dict(values).items():
            scope = scope.with_value(key, value)
        return scope

    def value(self, key, default=None, /):
        scope = self
        while scope._parent is not None:
            if scope._key == key:
                return scope._value
            scope = scope._parent
        return default

    def __contains__(self, key):
        scope = self
        while scope._parent is not None:
            if scope._key == key:
                return True
            scope = scope._parent
        return False

    def __setattr__(self, name, value):
        if hasattr(self, "_depth"):
            raise AttributeError("scope objects are immutable")
        super().__setattr__(name, value)

    def __repr__(self):
        return "scope(depth=%d)" % self._depth


_ROOT = object()


def stdout(scope, /):
    """
    Return the output stream of the scope, sys.stdout when none was set.
    """
    return scope.value(ScopeKey.STDOUT) or sys.stdout


def with_stdout(scope, stream, /):
    return scope.with_value(ScopeKey.STDOUT, stream)


def quiet(scope, /):
    return scope.value(ScopeKey.QUIET) is True


def with_quiet(scope, flag=True, /):
    return scope.with_value(ScopeKey.QUIET, bool(flag))


def prints_json(scope, /):
    return scope.value(ScopeKey.PRINT_JSON) is True


def with_json(scope, flag=True, /):
    return scope.with_value(ScopeKey.PRINT_JSON, bool(flag))


def printf(scope, template, /, *args):
    """
    Write template % args to the scope output without a trailing newline.

    Returns the number of characters written.
    """
    text = template % args if args else template
    return stdout(scope).write(text)


def println(scope, /, *objects, sep=" "):
    return stdout(scope).write(sep.join(map(str, objects)) + "\n")


def print_json(scope, value, /, indent=None, prefix=""):
    """
    Write value as JSON followed by a newline.

    Without an indent the output is compact; with one, every line after the
    first starts with prefix.
    """
    if indent is None:
        text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    else:
        text = json.dumps(value, ensure_ascii=False, indent=indent).replace("\n", "\n" + prefix)
    return stdout(scope).write(text + "\n")


def printj(scope, template, value, /, *rest):
    """
    Print value as JSON or through a format string, depending on the scope.

    Nothing is written in quiet mode. JSON (two-space indent) is used when the
    JSON toggle is on or template is empty; otherwise printf() formats
    value and rest with template.
    """
    if quiet(scope):
        return 0
    if prints_json(scope) or not template:
        return print_json(scope, value, "  ")
    return printf(scope, template, value, *rest)


__all__ = (
    "ScopeKey",
    "Scope",
    "stdout",
    "with_stdout",
    "quiet",
    "with_quiet",
    "prints_json",
    "with_json",
    "printf",
    "println",
    "print_json",
    "printj",
)
