"""
treecli settings (configuration fallback for flag values).

Scope
- SettingsSource: where to find the configuration document (an explicit
  file, or a base name searched in a list of directories) and which
  environment prefix applies.
- Settings: dotted-key lookup across the environment and the document, with
  typed getters that fall back to zero values.
- Scope helpers: attach a Settings to a scope and read "flag, else setting"
  values inside actions.
- Merge helpers: field_or_setting, build_map and build_string_map pick each
  value from an object (attribute or mapping key) before the settings.

Lookup order for a key such as "db.host" with prefix "app":
1. environment variable APP_DB_HOST
2. document value document["db"]["host"] (keys are case-insensitive)
3. the getter's zero value
"""
import json
import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .flags import string_flag
from .scopes import ScopeKey
from .utils import Unset

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "yaml": (".yaml", ".yml"),
    "json": (".json",),
    "toml": (".toml",),
}


class SettingsError(Exception):
    pass


class SettingsSource(BaseModel):
    """Location and format of a settings document."""

    model_config = ConfigDict(extra="forbid")

    config_file: str | None = None
    config_name: str | None = None
    config_type: Literal["yaml", "json", "toml"] = "yaml"
    config_paths: list[str] = Field(default_factory=list)
    env_prefix: str = ""


def _lower_keys(document):
    if isinstance(document, Mapping):
        return {str(key).lower(): _lower_keys(value) for key, value in document.items()}
    if isinstance(document, list):
        return [_lower_keys(value) for value in document]
    return document


def _parse(path, kind):
    text = path.read_text(encoding="utf-8")
    try:
        match kind:
            case "yaml":
                document = yaml.safe_load(text)
            case "json":
                document = json.loads(text)
            case "toml":
                document = tomllib.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as error:
        raise SettingsError(f"can not parse {kind} settings file {str(path)!r}: {error}") from error
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise SettingsError(f"settings file {str(path)!r} must hold a mapping at its root")
    return _lower_keys(document)


def _kind_of(path, default):
    for kind, extensions in _EXTENSIONS.items():
        if path.suffix.lower() in extensions:
            return kind
    return default


class Settings:
    """
    Configuration document plus environment overrides.

    environ defaults to os.environ and is read at lookup time.
    """

    def __init__(self, document=None, env_prefix="", environ=None):
        self._document = _lower_keys(document or {})
        self._env_prefix = env_prefix
        self._environ = environ

    @classmethod
    def load(cls, source, /, environ=None):
        """
        Load the document described by source (a SettingsSource or a mapping).

        An explicit config_file must exist. A config_name is searched in every
        config_paths entry with the extensions of config_type; finding nothing
        yields an empty document. Anything else is a SettingsError.
        """
        if not isinstance(source, SettingsSource):
            source = SettingsSource.model_validate(source)

        if source.config_file:
            path = Path(source.config_file)
            try:
                document = _parse(path, _kind_of(path, source.config_type))
            except OSError as error:
                raise SettingsError(f"can not read settings file {source.config_file!r}: {error}") from error
            logger.debug("loaded settings from %s", path)
            return cls(document, source.env_prefix, environ)

        if not (source.config_name and source.config_paths):
            raise SettingsError("insufficient settings file information: set config_file, or config_name and config_paths")

        for directory in source.config_paths:
            for extension in _EXTENSIONS[source.config_type]:
                if (path := Path(directory) / (source.config_name + extension)).is_file():
                    logger.debug("loaded settings from %s", path)
                    return cls(_parse(path, source.config_type), source.env_prefix, environ)

        logger.debug("no settings file named %r found, using the environment only", source.config_name)
        return cls({}, source.env_prefix, environ)

    @property
    def document(self):
        return self._document

    def _variable(self, key):
        name = key.replace(".", "_").replace("-", "_").upper()
        return f"{self._env_prefix.upper()}_{name}" if self._env_prefix else name

    def get(self, key, default=None, /):
        environ = self._environ if self._environ is not None else os.environ
        if (value := environ.get(self._variable(key))) is not None:
            return value
        node = self._document
        for part in key.lower().split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def get_string(self, key, /):
        match self.get(key):
            case None:
                return ""
            case bool() as value:
                return "true" if value else "false"
            case Mapping() | list():
                return ""
            case value:
                return str(value)

    def get_int(self, key, /):
        match self.get(key):
            case bool() as value:
                return int(value)
            case int() as value:
                return value
            case float() as value:
                return int(value)
            case str() as value:
                try:
                    return int(value.strip(), 0)
                except ValueError:
                    return 0
            case _:
                return 0

    def get_float(self, key, /):
        match self.get(key):
            case bool() as value:
                return float(value)
            case int() | float() as value:
                return float(value)
            case str() as value:
                try:
                    return float(value.strip())
                except ValueError:
                    return 0.0
            case _:
                return 0.0

    def get_bool(self, key, /):
        match self.get(key):
            case bool() as value:
                return value
            case int() | float() as value:
                return value != 0
            case str() as value:
                return value.strip().lower() in ("1", "t", "true", "yes", "y", "on")
            case _:
                return False

    def get_mapping(self, key, /):
        match self.get(key):
            case Mapping() as value:
                return dict(value)
            case _:
                return {}

    def get_string_mapping(self, key, /):
        return {name: "" if value is None else str(value) for name, value in self.get_mapping(key).items()}

    def __repr__(self):
        return "settings(keys=%r, env_prefix=%r)" % (sorted(self._document), self._env_prefix)


def with_settings(scope, settings, /):
    return scope.with_value(ScopeKey.SETTINGS, settings)


def get_settings(scope, /):
    settings = scope.value(ScopeKey.SETTINGS)
    return settings if isinstance(settings, Settings) else None


def string_or_setting(value, settings, key, /):
    """
    Return value when non-empty, otherwise the string setting key (or "").
    """
    if value:
        return value
    if settings is None:
        return ""
    return settings.get_string(key)


def string_flag_or_setting(scope, name, key, /):
    return string_or_setting(string_flag(scope, name, ""), get_settings(scope), key)


def get_string_or_setting(scope, key, setting_key, /):
    if isinstance(value := scope.value(key), str):
        return value
    settings = get_settings(scope)
    return settings.get_string(setting_key) if settings is not None else ""


def get_int_or_setting(scope, key, setting_key, /):
    if isinstance(value := scope.value(key), int) and not isinstance(value, bool):
        return value
    settings = get_settings(scope)
    return settings.get_int(setting_key) if settings is not None else 0


def get_bool_or_setting(scope, key, setting_key, /):
    if isinstance(value := scope.value(key), bool):
        return value
    settings = get_settings(scope)
    return settings.get_bool(setting_key) if settings is not None else False


def get_float_or_setting(scope, key, setting_key, /):
    if isinstance(value := scope.value(key), float):
        return value
    settings = get_settings(scope)
    return settings.get_float(setting_key) if settings is not None else 0.0


def _field_or_setting(obj, name, settings, keys):
    if isinstance(obj, Mapping):
        if name in obj:
            return obj[name]
    elif obj is not None and (value := getattr(obj, name, Unset)) is not Unset:
        return value
    if settings is not None and keys:
        return settings.get(keys[0])
    return Unset


def field_or_setting(obj, name, settings, /, *keys):
    """
    Return the name field of obj, else the setting keys[0], else None.

    obj may be a mapping (looked up by key) or any object (looked up by
    attribute). Only the first of keys is consulted.
    """
    value = _field_or_setting(obj, name, settings, keys)
    return None if value is Unset else value


def build_map(obj, settings, /, *exprs):
    """
    Collect field_or_setting values into a dict.

    Each expression is (name, *keys); a plain string is a name without keys.
    Names found neither on obj nor through a key are left out.
    """
    result = {}
    for expr in exprs:
        if isinstance(expr, str):
            expr = (expr,)
        if not expr:
            continue
        name, *keys = expr
        if (value := _field_or_setting(obj, name, settings, keys)) is not Unset:
            result[name] = value
    return result


def build_string_map(obj, settings, /, *exprs):
    """
    Like build_map, keeping string values only.
    """
    return {name: value for name, value in build_map(obj, settings, *exprs).items() if isinstance(value, str)}


__all__ = (
    "SettingsError",
    "SettingsSource",
    "Settings",
    "with_settings",
    "get_settings",
    "string_or_setting",
    "string_flag_or_setting",
    "get_string_or_setting",
    "get_int_or_setting",
    "get_bool_or_setting",
    "get_float_or_setting",
    "field_or_setting",
    "build_map",
    "build_string_map",
)
