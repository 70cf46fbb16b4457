"""
Settings module tests (document loading, lookup order and scope helpers).

Scope
- Validate loading YAML/JSON/TOML documents from an explicit file or a name
  searched across directories, and the failure modes.
- Validate environment overrides and the typed getters.
- Validate the "flag, else setting" helpers inside a running command.
- Validate the merge helpers over objects, mappings and settings.

Conventions
- Test method names follow CamelCase per project convention.
- Files live in a TemporaryDirectory; the environment is passed explicitly.
"""
import tempfile
import unittest
from dataclasses import dataclass
from pathlib import Path
from unittest import TestCase

from pydantic import ValidationError

from treecli import (
    App,
    Scope,
    Settings,
    SettingsError,
    SettingsSource,
    build_map,
    build_string_map,
    field_or_setting,
    get_bool_or_setting,
    get_float_or_setting,
    get_int_or_setting,
    get_settings,
    get_string_or_setting,
    string_flag_or_setting,
    string_or_setting,
    with_settings,
)

DOCUMENT = """\
db:
  Host: db.internal
  port: 5432
  tls: true
  ratio: 0.25
labels:
  team: core
  tier: 1
"""


class TestLoading(TestCase):
    """Tests for Settings.load."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.root = Path(self.directory.name)

    def tearDown(self):
        self.directory.cleanup()

    def write(self, name, text):
        path = self.root / name
        path.write_text(text, encoding="utf-8")
        return path

    def testExplicitYamlFile(self):
        path = self.write("app.yaml", DOCUMENT)
        settings = Settings.load({"config_file": str(path)}, environ={})
        self.assertEqual(settings.get_string("db.host"), "db.internal")
        self.assertEqual(settings.get_int("db.port"), 5432)

    def testExplicitJsonAndTomlFiles(self):
        json_path = self.write("app.json", '{"db": {"port": 1}}')
        toml_path = self.write("app.toml", "[db]\nport = 2\n")
        self.assertEqual(Settings.load({"config_file": str(json_path)}, environ={}).get_int("db.port"), 1)
        self.assertEqual(Settings.load({"config_file": str(toml_path)}, environ={}).get_int("db.port"), 2)

    def testNameSearchedAcrossPaths(self):
        other = self.root / "other"
        other.mkdir()
        self.write("app.yml", "db:\n  port: 7\n")
        source = SettingsSource(config_name="app", config_paths=[str(other), str(self.root)])
        self.assertEqual(Settings.load(source, environ={}).get_int("db.port"), 7)

    def testMissingNamedFileIsEmpty(self):
        source = SettingsSource(config_name="absent", config_paths=[str(self.root)])
        settings = Settings.load(source, environ={})
        self.assertEqual(settings.document, {})
        self.assertEqual(settings.get_string("db.host"), "")

    def testMissingExplicitFileFails(self):
        with self.assertRaises(SettingsError):
            Settings.load({"config_file": str(self.root / "absent.yaml")})

    def testInsufficientInformationFails(self):
        with self.assertRaises(SettingsError):
            Settings.load(SettingsSource())
        with self.assertRaises(SettingsError):
            Settings.load({"config_name": "app"})

    def testParseErrorsFail(self):
        path = self.write("broken.json", "{not json")
        with self.assertRaises(SettingsError):
            Settings.load({"config_file": str(path)})
        path = self.write("list.yaml", "- a\n- b\n")
        with self.assertRaises(SettingsError):
            Settings.load({"config_file": str(path)})

    def testUnknownSourceFieldsAreRejected(self):
        with self.assertRaises(ValidationError):
            SettingsSource(config_dir="/etc")


class TestLookup(TestCase):
    """Tests for Settings lookups."""

    def setUp(self):
        self.environ = {}
        self.settings = Settings(
            {"db": {"host": "db.internal", "port": 5432, "tls": True, "ratio": 0.25}, "labels": {"team": "core", "tier": 1}},
            "app",
            self.environ,
        )

    def testEnvironmentWins(self):
        self.environ["APP_DB_HOST"] = "db.override"
        self.environ["APP_DB_PORT"] = "6000"
        self.assertEqual(self.settings.get_string("db.host"), "db.override")
        self.assertEqual(self.settings.get_int("db.port"), 6000)

    def testEnvironmentWithoutPrefix(self):
        settings = Settings({}, "", {"DB_HOST": "plain"})
        self.assertEqual(settings.get_string("db.host"), "plain")

    def testTypedGetters(self):
        self.assertEqual(self.settings.get_string("db.port"), "5432")
        self.assertEqual(self.settings.get_string("db.tls"), "true")
        self.assertIs(self.settings.get_bool("db.tls"), True)
        self.assertEqual(self.settings.get_float("db.ratio"), 0.25)
        self.assertEqual(self.settings.get_float("db.port"), 5432.0)

    def testZeroValues(self):
        self.assertEqual(self.settings.get_string("db.user"), "")
        self.assertEqual(self.settings.get_int("db.host"), 0)
        self.assertIs(self.settings.get_bool("db.user"), False)
        self.assertEqual(self.settings.get_float("missing"), 0.0)
        self.assertEqual(self.settings.get_mapping("db.host"), {})

    def testKeysAreCaseInsensitive(self):
        self.assertEqual(self.settings.get_string("DB.Host"), "db.internal")

    def testMappings(self):
        self.assertEqual(self.settings.get_mapping("labels"), {"team": "core", "tier": 1})
        self.assertEqual(self.settings.get_string_mapping("labels"), {"team": "core", "tier": "1"})

    def testBooleanStrings(self):
        self.environ["APP_DB_TLS"] = "false"
        self.assertIs(self.settings.get_bool("db.tls"), False)
        self.environ["APP_DB_TLS"] = "yes"
        self.assertIs(self.settings.get_bool("db.tls"), True)


class TestScopeHelpers(TestCase):
    """Tests for the scope integration helpers."""

    def setUp(self):
        self.settings = Settings({"db": {"host": "db.internal", "port": 5432, "tls": True, "ratio": 0.5}}, "", {})
        self.scope = with_settings(Scope(), self.settings)

    def testGetSettings(self):
        self.assertIs(get_settings(self.scope), self.settings)
        self.assertIsNone(get_settings(Scope()))

    def testStringOrSetting(self):
        self.assertEqual(string_or_setting("given", self.settings, "db.host"), "given")
        self.assertEqual(string_or_setting("", self.settings, "db.host"), "db.internal")
        self.assertEqual(string_or_setting("", None, "db.host"), "")

    def testScopeValuesBeforeSettings(self):
        scope = self.scope.with_value("host", "local").with_value("port", 1).with_value("tls", False)
        self.assertEqual(get_string_or_setting(scope, "host", "db.host"), "local")
        self.assertEqual(get_int_or_setting(scope, "port", "db.port"), 1)
        self.assertIs(get_bool_or_setting(scope, "tls", "db.tls"), False)
        self.assertEqual(get_float_or_setting(scope, "ratio", "db.ratio"), 0.5)

    def testWrongTypedScopeValuesFallThrough(self):
        scope = self.scope.with_value("port", "not a number").with_value("tls", 1)
        self.assertEqual(get_int_or_setting(scope, "port", "db.port"), 5432)
        self.assertIs(get_bool_or_setting(scope, "tls", "db.tls"), True)

    def testWithoutSettings(self):
        self.assertEqual(get_string_or_setting(Scope(), "host", "db.host"), "")
        self.assertEqual(get_int_or_setting(Scope(), "port", "db.port"), 0)

    def testStringFlagOrSetting(self):
        app = App("tool")
        app.string_flag("host", "Database host")
        app.action(lambda scope: string_flag_or_setting(scope, "host", "db.host"))
        self.assertEqual(app.run(self.scope), "db.internal")
        self.assertEqual(app.run(self.scope, "--host", "db.local"), "db.local")
        self.assertEqual(app.run(None), "")


@dataclass
class Options:
    host: str = "cli.local"
    port: int = 0


class TestMergeHelpers(TestCase):
    """Tests for field_or_setting, build_map and build_string_map."""

    def setUp(self):
        self.settings = Settings({"db": {"host": "db.internal", "port": 5432, "user": "admin"}}, "", {})

    def testFieldWinsOverSetting(self):
        self.assertEqual(field_or_setting(Options(), "host", self.settings, "db.host"), "cli.local")
        self.assertEqual(field_or_setting({"host": "map.local"}, "host", self.settings, "db.host"), "map.local")

    def testMissingFieldFallsBackToFirstKey(self):
        self.assertEqual(field_or_setting(Options(), "user", self.settings, "db.user", "db.host"), "admin")
        self.assertEqual(field_or_setting({}, "user", self.settings, "db.user"), "admin")
        self.assertEqual(field_or_setting(None, "user", self.settings, "db.user"), "admin")

    def testNothingFoundIsNone(self):
        self.assertIsNone(field_or_setting(Options(), "user", self.settings))
        self.assertIsNone(field_or_setting(Options(), "user", None, "db.user"))

    def testBuildMap(self):
        result = build_map(
            Options(port=8080),
            self.settings,
            ("host", "db.host"),
            ("port",),
            ("user", "db.user"),
            ("password",),
            (),
        )
        self.assertEqual(result, {"host": "cli.local", "port": 8080, "user": "admin"})

    def testBuildMapKeepsUnsetSettings(self):
        self.assertEqual(build_map({}, self.settings, ("user", "db.password")), {"user": None})

    def testBuildStringMapDropsOtherTypes(self):
        result = build_string_map(
            {"host": "map.local", "port": 8080},
            self.settings,
            "host",
            ("port", "db.port"),
            ("user", "db.user"),
        )
        self.assertEqual(result, {"host": "map.local", "user": "admin"})


if __name__ == "__main__":
    unittest.main()
