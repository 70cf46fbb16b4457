"""
Scopes module tests (layering and output helpers).

Scope
- Validate that scopes layer values without mutating the outer scope.
- Validate the reserved keys and their accessors.
- Validate printf/println/print_json/printj against a captured stream.

Conventions
- Test method names follow CamelCase per project convention.
"""
import io
import sys
import unittest
from unittest import TestCase

from treecli import (
    Scope,
    ScopeKey,
    print_json,
    printf,
    printj,
    println,
    prints_json,
    quiet,
    stdout,
    with_json,
    with_quiet,
    with_stdout,
)


class TestScope(TestCase):
    """Tests for the Scope type."""

    def testInnermostValueWins(self):
        outer = Scope().with_value("color", "red")
        inner = outer.with_value("color", "blue")
        self.assertEqual(outer.value("color"), "red")
        self.assertEqual(inner.value("color"), "blue")

    def testMissingKeys(self):
        scope = Scope().with_value("a", 1)
        self.assertIsNone(scope.value("b"))
        self.assertEqual(scope.value("b", 2), 2)
        self.assertIn("a", scope)
        self.assertNotIn("b", scope)
        self.assertNotIn("a", Scope())

    def testNoneIsAValue(self):
        scope = Scope().with_value("a", None)
        self.assertIn("a", scope)
        self.assertIsNone(scope.value("a", "fallback"))

    def testWithValues(self):
        scope = Scope().with_values({"a": 1, "b": 2})
        self.assertEqual((scope.value("a"), scope.value("b")), (1, 2))

    def testScopesAreImmutable(self):
        scope = Scope()
        with self.assertRaises(AttributeError):
            scope._value = 1

    def testReservedKeysDoNotCollideWithStrings(self):
        buffer = io.StringIO()
        scope = with_stdout(Scope(), buffer).with_value("stdout", "shadow")
        self.assertIs(stdout(scope), buffer)
        self.assertEqual(scope.value("stdout"), "shadow")
        self.assertIs(scope.value(ScopeKey.STDOUT), buffer)


class TestAccessors(TestCase):
    """Tests for the reserved-key accessors."""

    def testStdoutDefaultsToSysStdout(self):
        self.assertIs(stdout(Scope()), sys.stdout)

    def testToggles(self):
        scope = Scope()
        self.assertFalse(quiet(scope))
        self.assertFalse(prints_json(scope))
        self.assertTrue(quiet(with_quiet(scope)))
        self.assertTrue(prints_json(with_json(scope)))
        self.assertFalse(prints_json(with_json(with_json(scope), False)))


class TestOutput(TestCase):
    """Tests for the output helpers."""

    def setUp(self):
        self.buffer = io.StringIO()
        self.scope = with_stdout(Scope(), self.buffer)

    def testPrintf(self):
        written = printf(self.scope, "%s has %d items", "cart", 3)
        self.assertEqual(self.buffer.getvalue(), "cart has 3 items")
        self.assertEqual(written, len("cart has 3 items"))

    def testPrintfWithoutArgsIsVerbatim(self):
        printf(self.scope, "100%")
        self.assertEqual(self.buffer.getvalue(), "100%")

    def testPrintln(self):
        println(self.scope, "a", 1, None)
        self.assertEqual(self.buffer.getvalue(), "a 1 None\n")

    def testPrintJsonCompact(self):
        print_json(self.scope, {"a": [1, 2], "b": "é"})
        self.assertEqual(self.buffer.getvalue(), '{"a":[1,2],"b":"é"}\n')

    def testPrintJsonIndentAndPrefix(self):
        print_json(self.scope, {"a": 1}, 2, ">")
        self.assertEqual(self.buffer.getvalue(), '{\n>  "a": 1\n>}\n')

    def testPrintjFormats(self):
        printj(self.scope, "value=%s\n", 5)
        self.assertEqual(self.buffer.getvalue(), "value=5\n")

    def testPrintjJsonMode(self):
        printj(with_json(self.scope), "value=%s\n", {"a": 1})
        self.assertEqual(self.buffer.getvalue(), '{\n  "a": 1\n}\n')

    def testPrintjEmptyTemplateMeansJson(self):
        printj(self.scope, "", [1])
        self.assertEqual(self.buffer.getvalue(), "[\n  1\n]\n")

    def testPrintjQuiet(self):
        self.assertEqual(printj(with_quiet(with_json(self.scope)), "", {"a": 1}), 0)
        self.assertEqual(self.buffer.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
