"""
Argument descriptor and binding tests.

Scope
- Validate descriptor construction, sanitization and value semantics.
- Validate the binding protocol: missing/wrong arguments, fail-fast, residual tokens.
- Validate parser resolution (bool special case, arbitrary callables, enums).

Conventions
- Test method names follow CamelCase per project convention.
"""
from __future__ import annotations

import enum
import typing
import unittest
from decimal import Decimal
from pathlib import Path
from unittest import TestCase

from clik import Argument, bind, parser
from clik import FaultCode, MissingArgumentError, WrongArgumentError


class Color(enum.Enum):
    RED = "red"
    BLUE = "blue"


class TestArgument(TestCase):
    """Descriptor construction and introspection."""

    def testFields(self):
        argument = Argument("n", int, 0, "how many")
        self.assertEqual(argument.name, "n")
        self.assertIs(argument.type, int)
        self.assertEqual(argument.position, 0)
        self.assertEqual(argument.descr, "how many")
        self.assertEqual(argument.typename, "int")

    def testDefaults(self):
        argument = Argument("path")
        self.assertIs(argument.type, str)
        self.assertEqual(argument.position, 0)
        self.assertIsNone(argument.descr)

    def testNameIsTrimmed(self):
        self.assertEqual(Argument("  n ").name, "n")

    def testValueSemantics(self):
        self.assertEqual(Argument("n", int, 0), Argument("n", int, 0))
        self.assertNotEqual(Argument("n", int, 0), Argument("n", int, 1))
        self.assertEqual(len({Argument("n", int, 0), Argument("n", int, 0)}), 1)

    def testReadOnly(self):
        argument = Argument("n", int, 0)
        with self.assertRaises(AttributeError):
            argument.name = "m"  # type: ignore[misc]

    def testReplace(self):
        argument = Argument("n", int, 0).__replace__(position=3)
        self.assertEqual(argument, Argument("n", int, 3))
        described = Argument("n", int, 0, "how many").__replace__(name="m")
        self.assertEqual(described, Argument("m", int, 0, "how many"))

    def testNoneDescriptionMeansUndescribed(self):
        self.assertEqual(Argument("n", int, 0, None), Argument("n", int, 0))
        self.assertIsNone(Argument("n", int, 0, None).descr)

    def testTypingConstructsRejected(self):
        for type in (typing.Optional[int], list[int], typing.Union[int, str]):
            with self.subTest(type=type):
                with self.assertRaises(TypeError):
                    Argument("n", type)

    def testRepr(self):
        self.assertEqual(
            repr(Argument("n", int, 0)),
            "argument(name='n', type=<class 'int'>, position=0, descr=None)",
        )

    def testInvalidMetadata(self):
        with self.assertRaises(TypeError):
            Argument(1)  # type: ignore[arg-type]
        with self.assertRaises(ValueError):
            Argument("   ")
        with self.assertRaises(TypeError):
            Argument("n", "int")  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            Argument("n", int, True)
        with self.assertRaises(ValueError):
            Argument("n", int, -1)
        with self.assertRaises(ValueError):
            Argument("n", int, 0, " ")


class TestParser(TestCase):
    """Parse-from-string resolution."""

    def testPlainTypesParseThemselves(self):
        self.assertIs(parser(int), int)
        self.assertIs(parser(Path), Path)

    def testBoolAcceptsOnlyLiterals(self):
        self.assertIs(parser(bool)("true"), True)
        self.assertIs(parser(bool)("false"), False)
        for token in ("True", "1", "yes", ""):
            with self.subTest(token=token):
                with self.assertRaises(ValueError):
                    parser(bool)(token)

    def testNonCallableRaises(self):
        with self.assertRaises(TypeError):
            parser(42)  # type: ignore[arg-type]


class TestBind(TestCase):
    """Binding residual tokens to typed values."""

    def testMissingArgument(self):
        with self.assertRaises(MissingArgumentError) as context:
            bind([Argument("n", int, 0)], [])
        fault = context.exception
        self.assertEqual(fault.name, "n")
        self.assertEqual(fault.position, 0)
        self.assertEqual(fault.type, "int")
        self.assertIs(fault.options["code"], FaultCode.MISSING_ARGUMENT)
        self.assertIn("first position", str(fault))

    def testWrongArgument(self):
        with self.assertRaises(WrongArgumentError) as context:
            bind([Argument("n", int, 0)], ["abc"])
        fault = context.exception
        self.assertEqual(fault.name, "n")
        self.assertEqual(fault.position, 0)
        self.assertEqual(fault.type, "int")
        self.assertIsInstance(fault.inner, ValueError)
        self.assertIs(fault.__cause__, fault.inner)
        self.assertIs(fault.options["code"], FaultCode.WRONG_ARGUMENT)

    def testBoundValue(self):
        self.assertEqual(bind([Argument("n", int, 0)], ["5"]), {"n": 5})

    def testSeveralTypes(self):
        arguments = [
            Argument("count", int, 0),
            Argument("ratio", float, 1),
            Argument("path", Path, 2),
            Argument("color", Color, 3),
            Argument("amount", Decimal, 4),
            Argument("force", bool, 5),
        ]
        self.assertEqual(
            bind(arguments, ["3", "0.5", "/tmp/x", "blue", "1.10", "true"]),
            {
                "count": 3,
                "ratio": 0.5,
                "path": Path("/tmp/x"),
                "color": Color.BLUE,
                "amount": Decimal("1.10"),
                "force": True,
            },
        )

    def testFailsFastOnFirstFault(self):
        arguments = [Argument("a", int, 0), Argument("b", int, 1), Argument("c", int, 2)]
        with self.assertRaises(WrongArgumentError) as context:
            bind(arguments, ["1", "x", "y"])
        self.assertEqual(context.exception.name, "b")
        self.assertEqual(context.exception.position, 1)

    def testMissingAfterValidOnes(self):
        arguments = [Argument("a", int, 0), Argument("b", str, 1)]
        with self.assertRaises(MissingArgumentError) as context:
            bind(arguments, ["1"])
        self.assertEqual(context.exception.name, "b")
        self.assertEqual(context.exception.position, 1)
        self.assertEqual(context.exception.type, "str")
        self.assertIn("second position", str(context.exception))

    def testExtraTokensAreIgnored(self):
        self.assertEqual(bind([Argument("a", str, 0)], ["x", "y", "z"]), {"a": "x"})

    def testNoArguments(self):
        self.assertEqual(bind([], ["anything"]), {})

    def testCustomParserFunction(self):
        def pair(token):
            left, right = token.split(",")
            return int(left), int(right)

        self.assertEqual(bind([Argument("p", pair, 0)], ["1,2"]), {"p": (1, 2)})
        with self.assertRaises(WrongArgumentError) as context:
            bind([Argument("p", pair, 0)], ["1"])
        self.assertEqual(context.exception.type, "pair")

    def testDescriptionShowsInHint(self):
        with self.assertRaises(MissingArgumentError) as context:
            bind([Argument("n", int, 0, "how many")], [])
        self.assertIn("how many", context.exception.options["hint"])

    def testPositionsMustBeContiguous(self):
        with self.assertRaises(ValueError):
            bind([Argument("a", int, 1)], ["1", "2"])
        with self.assertRaises(ValueError):
            bind([Argument("a", int, 0), Argument("b", int, 2)], ["1", "2", "3"])

    def testDuplicatedNamesRaise(self):
        with self.assertRaises(ValueError):
            bind([Argument("a", int, 0), Argument("a", int, 1)], ["1", "2"])

    def testInvalidInputs(self):
        with self.assertRaises(TypeError):
            bind([("n", int, 0)], ["1"])  # type: ignore[list-item]
        with self.assertRaises(TypeError):
            bind([Argument("n", int, 0)], [1])  # type: ignore[list-item]


if __name__ == "__main__":
    unittest.main()
