"""
Commands module behavioral tests (tree, registration, parsing, dispatch).

Scope
- Validate parent traversal (find_deepest_parent) and program/command composition.
- Validate fail-fast registration (names, paths, duplicated options).
- Validate option parsing results and friendly faults.
- Validate dispatch through Program.run/invoke, including help output and shell mode.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (program, Program, Command, invoke, faults).
"""

from __future__ import annotations

import contextlib
import io
import sys
import unittest
from unittest import TestCase, mock

from argroute import Command, Program, program, invoke, find_deepest_parent, iter_commands
from argroute.faults import (
    FaultCode,
    UnknownCommandError,
    MissingCommandError,
    UnknownOptionError,
    FlagAssignmentError,
    DuplicatedOptionError,
    OptionValueRequiredError,
    InvalidNumberError,
    EmptyOptionValueWarning,
)


def noop(arguments, options):
    pass


def echo(arguments, options):
    return arguments, dict(options)


class TestFindDeepestParent(TestCase):
    """Behavioral tests for parent traversal."""

    def testReturnsProgramWithoutParent(self):
        cli = program("cli")
        self.assertIs(find_deepest_parent(cli), cli)

    def testReturnsParentOfChild(self):
        cli = program("cli")
        child = cli.program("child")
        self.assertIs(find_deepest_parent(child), cli)

    def testReturnsRootOfGrandchild(self):
        cli = program("cli")
        grandchild = cli.program("child").program("grandchild")
        self.assertIs(find_deepest_parent(grandchild), cli)

    def testIsIdempotent(self):
        cli = program("cli")
        node = cli.program("a").program("b").program("c")
        self.assertIs(find_deepest_parent(find_deepest_parent(node)), find_deepest_parent(node))

    def testCommandsReachTheirRoot(self):
        cli = program("cli")
        command = cli.program("child").command("test", noop)
        self.assertIs(find_deepest_parent(command), cli)
        self.assertIs(command.root, cli)

    def testFreeStandingCommandIsItsOwnRoot(self):
        command = Command("test", noop, path=["test"])
        self.assertIs(find_deepest_parent(command), command)


class TestRegistration(TestCase):
    """Behavioral tests for program/command composition."""

    def testProgramIsFluentAndLinked(self):
        cli = program("cli")
        child = cli.program("child")
        self.assertIsInstance(child, Program)
        self.assertIs(child.parent, cli)
        self.assertIsNone(cli.parent)
        self.assertEqual(cli.programs, (child,))

    def testRoutes(self):
        cli = program("cli")
        grandchild = cli.program("child").program("grandchild")
        self.assertEqual(cli.route, ())
        self.assertEqual(grandchild.route, ("child", "grandchild"))

    def testCommandPathMirrorsTree(self):
        cli = program("cli")
        self.assertEqual(cli.command("test", noop).path, ("test",))
        self.assertEqual(cli.program("test1").command("test", noop).path, ("test1", "test"))

    def testCommandIsRegisteredOnce(self):
        cli = program("cli")
        command = cli.command("test", noop)
        self.assertEqual(cli.commands, (command,))
        self.assertIs(command.parent, cli)

    def testRegistryIsReadOnly(self):
        cli = program("cli")
        cli.command("test", noop)
        self.assertIsInstance(cli.commands, tuple)
        with self.assertRaises(AttributeError):
            cli.commands = ()

    def testDecoratorRegistration(self):
        cli = program("cli")

        @cli.command("build", options=[{"name": "verbose"}])
        def build(arguments, options):
            pass

        self.assertIsInstance(build, Command)
        self.assertIs(cli.commands[0], build)
        self.assertEqual(build.options[0].name, "verbose")

    def testSameNameOnDifferentProgramsIsAllowed(self):
        cli = program("cli")
        cli.command("test", noop)
        cli.program("test1").command("test", noop)
        self.assertEqual([command.path for command in iter_commands(cli)], [("test",), ("test1", "test")])

    def testDuplicatedCommandNameRejected(self):
        cli = program("cli")
        cli.command("test", noop)
        with self.assertRaises(ValueError):
            cli.command("test", noop)

    def testDuplicatedProgramNameRejected(self):
        cli = program("cli")
        cli.program("child")
        with self.assertRaises(ValueError):
            cli.program("child")

    def testDuplicatedOptionKeyRejected(self):
        cli = program("cli")
        with self.assertRaises(ValueError):
            cli.command("test", noop, options=[{"name": "test", "aliases": ["t"]}, {"name": "tag", "aliases": ["t"]}])
        with self.assertRaises(ValueError):
            cli.command("test", noop, options=[{"name": "test"}, {"name": "other", "aliases": ["test"]}])
        self.assertEqual(cli.commands, ())

    def testSameSpecTwiceRejected(self):
        spec = {"name": "test"}
        with self.assertRaises(ValueError):
            Command("test", noop, [spec, spec], path=["test"])

    def testOptionsMustBeIterable(self):
        with self.assertRaises(TypeError):
            Command("test", noop, {"name": "test"}, path=["test"])

    def testActionMustBeCallable(self):
        with self.assertRaises(TypeError):
            program("cli").command("test", "not callable")

    def testNamesCannotLookLikeOptions(self):
        with self.assertRaises(ValueError):
            program("cli").command("-test", noop)
        with self.assertRaises(ValueError):
            program("cli").program("two words")
        with self.assertRaises(ValueError):
            program("")

    def testPathFromAnyIterableOfStrings(self):
        self.assertEqual(Command("test", noop, path=iter(["ops", "test"])).path, ("ops", "test"))
        with self.assertRaises(TypeError):
            Command("test", noop, path=("ops", 1, "test"))

    def testPathMustEndWithName(self):
        with self.assertRaises(ValueError):
            Command("test", noop, path=["other"])
        with self.assertRaises(ValueError):
            Command("test", noop, path=[])
        with self.assertRaises(TypeError):
            Command("test", noop, path="test")

    def testPathMustAgreeWithProgram(self):
        child = program("cli").program("child")
        self.assertEqual(Command("test", noop, path=["child", "test"], parent=child).path, ("child", "test"))
        with self.assertRaises(ValueError):
            Command("other", noop, path=["other"], parent=child)

    def testParentMustBeProgram(self):
        with self.assertRaises(TypeError):
            Program("child", "cli")

    def testRuntimeFlagsAreInherited(self):
        cli = program("cli", shell=True, fancy=True)
        child = cli.program("child")
        quiet = cli.program("quiet", shell=False)
        self.assertTrue(child.shell and child.fancy)
        self.assertFalse(child.colorful)
        self.assertFalse(quiet.shell)
        self.assertTrue(child.command("test", noop).shell)

    def testIterCommandsOrder(self):
        cli = program("cli")
        cli.command("a", noop)
        child = cli.program("child")
        child.command("b", noop)
        child.program("grandchild").command("c", noop)
        cli.command("d", noop)
        self.assertEqual([command.name for command in iter_commands(cli)], ["a", "d", "b", "c"])
        self.assertEqual([command.name for command in iter_commands(child)], ["b", "c"])

    def testRepresentationsDoNotRecurse(self):
        cli = program("cli")
        cli.program("child").command("test", noop)
        self.assertTrue(repr(cli).startswith("program(name='cli'"))
        self.assertIn("command(name='test'", repr(cli))


class TestParsing(TestCase):
    """Behavioral tests for Command.parse."""

    def setUp(self):
        self.command = Command("build", noop, [
            {"name": "verbose", "aliases": ["v"], "type": "boolean"},
            {"name": "output", "aliases": ["o"], "type": "string"},
            {"name": "jobs", "aliases": ["j"], "type": "number"},
        ], path=["build"])

    def testDefaults(self):
        arguments, options = self.command.parse([])
        self.assertEqual(arguments, ())
        self.assertEqual(dict(options), {"verbose": False, "output": None, "jobs": None})
        self.assertEqual(list(options), ["verbose", "output", "jobs"])

    def testMixedTokens(self):
        arguments, options = self.command.parse(["--verbose", "src", "-o", "dist", "--jobs=4", "lib"])
        self.assertEqual(arguments, ("src", "lib"))
        self.assertEqual(dict(options), {"verbose": True, "output": "dist", "jobs": 4})

    def testOptionsAreReadOnly(self):
        _, options = self.command.parse([])
        with self.assertRaises(TypeError):
            options["verbose"] = True

    def testNumbers(self):
        self.assertEqual(self.command.parse(["--jobs", "-3"])[1]["jobs"], -3)
        self.assertEqual(self.command.parse(["-j=1.5"])[1]["jobs"], 1.5)

    def testEndOfOptions(self):
        arguments, options = self.command.parse(["a", "--", "--verbose", "-o"])
        self.assertEqual(arguments, ("a", "--verbose", "-o"))
        self.assertFalse(options["verbose"])

    def testUnknownOption(self):
        with self.assertRaises(UnknownOptionError) as context:
            self.command.parse(["src", "--verbos"])
        fault = context.exception
        self.assertIn("second position", str(fault))
        self.assertIn("--verbose", fault.options["suggestions"])
        self.assertIs(fault.options["code"], FaultCode.UNKNOWN_OPTION)
        self.assertIs(fault.options["tool"], self.command)

    def testDuplicatedOption(self):
        with self.assertRaises(DuplicatedOptionError):
            self.command.parse(["--verbose", "-v"])

    def testFlagAssignment(self):
        with self.assertRaises(FlagAssignmentError):
            self.command.parse(["--verbose=yes"])

    def testMissingValueAtEnd(self):
        with self.assertRaises(OptionValueRequiredError):
            self.command.parse(["--output"])

    def testMissingValueBeforeOption(self):
        with self.assertRaises(OptionValueRequiredError):
            self.command.parse(["--output", "--verbose"])

    def testMissingValueBeforeEndOfOptions(self):
        with self.assertRaises(OptionValueRequiredError):
            self.command.parse(["--output", "--", "x"])

    def testNegativeNumberNotAcceptedAsString(self):
        with self.assertRaises(OptionValueRequiredError):
            self.command.parse(["--output", "-3"])

    def testInvalidNumber(self):
        with self.assertRaises(InvalidNumberError) as context:
            self.command.parse(["a", "b", "--jobs", "many"])
        self.assertIn("third position", str(context.exception))

    def testEmptyInlineValueWarns(self):
        with self.assertWarns(EmptyOptionValueWarning):
            _, options = self.command.parse(["--output="])
        self.assertEqual(options["output"], "")


class TestDispatch(TestCase):
    """Behavioral tests for Program.run, Command.run and invoke."""

    def setUp(self):
        self.cli = program("cli")
        self.shallow = self.cli.command("test", lambda arguments, options: "shallow")
        self.child = self.cli.program("test1")
        self.nested = self.child.command("test", lambda arguments, options: ("nested", arguments, dict(options)), options=[
            {"name": "test", "aliases": ["t"], "type": "boolean"},
        ])
        self.build = self.cli.command("build", echo, options=[{"name": "output", "aliases": ["o"], "type": "string"}])

    def testOptionMatchSelectsNestedCommand(self):
        self.assertEqual(self.cli.run("test --test"), ("nested", (), {"test": True}))

    def testLongestPathWithoutOptions(self):
        self.assertEqual(self.cli.run("test")[0], "nested")

    def testFullPathWithArguments(self):
        self.assertEqual(self.cli.run("test1 test -t x"), ("nested", ("x",), {"test": True}))

    def testTopLevelCommand(self):
        self.assertEqual(self.cli.run(["build", "src", "-o", "dist"]), (("src",), {"output": "dist"}))

    def testIterablePromptIsTrimmed(self):
        self.assertEqual(self.cli.run([" build ", "", "src"]), (("src",), {"output": None}))

    def testArgvPrompt(self):
        with mock.patch.object(sys, "argv", ["cli", "build", "x"]):
            self.assertEqual(self.cli.run(), (("x",), {"output": None}))

    def testUnknownCommand(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.cli.run("buidl")
        self.assertIn("build", context.exception.options["suggestions"])
        self.assertIs(context.exception.options["tool"], self.cli)

    def testMissingCommand(self):
        with self.assertRaises(MissingCommandError):
            self.cli.run("--verbose build")
        with self.assertRaises(MissingCommandError):
            self.cli.run("-- --help")

    def testMissingCommandIsAnUnknownCommand(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.cli.run("--verbose")
        self.assertIs(context.exception.options["code"], FaultCode.MISSING_COMMAND)

    def testHelpAfterLeadingOption(self):
        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            self.assertIsNone(self.cli.run("--verbose --help"))
        self.assertTrue(stdout.getvalue().startswith("Usage: cli <command> [args]\n"))

    def testSubProgramRoutePrintsItsHelp(self):
        for prompt in ("test1", "test1 --help", ["test1", "-h"]):
            with contextlib.redirect_stdout(io.StringIO()) as stdout:
                self.assertIsNone(self.cli.run(prompt))
            self.assertEqual(stdout.getvalue(), "Usage: cli test1 <command> [args]\nCommands:\n    test1 test\n")

    def testUnknownCommandBelowSubProgram(self):
        with self.assertRaises(UnknownCommandError):
            self.cli.run("test1 nope")

    def testOptionPositionsCountTheRoute(self):
        with self.assertRaises(UnknownOptionError) as context:
            self.cli.run("test1 test --nope")
        self.assertIn("third position", str(context.exception))

    def testProgramHelp(self):
        for prompt in ([], "--help", "-h"):
            with contextlib.redirect_stdout(io.StringIO()) as stdout:
                self.assertIsNone(self.cli.run(prompt))
            self.assertIn("Usage: cli <command> [args]", stdout.getvalue())
            self.assertIn("test1 test", stdout.getvalue())

    def testCommandHelp(self):
        called = []
        self.cli.command("deploy", lambda arguments, options: called.append(True), options=[
            {"name": "force", "aliases": ["f"], "description": "skip checks"},
        ])
        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            self.assertIsNone(self.cli.run("deploy --help"))
        self.assertIn("Usage: deploy [args]", stdout.getvalue())
        self.assertIn("--force, -f", stdout.getvalue())
        self.assertFalse(called)

    def testDeclaredHelpOptionIsParsed(self):
        self.cli.command("man", echo, options=[{"name": "help", "aliases": ["h"]}])
        self.assertEqual(self.cli.run("man -h"), ((), {"help": True}))

    def testHelpAfterEndOfOptionsIsAnArgument(self):
        self.assertEqual(self.cli.run("build -- --help"), (("--help",), {"output": None}))

    def testCommandRun(self):
        self.assertEqual(self.build.run("a --output=b"), (("a",), {"output": "b"}))

    def testBadPrompts(self):
        with self.assertRaises(TypeError):
            self.cli.run(42)
        with self.assertRaises(TypeError):
            self.cli.run(["build", 1])

    def testInvoke(self):
        self.assertEqual(invoke(self.cli, "build x"), (("x",), {"output": None}))
        self.assertEqual(invoke(self.build, "-o y"), ((), {"output": "y"}))
        with self.assertRaises(TypeError):
            invoke(object(), "build")

    def testShellModeExits(self):
        cli = program("cli", shell=True)
        cli.command("build", noop)
        with contextlib.redirect_stderr(io.StringIO()) as stderr:
            with self.assertRaises(SystemExit) as context:
                cli.run("buidl")
        self.assertEqual(context.exception.code, 1)
        self.assertIn("unknown command 'buidl' at first position", stderr.getvalue())
        self.assertIn("Usage: cli <command> [args]", stderr.getvalue())

    def testShellModeWarningsAreRendered(self):
        cli = program("cli", shell=True)
        cli.command("build", echo, options=[{"name": "output", "type": "string"}])
        with contextlib.redirect_stderr(io.StringIO()) as stderr:
            self.assertEqual(cli.run("build --output="), ((), {"output": ""}))
        self.assertIn("empty inline value", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
