from inspect import cleandoc
import subprocess
import tempfile
import unittest

from luantictl.plumbing.common import command, Result, State

from .plumbing import (collect_all, collect_failing, collect_pair, collect_unchanged, created,
                       default, success, success_value, unchanged)


class TestResult(unittest.TestCase):

    maxDiff = None

    def test_state_default(self):
        self.assertEqual(default().state, State.unchanged)

    def test_state_unchanged(self):
        self.assertEqual(unchanged().state, State.unchanged)

    def test_state_success(self):
        self.assertEqual(success().state, State.success)

    def test_state_parts_unchanged(self):
        self.assertEqual(collect_unchanged().state, State.unchanged)

    def test_state_parts_success(self):
        self.assertEqual(collect_pair().state, State.success)

    def test_state_parts_created(self):
        self.assertEqual(collect_all().state, State.created)

    def test_value_unset(self):
        with self.assertRaises(ValueError):
            success().value

    def test_value_set(self):
        self.assertEqual(success_value("test").value, "test")

    def test_value_collect_none(self):
        with self.assertRaises(ValueError):
            collect_pair().value

    def test_caller_inspect(self):
        self.assertEqual(default().caller, "tests.plumbing:default")

    def test_caller_custom(self):
        self.assertEqual(Result(caller=default).caller, "tests.plumbing:default")

    def test_truthy_unchanged(self):
        self.assertFalse(unchanged())

    def test_truthy_success(self):
        self.assertTrue(success())

    def test_truthy_created(self):
        self.assertTrue(created())

    def test_collect(self):
        result = collect_pair()
        self.assertEqual(result.parts[0].caller, "tests.plumbing:unchanged")
        self.assertEqual(result.parts[1].caller, "tests.plumbing:success")

    def test_collect_stops_on_error(self):
        after = []
        with self.assertRaises(RuntimeError):
            collect_failing(after)
        self.assertEqual(after, [])

    def test_str(self):
        self.assertEqual(str(collect_all()), cleandoc("""
        tests.plumbing:collect_all: created 'test'
            tests.plumbing:unchanged: unchanged
            tests.plumbing:success: success
            tests.plumbing:success_value: success 'test'
            tests.plumbing:created: created
        """))


class TestCommand(unittest.TestCase):

    def test_args(self):
        self.assertEqual(command(["echo", "left", "right"], output=True).stdout, b"left right\n")

    def test_input(self):
        self.assertEqual(command(["cat"], input_="input", output=True).stdout, b"input")

    def test_stdin(self):
        with tempfile.TemporaryFile() as source:
            source.write(b"streamed")
            source.seek(0)
            self.assertEqual(command(["cat"], output=True, stdin=source).stdout, b"streamed")

    def test_check(self):
        with self.assertRaises(subprocess.CalledProcessError):
            command(["false"])

    def test_no_check(self):
        self.assertEqual(command(["false"], check=False).returncode, 1)

    def test_env(self):
        proc = command(["sh", "-c", 'printf %s "$VALUE"'], output=True, env={"VALUE": "set"})
        self.assertEqual(proc.stdout, b"set")


if __name__ == "__main__":
    unittest.main()
