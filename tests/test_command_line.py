from __future__ import annotations

import unittest

from sqlci.command_line import CommandLineBuilder, render_parameter


class RenderParameterTests(unittest.TestCase):
    def test_plain_parameter_is_trimmed_only(self) -> None:
        for raw in ["plain", "  -Flag", "C:\\path\\file.sql\t", "a=b"]:
            with self.subTest(raw=raw):
                self.assertEqual(render_parameter(raw), raw.strip())

    def test_parameter_with_space_is_wrapped(self) -> None:
        self.assertEqual(render_parameter(" value with space "), '"value with space"')

    def test_quotes_are_escaped_with_three_backslashes(self) -> None:
        self.assertEqual(render_parameter('a"b'), r'a\\\"b')
        self.assertEqual(render_parameter('""'), r'\\\"\\\"')

    def test_escaping_happens_before_wrapping(self) -> None:
        self.assertEqual(render_parameter('say "hi there"'), r'"say \\\"hi there\\\""')

    def test_whitespace_only_parameter_becomes_empty(self) -> None:
        self.assertEqual(render_parameter("   "), "")

    def test_tab_does_not_trigger_wrapping(self) -> None:
        self.assertEqual(render_parameter("a\tb"), "a\tb")


class CommandLineBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.builder = CommandLineBuilder()

    def test_prefix_without_parameters(self) -> None:
        command = self.builder.build("powershell.exe", "C:\\work\\Script.ps1", [])
        self.assertEqual(
            command,
            '"powershell.exe" -NonInteractive -ExecutionPolicy Bypass -File "C:\\work\\Script.ps1" -Verbose',
        )

    def test_parameters_rendered_in_order(self) -> None:
        command = self.builder.build(
            "powershell.exe",
            r"C:\work\Script.ps1",
            ["-Flag", "value with space", "plain"],
        )
        self.assertTrue(
            command.endswith(r'-File "C:\work\Script.ps1" -Verbose -Flag "value with space" plain'),
            command,
        )

    def test_interpreter_path_is_quoted(self) -> None:
        command = self.builder.build(r"C:\Program Files\PowerShell\7\pwsh.exe", "s.ps1", [])
        self.assertTrue(command.startswith(r'"C:\Program Files\PowerShell\7\pwsh.exe" -NonInteractive'))

    def test_whitespace_parameter_adds_bare_trailing_space(self) -> None:
        command = self.builder.build("ps", "s.ps1", ["-Switch", "  "])
        self.assertTrue(command.endswith("-Verbose -Switch "))

    def test_accepts_generators(self) -> None:
        command = self.builder.build("ps", "s.ps1", (p for p in ["-A", "1"]))
        self.assertTrue(command.endswith("-Verbose -A 1"))


if __name__ == "__main__":
    unittest.main()
