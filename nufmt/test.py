import io
import json
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from hypothesis import given, settings
from hypothesis import strategies as st

from . import format, format_stream, Indentation, Default, Custom, DEFAULT
from .engine import step, State, Mode, INITIAL, CHUNK_SIZE
from .verify import lexemes, verify
from . import cli


class TestFormat(unittest.TestCase):

    def cmp(self, src: str, expected: str, indentation: Indentation = DEFAULT) -> None:
        self.assertEqual(format(src, indentation), expected)

    def test_ignore_comments(self):
        self.cmp("# this is a comment", "# this is a comment")

    def test_echoes_primitive(self):
        self.cmp("1.35", "1.35")

    def test_ignore_whitespace_in_string(self):
        self.cmp('" hallo "', '" hallo "')

    def test_remove_leading_whitespace(self):
        self.cmp("   0", "0")

    def test_remove_all_whitespace(self):
        self.cmp("\t1\r\n", "1")
        self.cmp("a b", "ab")
        self.cmp("[\x0b1,\x0c2]", "[\n  1,\n  2\n]")
        self.cmp('"\x0b\x0c"', '"\x0b\x0c"')
        self.cmp("", "")

    def test_escaped_strings(self):
        self.cmp('  " hallo \\" " ', '" hallo \\" "')
        self.cmp('"a\\\\" , 1', '"a\\\\",\n1')

    def test_structure_in_strings(self):
        self.cmp('"{a:[1,2]}"', '"{a:[1,2]}"')
        self.cmp('["a,b"]', '[\n  "a,b"\n]')

    def test_simple_object(self):
        self.cmp('{"a":0}', '{\n  "a": 0\n}')

    def test_simple_array(self):
        self.cmp("[1,2,null]", "[\n  1,\n  2,\n  null\n]")

    def test_nested(self):
        self.cmp('{"a":[1,{"b":2}]}',
                 "{\n"
                 '  "a": [\n'
                 "    1,\n"
                 "    {\n"
                 '      "b": 2\n'
                 "    }\n"
                 "  ]\n"
                 "}")

    def test_array_of_object(self):
        expected = ("[\n"
                    "  {\n"
                    '    "a": 0\n'
                    "  },\n"
                    "  {},\n"
                    "  {\n"
                    '    "a": null\n'
                    "  }\n"
                    "]")
        self.cmp('[{"a": 0}, {}, {"a": null}]', expected)
        # Already formatted
        self.cmp(expected, expected)

    def test_empty_containers(self):
        self.cmp("{}", "{}")
        self.cmp("[]", "[]")
        self.cmp("{ }", "{}")
        self.cmp("[\n]", "[]")
        self.cmp("[{}]", "[\n  {}\n]")
        self.cmp("{a:[]}", "{\n  a: []\n}")

    def test_trailing_comma(self):
        self.cmp("[1,]", "[\n  1,\n]")
        self.cmp("[,]", "[\n  ,\n]")

    def test_comments(self):
        self.cmp("# {[,:\n1", "# {[,:\n1")
        self.cmp("[1,#c\n2]", "[\n  1,\n  #c\n2\n]")
        self.cmp("[#c\n]", "[\n  #c\n\n]")

    def test_unbalanced(self):
        self.cmp("]]", "\n]\n]")
        self.cmp("1]", "1\n]")
        self.cmp("[1", "[\n  1")
        self.cmp("}[1]", "\n}[\n  1\n]")

    def test_unterminated_string(self):
        self.cmp('["a, b', '[\n  "a, b')

    def test_non_ascii(self):
        self.cmp('{"ключ":"значение"}', '{\n  "ключ": "значение"\n}')
        self.cmp("[é,ü]", "[\n  é,\n  ü\n]")

    def test_custom_indentation(self):
        self.cmp("[1]", "[\n\t1\n]", Custom("\t"))
        self.cmp("[1]", "[\n1\n]", Custom(""))
        self.cmp('{"a":[1]}', '{\n--"a": [\n----1\n--]\n}', Custom("--"))

    def test_internal_error(self):
        with mock.patch("nufmt.format_stream", side_effect=OSError("boom")):
            with self.assertRaises(AssertionError):
                format("[1]")


class TestIndentation(unittest.TestCase):

    def test_render(self):
        self.assertEqual(Default().render(0), "")
        self.assertEqual(Default().render(3), "      ")
        self.assertEqual(Custom("ab").render(2), "abab")
        self.assertEqual(Custom("").render(5), "")

    def test_equality(self):
        self.assertEqual(DEFAULT, Default())
        self.assertEqual(Custom("\t"), Custom("\t"))
        self.assertNotEqual(Custom("\t"), DEFAULT)
        self.assertNotEqual(Custom("  "), DEFAULT)
        self.assertEqual(len({Custom("  "), DEFAULT}), 2)
        self.assertEqual(len({Custom("x"), Custom("x")}), 1)

    def test_blank(self):
        self.assertTrue(DEFAULT.is_blank())
        self.assertTrue(Custom("\t").is_blank())
        self.assertTrue(Custom("").is_blank())
        self.assertFalse(Custom("--").is_blank())


class TestStep(unittest.TestCase):

    def test_opener(self):
        state, out = step(INITIAL, ord("["))
        self.assertEqual(out, b"[")
        self.assertEqual(state, State(indent_level=1, pending_newline=True, pending_opener=True))

    def test_pending_newline(self):
        state, out = step(State(indent_level=1, pending_newline=True), ord("1"))
        self.assertEqual(out, b"\n  1")
        self.assertEqual(state, State(indent_level=1))

    def test_closer(self):
        state, out = step(State(indent_level=2), ord("}"))
        self.assertEqual(out, b"\n  }")
        self.assertEqual(state.indent_level, 1)
        # Right after a comma
        state, out = step(State(indent_level=1, pending_newline=True), ord("]"))
        self.assertEqual(out, b"\n]")
        # Right after its opener
        state, out = step(State(indent_level=1, pending_newline=True, pending_opener=True), ord("]"))
        self.assertEqual(out, b"]")
        self.assertEqual(state, INITIAL)

    def test_closer_saturates(self):
        state, out = step(INITIAL, ord("]"))
        self.assertEqual(out, b"\n]")
        self.assertEqual(state.indent_level, 0)

    def test_whitespace_keeps_state(self):
        before = State(indent_level=1, pending_newline=True, pending_opener=True)
        for byte in b" \t\n\r\x0b\x0c":
            self.assertEqual(step(before, byte), (before, b""))

    def test_colon_and_comma(self):
        self.assertEqual(step(INITIAL, ord(":")), (INITIAL, b": "))
        self.assertEqual(step(INITIAL, ord(",")), (State(pending_newline=True), b","))

    def test_string(self):
        state, out = step(INITIAL, ord('"'))
        self.assertEqual((state.mode, out), (Mode.IN_STRING, b'"'))
        state, out = step(state, ord("\\"))
        self.assertTrue(state.escape_pending)
        state, out = step(state, ord('"'))
        self.assertEqual(state, State(mode=Mode.IN_STRING))
        self.assertEqual(out, b'"')
        for byte in b" \n[,:#":
            self.assertEqual(step(state, byte), (state, bytes((byte,))))
        state, out = step(state, ord('"'))
        self.assertEqual(state, INITIAL)

    def test_comment(self):
        state, out = step(State(indent_level=1, pending_newline=True), ord("#"))
        self.assertEqual(out, b"\n  #")
        self.assertEqual(state, State(mode=Mode.IN_COMMENT, indent_level=1))
        for byte in b' "[,:\r':
            self.assertEqual(step(state, byte), (state, bytes((byte,))))
        state, out = step(state, ord("\n"))
        self.assertEqual(out, b"\n")
        self.assertEqual(state, State(indent_level=1))


class FailingStream(io.RawIOBase):

    def read(self, size=-1):
        raise OSError("read failed")

    def write(self, b):
        raise OSError("write failed")


class TestFormatStream(unittest.TestCase):

    def run_stream(self, data: bytes, indentation=DEFAULT) -> bytes:
        output = io.BytesIO()
        self.assertIsNone(format_stream(io.BytesIO(data), output, indentation))
        return output.getvalue()

    def test_bytes(self):
        self.assertEqual(self.run_stream(b'{"a":0}'), b'{\n  "a": 0\n}')

    def test_invalid_utf8_passes_through(self):
        self.assertEqual(self.run_stream(b"[\xff\xfe]"), b"[\n  \xff\xfe\n]")

    def test_state_spans_chunks(self):
        payload = b"x, " * CHUNK_SIZE
        data = b'["' + payload + b'",1]'
        self.assertEqual(self.run_stream(data), b'[\n  "' + payload + b'",\n  1\n]')

    def test_read_failure(self):
        with self.assertRaises(OSError):
            format_stream(FailingStream(), io.BytesIO())

    def test_write_failure(self):
        with self.assertRaises(OSError):
            format_stream(io.BytesIO(b"[1]"), FailingStream())

    def test_partial_output(self):
        output = io.BytesIO()

        class Source(io.RawIOBase):
            chunks = [b"[1,", None]

            def read(self, size=-1):
                chunk = self.chunks.pop(0)
                if chunk is None:
                    raise OSError("read failed")
                return chunk

        with self.assertRaises(OSError):
            format_stream(Source(), output)
        self.assertEqual(output.getvalue(), b"[\n  1,")

    def test_logs_unclosed_containers(self):
        with self.assertLogs("nufmt:engine", level="DEBUG") as logs:
            self.assertEqual(self.run_stream(b"[1"), b"[\n  1")
        self.assertIn("1 unclosed", "\n".join(logs.output))

    def test_logs_unclosed_string(self):
        with self.assertLogs("nufmt:engine", level="DEBUG") as logs:
            self.assertEqual(self.run_stream(b'"abc'), b'"abc')
        self.assertIn("inside a string", "\n".join(logs.output))


class TestVerify(unittest.TestCase):

    def test_lexemes(self):
        self.assertEqual(
            lexemes('a b ["x y"] #c\n'),
            [("atom", "ab"), ("punct", "["), ("string", '"x y"'),
             ("punct", "]"), ("comment", "#c")])
        self.assertEqual(lexemes(""), [])
        self.assertEqual(lexemes('"abc'), [("string", '"abc')])
        self.assertEqual(lexemes('"\\'), [("string", '"\\')])
        self.assertEqual(lexemes('"\\"#"'), [("string", '"\\"#"')])

    def test_verify(self):
        verify('{"a":0}', '{\n  "a": 0\n}')
        with self.assertRaises(ValueError):
            verify('{"a":0}', '{\n  "b": 0\n}')
        with self.assertRaises(ValueError):
            verify("[1]", "[1")


structural = st.text(alphabet='[]{},:"#\\ \n\tab1')


class TestProperties(unittest.TestCase):

    @given(st.text() | structural)
    @settings(max_examples=300)
    def test_idempotence(self, source):
        for indentation in (DEFAULT, Custom("\t")):
            once = format(source, indentation)
            self.assertEqual(format(once, indentation), once)

    @given(st.text() | structural)
    @settings(max_examples=300)
    def test_only_whitespace_changes(self, source):
        verify(source, format(source))

    @given(st.text())
    def test_string_content_preserved(self, text):
        literal = json.dumps(text, ensure_ascii=False)
        self.assertIn(literal, format("[" + literal + ",1]"))

    @given(st.text().map(lambda s: s.replace("\n", "")))
    def test_comment_content_preserved(self, text):
        comment = "# " + text + "\n"
        self.assertIn(comment, format("[1," + comment + "2]"))

    @given(st.text(alphabet="[]{},a \n"))
    @settings(max_examples=300)
    def test_depth_consistency(self, source):
        lines = format(source).split("\n")
        depth = 0
        for previous, line in zip(lines, lines[1:]):
            for k in previous:
                if k in "[{":
                    depth += 1
                elif k in "]}":
                    depth = max(depth - 1, 0)
            body = line.lstrip(" ")
            expected = depth
            if body[:1] in ("]", "}"):
                expected = max(depth - 1, 0)
            self.assertEqual(len(line) - len(body), 2 * expected)


class TestCLI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def path(self, name, content=None) -> str:
        p = os.path.join(self.tmp.name, name)
        if content is not None:
            with open(p, "wb") as f:
                f.write(content)
        return p

    def read(self, p) -> bytes:
        with open(p, "rb") as f:
            return f.read()

    def main(self, *argv) -> int:
        """Run the command line; return its exit code."""
        try:
            cli.main(list(argv))
        except SystemExit as e:
            return e.code
        return 0

    def test_format_file(self):
        src = self.path("in.nu", b"[1,2]")
        out = self.path("out.nu")
        with redirect_stderr(io.StringIO()):
            self.assertEqual(self.main("-o", out, src), 0)
        self.assertEqual(self.read(out), b"[\n  1,\n  2\n]")

    def test_indent_options(self):
        src = self.path("in.nu", b"[1]")
        out = self.path("out.nu")
        self.assertEqual(self.main("-t", "-o", out, src), 0)
        self.assertEqual(self.read(out), b"[\n\t1\n]")
        self.assertEqual(self.main("-i", "\\t\\t", "-o", out, src), 0)
        self.assertEqual(self.read(out), b"[\n\t\t1\n]")
        self.assertEqual(self.main("-i", "....", "-o", out, src), 0)
        self.assertEqual(self.read(out), b"[\n....1\n]")
        with redirect_stderr(io.StringIO()):
            self.assertEqual(self.main("-t", "-i", " ", src), 2)

    def test_check(self):
        messy = self.path("messy.nu", b"[1, 2]")
        clean = self.path("clean.nu", b"[\n  1,\n  2\n]")
        err = io.StringIO()
        with redirect_stderr(err):
            self.assertEqual(self.main("-c", messy), 1)
            self.assertEqual(self.main("-c", clean), 0)
        self.assertIn("would reformat", err.getvalue())

    def test_verify(self):
        src = self.path("in.nu", b'{"a":0}')
        out = self.path("out.nu")
        self.assertEqual(self.main("--verify", "-o", out, src), 0)
        self.assertEqual(self.read(out), b'{\n  "a": 0\n}')

    def test_verify_failure(self):
        src = self.path("in.nu", b'{"a":0}')
        out = self.path("out.nu")
        err = io.StringIO()
        with mock.patch("nufmt.cli.verify", side_effect=ValueError("changed")):
            with redirect_stderr(err):
                self.assertEqual(self.main("--verify", "-o", out, src), 2)
        self.assertIn("changed", err.getvalue())
        self.assertFalse(os.path.exists(out))

    def test_verify_needs_blank_unit(self):
        src = self.path("in.nu", b"[1]")
        with redirect_stderr(io.StringIO()):
            self.assertEqual(self.main("--verify", "-i", "xx", src), 2)

    def test_missing_file(self):
        err = io.StringIO()
        with redirect_stderr(err):
            self.assertEqual(self.main(self.path("missing.nu")), 1)
        self.assertIn("nufmt:", err.getvalue())

    def test_verbose(self):
        src = self.path("in.nu", b"[1]")
        out = self.path("out.nu")
        with mock.patch("nufmt.cli.logging.basicConfig") as basic_config:
            with self.assertLogs("nufmt:cli", level="DEBUG") as logs:
                self.assertEqual(self.main("-v", "-o", out, src), 0)
        self.assertEqual(basic_config.call_args.kwargs["level"], logging.DEBUG)
        self.assertIn("indentation: Default()", "\n".join(logs.output))

    def test_files_are_closed(self):
        src = self.path("in.nu", b"[1]")
        out = self.path("out.nu")
        opened = []

        def tracking_open(*args, **kwargs):
            f = open(*args, **kwargs)
            opened.append(f)
            return f

        with mock.patch("nufmt.cli.open", tracking_open, create=True):
            self.assertEqual(self.main("-o", out, src), 0)
            self.assertEqual(self.main("--verify", "-o", out, src), 0)
        self.assertEqual(len(opened), 4)
        self.assertTrue(all(f.closed for f in opened))
        self.assertEqual(self.read(out), b"[\n  1\n]")

    def test_version(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(self.main("--version"), 0)
        self.assertIn("nufmt v", out.getvalue())


if __name__ == '__main__':
    unittest.main()
