"""Tests for gitbahn.split.chunker and the language profiles."""

from conftest import make_file_change

from gitbahn.split.chunker import WHOLE_FILE, chunk_file, chunk_files, chunk_lines
from gitbahn.split.models import ChunkCategory, split_lines
from gitbahn.split.profiles import IDENTITY_PROFILE, Language, detect_language, get_profile


def _names(chunks):
    return [c.name for c in chunks]


def _assert_covers(chunks, total):
    """Chunks are contiguous and cover lines 1..total."""
    line = 1
    for chunk in chunks:
        assert chunk.start == line
        assert chunk.end >= chunk.start
        line = chunk.end + 1
    assert line == total + 1


class TestDetectLanguage:
    """Tests for detect_language."""

    def test_known_extensions(self):
        assert detect_language("a/b.py") == Language.PYTHON
        assert detect_language("web/app.tsx") == Language.TSX
        assert detect_language("web/api.ts") == Language.TYPESCRIPT
        assert detect_language("main.GO") == Language.GO

    def test_unknown_extension(self):
        assert detect_language("notes.txt") == Language.UNKNOWN
        assert detect_language("Makefile") == Language.UNKNOWN


class TestPythonChunking:
    """Tests for the Python profile."""

    def test_preamble_and_functions(self, utils_strings_source):
        lines = split_lines(utils_strings_source)
        chunks = chunk_lines(lines, get_profile(Language.PYTHON))

        assert _names(chunks) == ["imports", "fn slugify", "fn shout", "fn letters"]
        assert chunks[0].category == ChunkCategory.PREAMBLE
        assert (chunks[0].start, chunks[0].end) == (1, 4)
        assert (chunks[1].start, chunks[1].end) == (5, 8)
        _assert_covers(chunks, len(lines))

    def test_class_with_decorator_and_comment(self):
        source = (
            '"""Module docstring."""\n'
            "import dataclasses\n"
            "\n"
            "# The record type\n"
            "@dataclasses.dataclass\n"
            "class Record:\n"
            "    name: str\n"
            "\n"
            "    def greet(self):\n"
            "        return self.name\n"
            "\n"
            "CONSTANT = 3\n"
        )
        lines = split_lines(source)
        chunks = chunk_lines(lines, get_profile(Language.PYTHON))

        assert _names(chunks) == ["imports", "class Record", "code at line 12"]
        assert chunks[1].start == 4
        assert chunks[1].category == ChunkCategory.TYPE_DECL
        _assert_covers(chunks, len(lines))

    def test_multiline_string_does_not_split(self):
        source = (
            "def query():\n"
            "    return '''\n"
            "def not_a_function():\n"
            "'''\n"
        )
        chunks = chunk_lines(split_lines(source), get_profile(Language.PYTHON))

        assert _names(chunks) == ["fn query"]

    def test_syntax_error_falls_back_to_whole_file(self):
        change = make_file_change("broken.py", "def broken(:\n    x = (\n")

        result = chunk_file(change)

        assert _names(result.chunks) == [WHOLE_FILE]
        assert "Could not chunk broken.py" in result.warning


class TestBraceChunking:
    """Tests for brace-language profiles."""

    def test_javascript_imports_and_functions(self):
        source = (
            "import { a } from './a';\n"
            "import b from './b';\n"
            "\n"
            "export function first() {\n"
            "  const s = '}';\n"
            "  return a(s);\n"
            "}\n"
            "\n"
            "export const second = (x) => {\n"
            "  return b(x);\n"
            "};\n"
        )
        lines = split_lines(source)
        chunks = chunk_lines(lines, get_profile(Language.JAVASCRIPT))

        assert _names(chunks) == ["imports", "fn first", "fn second"]
        _assert_covers(chunks, len(lines))

    def test_go_types_and_funcs(self):
        source = (
            "package main\n"
            "\n"
            'import "fmt"\n'
            "\n"
            "type Point struct {\n"
            "\tX int\n"
            "}\n"
            "\n"
            "func (p Point) String() string {\n"
            '\treturn fmt.Sprint(p.X)\n'
            "}\n"
        )
        chunks = chunk_lines(split_lines(source), get_profile(Language.GO))

        assert _names(chunks) == ["imports", "type Point", "fn String"]

    def test_rust_attribute_attaches_to_item(self):
        source = (
            "use std::fmt;\n"
            "\n"
            "#[derive(Debug)]\n"
            "struct Unit;\n"
            "\n"
            "fn main() {\n"
            "    println!(\"{:?}\", Unit);\n"
            "}\n"
        )
        chunks = chunk_lines(split_lines(source), get_profile(Language.RUST))

        assert _names(chunks) == ["imports", "struct Unit", "fn main"]
        assert chunks[1].start == 3

    def test_regex_literal_with_brace_is_not_a_block(self):
        source = (
            "const CLOSE = /\\}/g;\n"
            "\n"
            "function strip(s) {\n"
            "  return s.replace(CLOSE, '');\n"
            "}\n"
            "\n"
            "function count(s) {\n"
            "  return (s.match(CLOSE) || []).length;\n"
            "}\n"
        )
        lines = split_lines(source)
        chunks = chunk_lines(lines, get_profile(Language.JAVASCRIPT))

        assert _names(chunks) == ["code at line 1", "fn strip", "fn count"]
        _assert_covers(chunks, len(lines))

    def test_java_doc_comment_attaches_to_class(self):
        source = (
            "package demo;\n"
            "\n"
            "import java.util.List;\n"
            "\n"
            "/**\n"
            " * Holds a list.\n"
            " */\n"
            "public class Box {\n"
            "  List<String> items;\n"
            "}\n"
        )
        chunks = chunk_lines(split_lines(source), get_profile(Language.JAVA))

        assert _names(chunks) == ["imports", "class Box"]
        assert chunks[1].start == 5

    def test_c_include_guard_contents_are_units(self):
        source = (
            "#ifndef POINT_H\n"
            "#define POINT_H\n"
            "\n"
            "struct point {\n"
            "    int x;\n"
            "};\n"
            "\n"
            "int norm(struct point p) {\n"
            "    return p.x;\n"
            "}\n"
            "\n"
            "#endif\n"
        )
        chunks = chunk_lines(split_lines(source), get_profile(Language.C))

        names = _names(chunks)
        assert "fn norm" in names
        assert any(name.startswith("struct") for name in names)

    def test_unparseable_source_falls_back(self):
        change = make_file_change("notes.js", "@@@ ### $$$\n%%% ^^^ &&&\n")

        result = chunk_file(change)

        assert _names(result.chunks) == [WHOLE_FILE]
        assert "do not parse" in result.warning

    def test_unbalanced_braces_fall_back(self):
        change = make_file_change("Main.java", "class Main {\n  void run() {\n}\n")

        result = chunk_file(change)

        assert _names(result.chunks) == [WHOLE_FILE]
        assert result.warning is not None


class TestChunkFile:
    """Tests for chunk_file and chunk_files."""

    def test_unknown_language_is_one_chunk(self):
        change = make_file_change("notes.txt", "one\ntwo\nthree\n")

        result = chunk_file(change)

        assert len(result.chunks) == 1
        assert (result.chunks[0].start, result.chunks[0].end) == (1, 3)
        assert result.warning is None

    def test_identity_profile_whole_file(self):
        chunks = chunk_lines(split_lines("a\nb\n"), IDENTITY_PROFILE)

        assert _names(chunks) == [WHOLE_FILE]

    def test_empty_file(self):
        chunks = chunk_lines([], IDENTITY_PROFILE)

        assert len(chunks) == 1

    def test_chunk_files_preserves_order(self, utils_strings_source):
        changes = [
            make_file_change("b.py", utils_strings_source),
            make_file_change("a.txt", "x\n"),
        ]

        results = chunk_files(changes, max_workers=2)

        assert list(results) == ["b.py", "a.txt"]
        assert len(results["b.py"].chunks) == 4
