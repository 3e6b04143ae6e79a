"""Python language profile.

Top-level statements are found with the standard tokenizer, tracking
indentation depth through INDENT/DEDENT tokens, so strings, brackets and
line continuations never confuse the boundaries.
"""

import io
import tokenize
from dataclasses import dataclass, field
from typing import Optional

from gitbahn.split.errors import ChunkParseError
from gitbahn.split.models import ChunkCategory
from gitbahn.split.profiles.base import LanguageProfile, Unit

_SKIPPED = {tokenize.COMMENT, tokenize.NL, tokenize.ENCODING, tokenize.ENDMARKER}


@dataclass
class _Statement:
    start: int
    end: int
    head: list[tokenize.TokenInfo] = field(default_factory=list)

    @property
    def kind(self) -> str:
        first = self.head[0]
        if first.type == tokenize.STRING:
            return "string"
        if first.type == tokenize.OP and first.string == "@":
            return "decorator"
        if first.string in ("import", "from"):
            return "import"
        if first.string == "def":
            return "function"
        if first.string == "async" and len(self.head) > 1 and self.head[1].string == "def":
            return "function"
        if first.string == "class":
            return "class"
        return "other"

    @property
    def name(self) -> Optional[str]:
        names = [tok.string for tok in self.head if tok.type == tokenize.NAME]
        for keyword, position in (("def", 1), ("class", 1)):
            if keyword in names:
                index = names.index(keyword) + position
                if index < len(names):
                    return names[index]
        return None


def _statements(lines: list[str]) -> list[_Statement]:
    """Split source into top-level statements, bodies included.

    Raises:
        ChunkParseError: If the source cannot be tokenized.
    """
    readline = io.StringIO("".join(lines)).readline
    statements: list[_Statement] = []
    current: Optional[_Statement] = None
    level = 0
    at_line_start = True
    in_header = False

    try:
        for tok in tokenize.generate_tokens(readline):
            if tok.type == tokenize.INDENT:
                level += 1
                continue
            if tok.type == tokenize.DEDENT:
                level -= 1
                continue
            if tok.type in _SKIPPED:
                continue
            if tok.type == tokenize.NEWLINE:
                if current is not None:
                    current.end = max(current.end, tok.start[0])
                at_line_start = True
                in_header = False
                continue

            if at_line_start:
                at_line_start = False
                if level == 0:
                    current = _Statement(start=tok.start[0], end=tok.end[0])
                    statements.append(current)
                    in_header = True

            if current is not None:
                current.end = max(current.end, tok.end[0])
                if in_header and len(current.head) < 4:
                    current.head.append(tok)
    except (tokenize.TokenError, SyntaxError) as e:
        raise ChunkParseError(f"cannot tokenize Python source: {e}")

    return statements


class PythonProfile(LanguageProfile):
    """Chunks Python modules into imports, functions, classes and other code."""

    def locate_preamble(self, lines):
        statements = _statements(lines)
        end = 0
        for index, statement in enumerate(statements):
            if statement.kind == "import":
                end = statement.end
            elif statement.kind == "string" and index == 0:
                # Module docstring
                end = statement.end
            else:
                break
        if not end:
            return None
        return 1, end

    def locate_units(self, lines, after=0):
        units: list[Unit] = []
        decorator_start: Optional[int] = None
        decorator_end = after
        floor = after

        for statement in _statements(lines):
            if statement.start <= after:
                continue
            if statement.kind == "decorator":
                if decorator_start is None:
                    decorator_start = statement.start
                decorator_end = statement.end
                continue

            first = decorator_start if decorator_start is not None else statement.start
            lead = _attach_comments(lines, first, floor)

            if statement.kind == "function":
                units.append(Unit(f"fn {statement.name}", ChunkCategory.FUNCTION, statement.start, statement.end, lead))
            elif statement.kind == "class":
                units.append(Unit(f"class {statement.name}", ChunkCategory.TYPE_DECL, statement.start, statement.end, lead))
            else:
                units.append(Unit("code", ChunkCategory.OTHER, first, statement.end, lead))

            decorator_start = None
            floor = statement.end

        if decorator_start is not None:
            units.append(Unit("code", ChunkCategory.OTHER, decorator_start, decorator_end, decorator_start))

        return units


def _attach_comments(lines: list[str], start: int, floor: int) -> int:
    """Extend a unit upwards over comment lines directly above it."""
    line = start - 1
    while line > floor and lines[line - 1].lstrip().startswith("#"):
        line -= 1
    return line + 1
