"""Brace-delimited language profiles.

One profile class, parameterised by a BraceDialect per language family
(JavaScript/TypeScript, Java, Kotlin, C#, Scala, C/C++, Go, Rust, Swift,
PHP). Files are parsed with the dialect's tree-sitter grammar and the
top-level nodes of the syntax tree become the units; comments and
attributes directly above a declaration are attached to it.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Optional

from tree_sitter_language_pack import get_parser

from gitbahn.split.errors import ChunkParseError
from gitbahn.split.models import ChunkCategory
from gitbahn.split.profiles.base import LanguageProfile, Unit, is_blank

COMMENTS = frozenset({"comment", "line_comment", "block_comment", "multiline_comment", "doc_comment"})

# Keyword tokens that name the kind of a type declaration
TYPE_KEYWORDS = frozenset({
    "class", "interface", "struct", "enum", "trait", "impl", "type", "union",
    "record", "object", "namespace", "module", "protocol", "extension", "actor",
    "typealias", "mod", "delegate", "@interface",
})

IDENTIFIERS = frozenset({
    "identifier", "type_identifier", "field_identifier", "simple_identifier",
    "qualified_identifier", "destructor_name", "operator_name", "property_identifier",
    "name",
})

FUNCTION_VALUES = frozenset({"arrow_function", "function", "function_expression", "generator_function"})

INCLUDE_EXPRESSIONS = frozenset({
    "require_expression", "require_once_expression", "include_expression", "include_once_expression",
})


@dataclass(frozen=True)
class BraceDialect:
    """Syntax-tree facts for one language family.

    Attributes:
        name: Dialect name used in messages.
        grammar: tree-sitter-language-pack grammar name.
        preamble: Top-level node types that belong to the import/header block.
        types: Node types that declare a type.
        functions: Node types that declare a function.
        attributes: Standalone nodes that attach to the declaration below them.
        wrappers: Nodes (export, template, ...) whose inner declaration names the unit.
        containers: Nodes whose children are treated as top-level (include guards).
    """

    name: str
    grammar: str
    preamble: frozenset = frozenset()
    types: frozenset = frozenset()
    functions: frozenset = frozenset()
    attributes: frozenset = frozenset()
    wrappers: frozenset = frozenset()
    containers: frozenset = frozenset()


@dataclass(frozen=True)
class _Item:
    """A top-level node with its 1-based inclusive line span."""

    node: Any
    start: int
    end: int

    @property
    def kind(self) -> str:
        return self.node.type


def _text(node: Any) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", "replace")


def _rows(node: Any) -> tuple[int, int]:
    """1-based first and last line of a node."""
    start_row, _ = node.start_point
    end_row, end_column = node.end_point
    # Nodes that swallow their newline end at column 0 of the next row
    if end_column == 0 and end_row > start_row:
        end_row -= 1
    return start_row + 1, end_row + 1


def _declarator_value(node: Any) -> Optional[Any]:
    """Value of a declaration's single variable declarator, if any."""
    declarators = [c for c in node.named_children if c.type == "variable_declarator"]
    if len(declarators) != 1:
        return None
    return declarators[0].child_by_field_name("value")


def _name_of(node: Any) -> Optional[str]:
    name = node.child_by_field_name("name")
    if name is not None:
        return _text(name)

    declarator = node.child_by_field_name("declarator")
    while declarator is not None:
        if declarator.type in IDENTIFIERS:
            return _text(declarator)
        inner = declarator.child_by_field_name("declarator")
        if inner is None:
            break
        declarator = inner

    implemented = node.child_by_field_name("type")
    if implemented is not None:
        return _text(implemented)

    for child in node.named_children:
        if child.type in IDENTIFIERS:
            return _text(child)
        # Go's `type X struct` keeps the name on its type_spec
        if child.type in ("type_spec", "type_alias"):
            return _name_of(child)
    return None


def _keyword_of(node: Any) -> str:
    kind = node.child_by_field_name("declaration_kind")
    if kind is not None:
        return kind.type
    for child in node.children:
        if not child.is_named and child.type in TYPE_KEYWORDS:
            return child.type
    return "type"


def _damage(root: Any) -> Optional[Any]:
    """First missing closing brace in the tree, if any."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_missing and node.type == "}":
            return node
        stack.extend(child for child in reversed(node.children) if child.has_error)
    return None


class BraceProfile(LanguageProfile):
    """Chunks brace-delimited sources with a tree-sitter grammar."""

    def __init__(self, dialect: BraceDialect):
        self.dialect = dialect
        # Parsers are not thread-safe; chunk_files runs profiles in a pool
        self._local = threading.local()

    @property
    def parser(self):
        """Lazy-load one tree-sitter parser per thread."""
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = self._local.parser = get_parser(self.dialect.grammar)
        return parser

    def _items(self, lines: list[str]) -> list[_Item]:
        """Top-level items of the file, containers flattened.

        Raises:
            ChunkParseError: If a block is never closed or most of the file
                does not parse.
        """
        source = "".join(lines)
        cached = getattr(self._local, "cached", None)
        if cached is not None and cached[0] == source:
            return cached[1]

        tree = self.parser.parse(source.encode("utf-8"))
        root = tree.root_node
        if root.type == "ERROR":
            raise ChunkParseError(f"lines do not parse as {self.dialect.name}")
        items = [_Item(node, *_rows(node)) for node in self._flatten(root)]

        if root.has_error:
            missing = _damage(root)
            if missing is not None:
                raise ChunkParseError(f"unterminated block (missing '}}' at line {missing.start_point[0] + 1})")
            broken = set()
            for item in items:
                if item.kind == "ERROR":
                    broken.update(range(item.start, item.end + 1))
            code_lines = sum(1 for line in lines if not is_blank(line))
            if broken and len(broken) * 2 >= code_lines:
                raise ChunkParseError(f"{len(broken)} of {code_lines} lines do not parse as {self.dialect.name}")

        self._local.cached = (source, items)
        return items

    def _flatten(self, node: Any) -> list[Any]:
        skipped = [node.child_by_field_name(field) for field in ("name", "condition", "value")]
        nodes = []
        for child in node.named_children:
            if child in skipped and node.type in self.dialect.containers:
                continue
            if child.type in self.dialect.containers:
                nodes.extend(self._flatten(child))
            else:
                nodes.append(child)
        return nodes

    def _is_preamble(self, node: Any) -> bool:
        kind = node.type
        if kind in self.dialect.preamble:
            return True
        if kind == "export_statement":
            # export * from "./x" and export { a } from "./x"
            return node.child_by_field_name("declaration") is None and node.child_by_field_name("source") is not None
        if kind in ("lexical_declaration", "variable_declaration"):
            value = _declarator_value(node)
            return (
                value is not None
                and value.type == "call_expression"
                and _text(value.child_by_field_name("function")) == "require"
            )
        if kind == "expression_statement" and node.named_child_count:
            first = node.named_children[0]
            return first.type == "string" or first.type in INCLUDE_EXPRESSIONS
        if kind in ("mod_item", "namespace_definition"):
            # `mod x;` and `namespace App;` have no body
            return node.child_by_field_name("body") is None
        return False

    def _declaration(self, node: Any) -> Optional[tuple[ChunkCategory, str]]:
        kind = node.type
        if kind in self.dialect.functions:
            return ChunkCategory.FUNCTION, f"fn {_name_of(node) or 'anonymous'}"
        if kind in self.dialect.types:
            return ChunkCategory.TYPE_DECL, f"{_keyword_of(node)} {_name_of(node) or 'anonymous'}"
        if kind in ("lexical_declaration", "variable_declaration"):
            value = _declarator_value(node)
            if value is not None and value.type in FUNCTION_VALUES:
                declarator = value.parent
                return ChunkCategory.FUNCTION, f"fn {_name_of(declarator) or 'anonymous'}"
            return None
        if kind in self.dialect.wrappers:
            for child in reversed(node.named_children):
                found = self._declaration(child)
                if found:
                    return found
        return None

    def _is_lead(self, item: _Item) -> bool:
        return item.kind in COMMENTS or item.kind in self.dialect.attributes

    def locate_preamble(self, lines):
        end = 0
        for item in self._items(lines):
            if item.start <= end:
                end = max(end, item.end)
                continue
            if item.kind in COMMENTS:
                continue
            if not self._is_preamble(item.node):
                break
            end = item.end
        if not end:
            return None
        return 1, end

    def locate_units(self, lines, after=0):
        units: list[Unit] = []
        leads: list[_Item] = []
        floor = after

        for item in self._items(lines):
            if item.end <= floor:
                continue
            if item.start <= floor:
                # Shares a line with the previous unit
                if units:
                    units[-1] = replace(units[-1], end=max(units[-1].end, item.end))
                floor = max(floor, item.end)
                leads = []
                continue
            if self._is_lead(item):
                leads.append(item)
                continue

            lead = item.start
            for above in reversed(leads):
                if above.end < lead - 1 or above.start <= floor:
                    break
                lead = above.start
            leads = []

            declaration = self._declaration(item.node)
            if declaration:
                category, name = declaration
                units.append(Unit(name, category, item.start, item.end, lead))
            else:
                units.append(Unit("code", ChunkCategory.OTHER, item.start, item.end, lead))
            floor = item.end

        return units


_JS_TYPES = frozenset({
    "class_declaration", "abstract_class_declaration", "interface_declaration",
    "enum_declaration", "type_alias_declaration", "internal_module", "module",
})

JAVASCRIPT = BraceDialect(
    name="javascript",
    grammar="javascript",
    preamble=frozenset({"import_statement", "hash_bang_line"}),
    types=_JS_TYPES,
    functions=frozenset({"function_declaration", "generator_function_declaration", "function_signature"}),
    wrappers=frozenset({"export_statement", "ambient_declaration", "expression_statement"}),
)

TYPESCRIPT = replace(JAVASCRIPT, name="typescript", grammar="typescript")

TSX = replace(JAVASCRIPT, name="tsx", grammar="tsx")

JAVA = BraceDialect(
    name="java",
    grammar="java",
    preamble=frozenset({"package_declaration", "import_declaration"}),
    types=frozenset({
        "class_declaration", "interface_declaration", "enum_declaration",
        "record_declaration", "annotation_type_declaration",
    }),
    functions=frozenset({"method_declaration"}),
)

KOTLIN = BraceDialect(
    name="kotlin",
    grammar="kotlin",
    preamble=frozenset({"package_header", "import_list", "import_header", "file_annotation", "shebang_line"}),
    types=frozenset({"class_declaration", "object_declaration", "type_alias"}),
    functions=frozenset({"function_declaration"}),
)

CSHARP = BraceDialect(
    name="csharp",
    grammar="csharp",
    preamble=frozenset({"using_directive", "extern_alias_directive", "file_scoped_namespace_declaration"}),
    types=frozenset({
        "class_declaration", "struct_declaration", "interface_declaration", "enum_declaration",
        "record_declaration", "record_struct_declaration", "namespace_declaration",
        "delegate_declaration",
    }),
    functions=frozenset({"local_function_statement"}),
    wrappers=frozenset({"global_statement"}),
)

SCALA = BraceDialect(
    name="scala",
    grammar="scala",
    preamble=frozenset({"package_clause", "import_declaration"}),
    types=frozenset({"class_definition", "object_definition", "trait_definition", "enum_definition", "type_definition"}),
    functions=frozenset({"function_definition"}),
)

C_FAMILY = BraceDialect(
    name="c",
    grammar="c",
    preamble=frozenset({"preproc_include", "preproc_def", "preproc_call", "using_declaration"}),
    types=frozenset({
        "struct_specifier", "enum_specifier", "union_specifier", "class_specifier",
        "namespace_definition", "type_definition",
    }),
    functions=frozenset({"function_definition"}),
    wrappers=frozenset({"declaration", "template_declaration"}),
    containers=frozenset({"preproc_ifdef", "preproc_if", "preproc_else", "preproc_elif", "linkage_specification", "declaration_list"}),
)

CPP = replace(C_FAMILY, name="cpp", grammar="cpp")

GO = BraceDialect(
    name="go",
    grammar="go",
    preamble=frozenset({"package_clause", "import_declaration"}),
    types=frozenset({"type_declaration"}),
    functions=frozenset({"function_declaration", "method_declaration"}),
)

RUST = BraceDialect(
    name="rust",
    grammar="rust",
    preamble=frozenset({"use_declaration", "extern_crate_declaration", "inner_attribute_item"}),
    types=frozenset({"struct_item", "enum_item", "trait_item", "impl_item", "type_item", "union_item", "mod_item"}),
    functions=frozenset({"function_item"}),
    attributes=frozenset({"attribute_item"}),
)

SWIFT = BraceDialect(
    name="swift",
    grammar="swift",
    preamble=frozenset({"import_declaration"}),
    types=frozenset({"class_declaration", "protocol_declaration", "typealias_declaration"}),
    functions=frozenset({"function_declaration"}),
)

PHP = BraceDialect(
    name="php",
    grammar="php",
    preamble=frozenset({"php_tag", "namespace_use_declaration", "declare_statement"}),
    types=frozenset({
        "class_declaration", "interface_declaration", "trait_declaration",
        "enum_declaration", "namespace_definition",
    }),
    functions=frozenset({"function_definition"}),
)
