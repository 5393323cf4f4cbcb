"""
Tests for TreeSitterExtractor — content bytes to per-file Symbol Tables.

Covers every built-in language plus partial parses, idempotence,
duplicate names and the structural invariants of a table.
"""

import pytest

from quarry.core.errors import ParseError, UnsupportedLanguage
from quarry.core.parsing import TreeSitterExtractor, default_registry
from quarry.core.symbols import SymbolKind
from tests.samples import A_PY, SHAPES_RS, TYPES_TS, WIDGET_JS, source_text


def extract(extractor, path, text):
    return extractor.extract(path, text.encode("utf-8"), digest="d")


def assert_well_formed(table):
    """Nested spans inside their parent; top-level spans never overlap."""
    for symbol in table:
        if symbol.parent is not None:
            parent = table.get(symbol.parent)
            assert parent is not None
            assert parent.span.contains(symbol.span), symbol.qualified_name
    top = sorted(table.top_level(), key=lambda s: (s.span.start_line, s.span.start_column))
    for before, after in zip(top, top[1:]):
        assert (before.span.end_line, before.span.end_column) <= (after.span.start_line, after.span.start_column)


# =============================================================================
# Python
# =============================================================================

class TestPythonExtraction:
    """Test symbol extraction from Python sources."""

    def test_symbols_in_source_order(self, extractor):
        """All definitions are found, qualified by their class."""
        table = extract(extractor, "a.py", A_PY)

        assert table.qualified_names() == [
            "VERSION",
            "foo",
            "Greeter",
            "Greeter.greeting",
            "Greeter.greet",
            "Greeter._format",
            "unused",
        ]

    def test_function_span_and_kind(self, extractor):
        """Spans are 1-based and cover the whole definition."""
        table = extract(extractor, "a.py", A_PY)
        foo = table.get("foo")

        assert foo.kind == SymbolKind.FUNCTION
        assert foo.span.start_line == 10
        assert foo.span.end_line == 15
        assert foo.signature == "def foo(x)"
        assert foo.docstring == "Add one to the input."
        assert foo.parent is None

    def test_methods_and_parents(self, extractor):
        """Functions inside classes are methods with a parent back-reference."""
        table = extract(extractor, "a.py", A_PY)
        greet = table.get("Greeter.greet")

        assert greet.kind == SymbolKind.METHOD
        assert greet.parent == "Greeter"
        assert greet.depth == 1
        assert greet.docstring == "Greet someone."
        assert table.get("Greeter").docstring == "Says hello."

    def test_constants_and_visibility(self, extractor):
        """UPPER_CASE names are constants; underscore names are private."""
        table = extract(extractor, "a.py", A_PY)

        assert table.get("VERSION").kind == SymbolKind.CONSTANT
        assert table.get("Greeter.greeting").kind == SymbolKind.VARIABLE
        assert table.get("Greeter._format").visibility == "private"
        assert table.get("Greeter.greet").visibility == "public"

    def test_dunder_is_public(self, extractor):
        """Dunder methods are public despite the underscore."""
        table = extract(extractor, "m.py", "class A:\n    def __init__(self):\n        pass\n")

        assert table.get("A.__init__").visibility == "public"

    def test_decorated_definition_span(self, extractor):
        """Decorators belong to the symbol's span."""
        text = source_text('''
            import functools


            @functools.lru_cache
            def cached():
                return 1
        ''')
        table = extract(extractor, "m.py", text)
        cached = table.get("cached")

        assert cached.span.start_line == 4
        assert cached.name_line == 5

    def test_nested_functions_are_not_extracted(self, extractor):
        """Function bodies are leaves."""
        text = "def outer():\n    def inner():\n        pass\n    return inner\n"
        table = extract(extractor, "m.py", text)

        assert table.qualified_names() == ["outer"]

    def test_duplicate_names_get_markers(self, extractor):
        """Property getter and setter keep distinct qualified paths."""
        text = source_text('''
            class Box:
                @property
                def size(self):
                    return self._size

                @size.setter
                def size(self, value):
                    self._size = value
        ''')
        table = extract(extractor, "m.py", text)

        assert "Box.size" in table
        assert "Box.size#2" in table
        assert table.get("Box.size#2").name == "size"

    def test_structure_is_well_formed(self, extractor):
        """Span containment and non-overlap hold."""
        assert_well_formed(extract(extractor, "a.py", A_PY))


# =============================================================================
# Rust
# =============================================================================

class TestRustExtraction:
    """Test symbol extraction from Rust sources."""

    def test_items_and_impl_methods(self, extractor):
        """impl blocks qualify their methods with the type name."""
        table = extract(extractor, "lib/shapes.rs", SHAPES_RS)
        names = table.qualified_names()

        for expected in ("Point", "Point.x", "Point.y", "Point.new", "Point.norm",
                         "Point.scaled", "Shape", "Shape.area", "ORIGIN_NAME", "helper"):
            assert expected in names

    def test_kinds(self, extractor):
        """Structs, traits, methods and constants are classified."""
        table = extract(extractor, "lib/shapes.rs", SHAPES_RS)

        assert table.get("Point").kind == SymbolKind.STRUCT
        assert table.get("Shape").kind == SymbolKind.INTERFACE
        assert table.get("Point.new").kind == SymbolKind.METHOD
        assert table.get("Shape.area").kind == SymbolKind.METHOD
        assert table.get("ORIGIN_NAME").kind == SymbolKind.CONSTANT
        assert table.get("helper").kind == SymbolKind.FUNCTION

    def test_visibility_from_pub(self, extractor):
        """pub items are public, others private; trait members follow the trait."""
        table = extract(extractor, "lib/shapes.rs", SHAPES_RS)

        assert table.get("Point").visibility == "public"
        assert table.get("Point.x").visibility == "public"
        assert table.get("Point.y").visibility == "private"
        assert table.get("Point.norm").visibility == "private"
        assert table.get("helper").visibility == "private"
        assert table.get("Shape.area").visibility == "public"

    def test_doc_comments(self, extractor):
        """/// comments above the item (past attributes) are its doc."""
        table = extract(extractor, "lib/shapes.rs", SHAPES_RS)

        assert table.get("Point").docstring == "A point in the plane."
        assert table.get("Point.new").docstring == "Create a point."
        assert table.get("helper").docstring is None

    def test_signature_excludes_body(self, extractor):
        """Signatures stop at the body."""
        table = extract(extractor, "lib/shapes.rs", SHAPES_RS)

        assert table.get("Point.new").signature == "pub fn new(x: f64, y: f64) -> Self"
        assert table.get("Point").signature == "pub struct Point"

    def test_plain_comment_is_not_doc(self, extractor):
        """Ordinary // comments are not doc comments."""
        table = extract(extractor, "x.rs", "// just a note\nfn f() {}\n")

        assert table.get("f").docstring is None

    def test_structure_is_well_formed(self, extractor):
        assert_well_formed(extract(extractor, "lib/shapes.rs", SHAPES_RS))


# =============================================================================
# JavaScript / TypeScript
# =============================================================================

class TestJavaScriptExtraction:
    """Test symbol extraction from JavaScript sources."""

    def test_classes_functions_and_bindings(self, extractor):
        table = extract(extractor, "web/widget.js", WIDGET_JS)

        assert table.qualified_names() == [
            "Widget",
            "Widget.#secret",
            "Widget.count",
            "Widget.render",
            "Widget.label",
            "MAX_WIDGETS",
            "makeWidget",
            "internal",
        ]

    def test_kinds(self, extractor):
        """Arrow-function bindings are functions, const values constants."""
        table = extract(extractor, "web/widget.js", WIDGET_JS)

        assert table.get("Widget").kind == SymbolKind.CLASS
        assert table.get("Widget.render").kind == SymbolKind.METHOD
        assert table.get("MAX_WIDGETS").kind == SymbolKind.CONSTANT
        assert table.get("internal").kind == SymbolKind.FUNCTION

    def test_export_decides_visibility(self, extractor):
        """Top-level names are public only when exported."""
        table = extract(extractor, "web/widget.js", WIDGET_JS)

        assert table.get("Widget").visibility == "public"
        assert table.get("makeWidget").visibility == "public"
        assert table.get("internal").visibility == "private"
        assert table.get("Widget.#secret").visibility == "private"
        assert table.get("Widget.count").visibility == "public"

    def test_export_is_part_of_span_and_signature(self, extractor):
        """The export statement anchors the span, doc and signature."""
        table = extract(extractor, "web/widget.js", WIDGET_JS)
        widget = table.get("Widget")

        assert widget.span.start_line == 4
        assert widget.signature == "export class Widget"
        assert widget.docstring == "Renders a widget."
        assert table.get("makeWidget").signature == "export function makeWidget()"

    def test_structure_is_well_formed(self, extractor):
        assert_well_formed(extract(extractor, "web/widget.js", WIDGET_JS))


class TestTypeScriptExtraction:
    """Test symbol extraction from TypeScript sources."""

    def test_typescript_constructs(self, extractor):
        table = extract(extractor, "web/types.ts", TYPES_TS)

        assert table.get("Shape").kind == SymbolKind.INTERFACE
        assert table.get("Shape.area").kind == SymbolKind.METHOD
        assert table.get("Id").kind == SymbolKind.TYPE
        assert table.get("Color").kind == SymbolKind.ENUM
        assert table.get("Base").kind == SymbolKind.CLASS
        assert "Base.area" in table

    def test_accessibility_modifiers(self, extractor):
        """private members are private, others public."""
        table = extract(extractor, "web/types.ts", TYPES_TS)

        assert table.get("Base.cache").visibility == "private"
        assert table.get("Base.name").visibility == "public"
        assert table.get("Shape").visibility == "public"

    def test_tsx(self, extractor):
        """TSX files parse with the tsx grammar."""
        text = "export function App() {\n  return <div>hi</div>;\n}\n"
        table = extract(extractor, "ui/App.tsx", text)

        assert table.language == "tsx"
        assert table.get("App").kind == SymbolKind.FUNCTION
        assert table.partial is False


# =============================================================================
# Failure handling
# =============================================================================

class TestPartialAndFailedParses:
    """Test degraded extraction."""

    def test_syntax_error_keeps_surviving_symbols(self, extractor):
        """A broken definition does not lose the others."""
        text = "def good():\n    return 1\n\ndef broken(:\n    pass\n\nclass Fine:\n    pass\n"
        table = extract(extractor, "m.py", text)

        assert table.partial is True
        assert table.error_lines
        assert "good" in table

    def test_clean_parse_is_not_partial(self, extractor):
        table = extract(extractor, "a.py", A_PY)

        assert table.partial is False
        assert table.error_lines == []

    def test_empty_file(self, extractor):
        """Empty content yields an empty table."""
        table = extract(extractor, "empty.py", "")

        assert len(table) == 0

    def test_invalid_utf8(self, extractor):
        """Undecodable content is a ParseError."""
        with pytest.raises(ParseError) as exc_info:
            extractor.extract("bad.py", b"def f():\n    return '\xff\xfe'\n")

        assert exc_info.value.path == "bad.py"

    def test_binary_content(self, extractor):
        with pytest.raises(ParseError):
            extractor.extract("blob.py", b"\x00\x01\x02")

    def test_oversized_content(self):
        """Files over the size limit are refused."""
        small = TreeSitterExtractor(default_registry(), max_file_size=10)

        with pytest.raises(ParseError, match="limit"):
            small.extract("big.py", b"x = 1\n" * 10)

    def test_unsupported_language(self, extractor):
        with pytest.raises(UnsupportedLanguage):
            extractor.extract("notes.txt", b"hello")

    def test_grammar_availability(self, extractor):
        assert extractor.is_available("python") is True
        assert extractor.is_available("cobol") is False


class TestIdempotence:
    """Re-extracting unchanged content yields identical tables."""

    @pytest.mark.parametrize("path,text", [
        ("a.py", A_PY),
        ("lib/shapes.rs", SHAPES_RS),
        ("web/widget.js", WIDGET_JS),
        ("web/types.ts", TYPES_TS),
    ])
    def test_repeated_extraction(self, extractor, path, text):
        first = extract(extractor, path, text)
        second = extract(extractor, path, text)

        assert first.to_dict() == second.to_dict()
        assert [s.span for s in first] == [s.span for s in second]
