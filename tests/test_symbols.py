"""
Tests for Symbols — spans, symbols and table queries.
"""

import pytest

from quarry.core.symbols import Span, Symbol, SymbolKind, SymbolTable


def make_symbol(qualified_name, start, end, kind=SymbolKind.FUNCTION, parent=None, depth=0, visibility="public"):
    return Symbol(
        path="m.py",
        kind=kind,
        name=qualified_name.rsplit(".", 1)[-1],
        qualified_name=qualified_name,
        span=Span(start, 1, end, 10),
        visibility=visibility,
        parent=parent,
        name_line=start,
        name_column=5,
        depth=depth,
    )


@pytest.fixture
def table():
    table = SymbolTable(path="m.py", language="python")
    table.add(make_symbol("Outer", 1, 20, kind=SymbolKind.CLASS))
    table.add(make_symbol("Outer.Inner", 2, 10, kind=SymbolKind.CLASS, parent="Outer", depth=1))
    table.add(make_symbol("Outer.Inner.run", 3, 5, kind=SymbolKind.METHOD, parent="Outer.Inner", depth=2))
    table.add(make_symbol("Outer._hidden", 12, 14, kind=SymbolKind.METHOD, parent="Outer", depth=1,
                          visibility="private"))
    table.add(make_symbol("run", 22, 24))
    return table


class TestSpan:
    def test_contains(self):
        outer = Span(1, 1, 10, 1)

        assert outer.contains(Span(2, 5, 3, 1)) is True
        assert outer.contains(Span(1, 1, 10, 1)) is True
        assert outer.contains(Span(9, 1, 11, 1)) is False

    def test_contains_point_compares_columns(self):
        span = Span(3, 5, 3, 20)

        assert span.contains_point(3, 5) is True
        assert span.contains_point(3, 4) is False


class TestSymbol:
    def test_address_and_dict(self, table):
        run = table.get("Outer.Inner.run")

        assert run.address == "m.py::Outer.Inner.run"
        assert run.to_dict()["kind"] == "method"
        assert run.to_dict()["span"]["start_line"] == 3


class TestSymbolTable:
    """Test table queries."""

    def test_source_order(self, table):
        assert table.qualified_names() == [
            "Outer", "Outer.Inner", "Outer.Inner.run", "Outer._hidden", "run",
        ]

    def test_duplicate_rejected(self, table):
        with pytest.raises(ValueError):
            table.add(make_symbol("run", 30, 31))

    def test_unique_name(self, table):
        assert table.unique_name("run") == "run#2"
        assert table.unique_name("walk") == "walk"

    def test_public_only(self, table):
        assert "Outer._hidden" not in [s.qualified_name for s in table.symbols(public_only=True)]

    def test_by_name(self, table):
        assert [s.qualified_name for s in table.by_name("run")] == ["Outer.Inner.run", "run"]

    def test_hierarchy(self, table):
        run = table.get("Outer.Inner.run")

        assert [s.qualified_name for s in table.ancestors(run)] == ["Outer", "Outer.Inner"]
        assert [s.qualified_name for s in table.children("Outer")] == ["Outer.Inner", "Outer._hidden"]
        assert [s.qualified_name for s in table.top_level()] == ["Outer", "run"]

    def test_enclosing_is_innermost(self, table):
        assert table.enclosing(4, 3).qualified_name == "Outer.Inner.run"
        assert table.enclosing(11, 3).qualified_name == "Outer"
        assert table.enclosing(21, 3) is None

    def test_definition_sites(self, table):
        assert table.definition_sites()[(22, 5)].qualified_name == "run"

    def test_to_dict(self, table):
        data = table.to_dict(public_only=True, signature_only=True)

        assert data["count"] == 4
        assert data["partial"] is False
        assert set(data["symbols"][0]) == {"name", "qualified_name", "signature"}
