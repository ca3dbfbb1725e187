"""Tests for the tolerant scanning helpers."""

from baykit.scanner import (
    find_call,
    find_closing,
    imported_name,
    iter_named_imports,
    line_indent,
    mask_js,
    mask_markup,
    merge_specifiers,
    render_named_import,
    split_specifiers,
)


class TestMasking:
    """Test offset-preserving masks."""

    def test_mask_js_preserves_length_and_lines(self) -> None:
        """Test masked text keeps every offset and line break."""
        code = "let a = 1; // note\n/* block\ncomment */ let b = 'x';\n"
        masked = mask_js(code)
        assert len(masked) == len(code)
        assert masked.count("\n") == code.count("\n")
        assert "note" not in masked
        assert "comment" not in masked
        assert "let b = 'x';" in masked

    def test_comment_markers_inside_strings(self) -> None:
        """Test URLs in strings are not mistaken for comments."""
        code = "const url = 'http://example.com'; run();"
        assert mask_js(code) == code

    def test_mask_strings(self) -> None:
        """Test string contents are blanked but delimiters kept."""
        code = "f('a(b)'); g(\"c\");"
        masked = mask_js(code, strings=True)
        assert masked == "f('    '); g(\" \");"

    def test_escaped_quote(self) -> None:
        """Test an escaped quote does not end the string."""
        code = "x = 'it\\'s // fine'; y();"
        masked = mask_js(code)
        assert masked == code

    def test_unterminated_block_comment(self) -> None:
        """Test an unterminated comment masks to the end of the text."""
        code = "a(); /* open\nb();"
        masked = mask_js(code)
        assert masked.startswith("a();")
        assert "b" not in masked

    def test_regex_literal_is_not_a_comment(self) -> None:
        """Test a regex literal holding a comment opener is left alone."""
        code = "const base = url.replace(/\\/*$/, ''); createBay();"
        assert mask_js(code) == code

    def test_regex_literal_contents_masked_with_strings(self) -> None:
        """Test regex contents are blanked like string contents."""
        assert mask_js("f(/[)]/g);", strings=True) == "f(/   /g);"

    def test_division_is_not_a_regex(self) -> None:
        """Test a slash after an operand stays a division."""
        assert mask_js("a = b / c; // d") == "a = b / c; " + " " * 4

    def test_mask_markup(self) -> None:
        """Test markup comments and svelte:head regions are blanked."""
        text = "<!-- <script></script> -->\n<svelte:head><script src='x'></script></svelte:head>"
        masked = mask_markup(text)
        assert len(masked) == len(text)
        assert "<script" not in masked


class TestBrackets:
    """Test bracket matching."""

    def test_nested_brackets(self) -> None:
        """Test nested lists and objects are skipped."""
        code = "[a({ b: [1, 2] }), c()] tail"
        assert find_closing(code, 0) == code.index("] tail")

    def test_unbalanced(self) -> None:
        """Test unbalanced input yields None."""
        assert find_closing("[a(", 0) is None
        assert find_closing("[a)]", 0) is None


class TestImports:
    """Test import helpers."""

    def test_iter_named_imports_filters_source(self) -> None:
        """Test only imports from the requested source are yielded."""
        code = "import { a } from 'x';\nimport { b } from \"y\";\nimport { c } from 'y';"
        matches = list(iter_named_imports(code, "y"))
        assert [m.group("specifiers").strip() for m in matches] == ["b", "c"]
        assert matches[0].group("quote") == '"'

    def test_split_specifiers(self) -> None:
        """Test whitespace, empty entries and duplicates are normalized."""
        assert split_specifiers(" a,\n  b as  c , ,a,") == ("a", "b as c")

    def test_imported_name(self) -> None:
        """Test aliases and type-only specifiers."""
        assert imported_name("a") == "a"
        assert imported_name("a as b") == "a"
        assert imported_name("type a") == ""

    def test_merge_specifiers(self) -> None:
        """Test the required symbol goes first without duplicates."""
        assert merge_specifiers("C", ("A", "B")) == ("C", "A", "B")
        assert merge_specifiers("C", ("A", "type C")) == ("C", "A")

    def test_render_named_import(self) -> None:
        """Test rendering keeps the quote style."""
        assert render_named_import(("a", "b"), "pkg", '"') == 'import { a, b } from "pkg"'


class TestCalls:
    """Test call detection."""

    def test_plain_and_assigned_calls(self) -> None:
        """Test bare and assigned zero-argument calls are found."""
        assert find_call("createBay();", "createBay")
        assert find_call("const bay = createBay( );", "createBay")

    def test_non_calls(self) -> None:
        """Test member calls, declarations and calls with arguments are ignored."""
        assert find_call("bay.createBay();", "createBay") is None
        assert find_call("function createBay() {}", "createBay") is None
        assert find_call("createBay(1);", "createBay") is None
        assert find_call("recreateBay();", "createBay") is None


def test_line_indent() -> None:
    """Test indentation of the line holding an offset."""
    text = "a\n\t\tb()\n"
    assert line_indent(text, text.index("b")) == "\t\t"
