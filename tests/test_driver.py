"""Tests for the convergence driver."""

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from baykit.driver import converge, converge_file, read_document, write_atomic
from baykit.exceptions import ConvergenceError, WriteError
from baykit.models import ConvergenceOutcome, Operation, SetupTarget

SATISFIED_LAYOUT = (
    "<script>\n"
    "\timport { createBay } from 'svelte-bay';\n"
    "\n"
    "\tcreateBay();\n"
    "</script>\n"
)


class TestConverge:
    """Test in-memory convergence."""

    def test_empty_block(self) -> None:
        """Test an empty block gains the import and the call."""
        result = converge("<script>\n</script>\n<rest/>")
        assert result.outcome is ConvergenceOutcome.SATISFIED
        assert result.document == (
            "<script>\n"
            "\timport { createBay } from 'svelte-bay';\n"
            "\n"
            "\tcreateBay();\n"
            "</script>\n"
            "<rest/>"
        )
        assert result.operations == [Operation.INSERT_FRESH_IMPORT, Operation.APPEND_INIT_CALL]
        assert result.final_report.is_satisfied

    def test_merge_without_duplicate_call(self) -> None:
        """Test merging the symbol leaves an existing call alone."""
        target = SetupTarget(package="pkg", symbol="required")
        document = "<script>\n\timport { other } from 'pkg';\n\trequired();\n</script>"
        result = converge(document, target)
        assert result.document == (
            "<script>\n\timport { required, other } from 'pkg';\n\trequired();\n</script>"
        )
        assert result.document.count("required();") == 1

    def test_module_only(self) -> None:
        """Test an instance block is added after a module block."""
        document = "<script module>\n\texport const prerender = true;\n</script>\n\n<h1>Hi</h1>\n"
        result = converge(document)
        assert result.document == (
            "<script module>\n"
            "\texport const prerender = true;\n"
            "</script>\n"
            "\n"
            "<script>\n"
            "\timport { createBay } from 'svelte-bay';\n"
            "\n"
            "\tcreateBay();\n"
            "</script>\n"
            "\n"
            "<h1>Hi</h1>\n"
        )
        assert result.operations == [Operation.INSERT_PRIMARY_BLOCK_AFTER_SECONDARY]

    def test_markup_only(self) -> None:
        """Test a block is added before plain markup."""
        result = converge("<h1>Hi</h1>\n")
        assert result.document == SATISFIED_LAYOUT + "\n<h1>Hi</h1>\n"

    def test_empty_document(self) -> None:
        """Test an empty document becomes a full layout."""
        result = converge("")
        assert result.operations == [Operation.CREATE_PRIMARY_BLOCK]
        assert "let { children } = $props();" in result.document
        assert result.document.endswith("{@render children()}\n")
        assert result.final_report.is_satisfied

    def test_crlf_preserved(self) -> None:
        """Test CRLF documents stay CRLF."""
        result = converge("<script>\r\n\tlet x = 1;\r\n</script>\r\n")
        assert result.document == (
            "<script>\r\n"
            "\timport { createBay } from 'svelte-bay';\r\n"
            "\tlet x = 1;\r\n"
            "\r\n"
            "\tcreateBay();\r\n"
            "</script>\r\n"
        )

    def test_idempotent(self) -> None:
        """Test converging a converged document changes nothing."""
        for document in ("", "<h1>Hi</h1>\n", "<script>\n\tlet a;\n</script>"):
            first = converge(document)
            second = converge(first.document)
            assert second.outcome is ConvergenceOutcome.ALREADY_SATISFIED
            assert second.document == first.document
            assert not second.changed

    def test_commented_import_is_not_trusted(self) -> None:
        """Test a commented-out setup is redone for real."""
        document = (
            "<script>\n"
            "\t// import { createBay } from 'svelte-bay';\n"
            "\t// createBay();\n"
            "</script>"
        )
        result = converge(document)
        assert result.final_report.is_satisfied
        assert "\timport { createBay } from 'svelte-bay';\n\t// import" in result.document

    def test_split_imports_are_not_merged(self) -> None:
        """Test a symbol bound by a second import is not merged into the first."""
        document = (
            "<script>\n"
            "\timport { Portal } from 'svelte-bay';\n"
            "\timport { createBay } from 'svelte-bay';\n"
            "</script>"
        )
        result = converge(document)
        assert result.operations == [Operation.APPEND_INIT_CALL]
        assert "import { Portal } from 'svelte-bay';" in result.document
        assert result.document.count("createBay }") == 1

    def test_non_convergence_raises(self) -> None:
        """Test an edit that can never be recognized stops with an error."""
        with pytest.raises(ConvergenceError, match="applied twice"):
            converge("<script>\n\t/* unterminated\n</script>")

    def test_regex_literal_is_not_a_comment(self) -> None:
        """Test a regex containing a comment opener does not hide later code."""
        document = "<script>\n\tconst base = url.replace(/\\/*$/, '');\n</script>\n"
        result = converge(document)
        assert result.document.count("createBay();") == 1
        assert result.document.endswith("'');\n\n\tcreateBay();\n</script>\n")


class TestFileIO:
    """Test reading and atomic writing."""

    @pytest.fixture
    def temp_dir(self) -> Iterator[Path]:
        """Create a temporary directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir)

    def test_write_atomic_replaces_content(self, temp_dir: Path) -> None:
        """Test the file is replaced and no temp files remain."""
        path = temp_dir / "file.svelte"
        path.write_text("old")
        write_atomic(path, "new\r\n")
        assert read_document(path) == "new\r\n"
        assert os.listdir(temp_dir) == ["file.svelte"]

    def test_write_atomic_creates_parents(self, temp_dir: Path) -> None:
        """Test missing parent directories are created."""
        path = temp_dir / "src" / "routes" / "+layout.svelte"
        write_atomic(path, "x")
        assert path.read_text() == "x"

    def test_read_missing(self, temp_dir: Path) -> None:
        """Test missing files raise unless allowed."""
        with pytest.raises(WriteError, match="Failed to read"):
            read_document(temp_dir / "missing.svelte")
        assert read_document(temp_dir / "missing.svelte", missing_ok=True) == ""

    def test_write_failure_keeps_original(
        self,
        temp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a failed replace leaves the original file and no temp file."""
        path = temp_dir / "file.svelte"
        path.write_text("old")

        def fail_replace(src: str, dst: Path) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(WriteError, match="disk full") as exc_info:
            write_atomic(path, "new")

        assert exc_info.value.path == path
        assert exc_info.value.reason == "disk full"
        assert path.read_text() == "old"
        assert os.listdir(temp_dir) == ["file.svelte"]


class TestConvergeFile:
    """Test convergence against files on disk."""

    @pytest.fixture
    def layout(self) -> Iterator[Path]:
        """Create a layout file with an empty script block."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "+layout.svelte"
            path.write_text("<script>\n</script>\n")
            yield path

    def test_writes_converged_file(self, layout: Path) -> None:
        """Test the file ends up satisfied."""
        result = converge_file(layout)
        assert result.outcome is ConvergenceOutcome.SATISFIED
        assert read_document(layout) == result.document
        assert "createBay();" in result.document

    def test_already_satisfied_is_untouched(self, layout: Path) -> None:
        """Test a satisfied file is not rewritten."""
        layout.write_text(SATISFIED_LAYOUT)
        before = layout.stat().st_mtime_ns
        result = converge_file(layout)
        assert result.outcome is ConvergenceOutcome.ALREADY_SATISFIED
        assert layout.stat().st_mtime_ns == before

    def test_declined_confirmation(self, layout: Path) -> None:
        """Test declining the plan leaves the file unchanged."""
        seen = []

        def confirm(plan, report) -> bool:
            seen.append(plan.operations)
            return False

        result = converge_file(layout, confirm=confirm)
        assert result.outcome is ConvergenceOutcome.CANCELLED
        assert seen == [(Operation.INSERT_FRESH_IMPORT, Operation.APPEND_INIT_CALL)]
        assert layout.read_text() == "<script>\n</script>\n"

    def test_dry_run(self, layout: Path) -> None:
        """Test a dry run computes the result without writing."""
        result = converge_file(layout, dry_run=True)
        assert result.changed
        assert layout.read_text() == "<script>\n</script>\n"

    def test_create_missing(self, layout: Path) -> None:
        """Test a missing file is created when allowed."""
        path = layout.parent / "routes" / "+layout.svelte"
        result = converge_file(path, create=True)
        assert result.operations == [Operation.CREATE_PRIMARY_BLOCK]
        assert path.read_text().endswith("{@render children()}\n")

    def test_missing_without_create(self, layout: Path) -> None:
        """Test a missing file is an error by default."""
        with pytest.raises(WriteError):
            converge_file(layout.parent / "nope.svelte")

    def test_non_convergence_writes_nothing(self, layout: Path) -> None:
        """Test a file that cannot converge is left exactly as it was."""
        original = "<script>\n\t/* unterminated\n</script>\n"
        layout.write_text(original)

        with pytest.raises(ConvergenceError):
            converge_file(layout)

        assert layout.read_text() == original
        assert os.listdir(layout.parent) == ["+layout.svelte"]

    def test_regex_literal_written_once(self, layout: Path) -> None:
        """Test a layout with a regex literal gets exactly one call on disk."""
        layout.write_text("<script>\n\tconst base = url.replace(/\\/*$/, '');\n</script>\n")

        converge_file(layout)
        second = converge_file(layout)

        assert second.outcome is ConvergenceOutcome.ALREADY_SATISFIED
        assert layout.read_text().count("createBay();") == 1
