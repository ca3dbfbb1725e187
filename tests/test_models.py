"""Tests for baykit data models."""

import pytest
from pydantic import ValidationError

from baykit.models import (
    AnalysisReport,
    ConvergenceOutcome,
    ConvergenceResult,
    MutationPlan,
    Operation,
    SetupTarget,
    Span,
    fingerprint,
)


class TestSpan:
    """Test Span validation and helpers."""

    def test_valid_span(self) -> None:
        """Test creating a span and slicing text with it."""
        span = Span(start=2, end=5)
        assert len(span) == 3
        assert span.slice("abcdefg") == "cde"

    def test_empty_span(self) -> None:
        """Test a zero-width span is allowed."""
        assert len(Span(start=4, end=4)) == 0

    def test_inverted_span(self) -> None:
        """Test end before start is rejected."""
        with pytest.raises(ValidationError, match="precedes start"):
            Span(start=3, end=1)

    def test_negative_offset(self) -> None:
        """Test negative offsets are rejected."""
        with pytest.raises(ValidationError):
            Span(start=-1, end=2)

    def test_span_is_frozen(self) -> None:
        """Test spans cannot be modified after creation."""
        span = Span(start=0, end=1)
        with pytest.raises(ValidationError):
            span.start = 1


class TestSetupTarget:
    """Test SetupTarget defaults and validation."""

    def test_defaults(self) -> None:
        """Test the default target is the svelte-bay setup."""
        target = SetupTarget()
        assert target.package == "svelte-bay"
        assert target.symbol == "createBay"
        assert target.import_statement == "import { createBay } from 'svelte-bay';"
        assert target.call_statement == "createBay();"
        assert target.plugin_import_statement == "import { svelteBay } from 'svelte-bay/vite';"
        assert target.plugin_call == "svelteBay()"

    def test_custom_target(self) -> None:
        """Test overriding the injected names."""
        target = SetupTarget(package="pkg", symbol="required")
        assert target.import_statement == "import { required } from 'pkg';"

    def test_invalid_symbol(self) -> None:
        """Test symbols must be JavaScript identifiers."""
        with pytest.raises(ValidationError, match="not a valid JavaScript identifier"):
            SetupTarget(symbol="create-bay")

    def test_invalid_package(self) -> None:
        """Test package names cannot contain quotes."""
        with pytest.raises(ValidationError, match="not a valid module specifier"):
            SetupTarget(package="svelte'bay")


class TestAnalysisReport:
    """Test AnalysisReport derived properties."""

    def test_empty_report_is_not_satisfied(self) -> None:
        """Test a report with no facts needs work."""
        report = AnalysisReport(fingerprint=fingerprint(""))
        assert not report.is_satisfied
        assert report.indent == "\t"
        assert report.newline == "\n"

    def test_satisfied_report(self) -> None:
        """Test all three facts make a satisfied report."""
        report = AnalysisReport(
            fingerprint=fingerprint("x"),
            has_primary_block=True,
            has_target_symbol_imported=True,
            has_init_call=True,
        )
        assert report.is_satisfied

    def test_matches_only_its_document(self) -> None:
        """Test the fingerprint ties a report to one document version."""
        report = AnalysisReport(fingerprint=fingerprint("<script></script>"))
        assert report.matches("<script></script>")
        assert not report.matches("<script> </script>")


class TestFingerprint:
    """Test document fingerprints."""

    def test_same_text_same_fingerprint(self) -> None:
        """Test fingerprints are deterministic."""
        assert fingerprint("abc") == fingerprint("abc")

    def test_same_length_different_text(self) -> None:
        """Test equal-length documents are still distinguished."""
        assert fingerprint("abc") != fingerprint("abd")


class TestPlanAndResult:
    """Test MutationPlan and ConvergenceResult helpers."""

    def test_empty_plan(self) -> None:
        """Test an empty plan reports itself as empty."""
        assert MutationPlan().is_empty
        assert not MutationPlan(operations=(Operation.APPEND_INIT_CALL,)).is_empty

    def test_result_changed(self) -> None:
        """Test changed compares the original and final text."""
        report = AnalysisReport(fingerprint=fingerprint("b"))
        result = ConvergenceResult(
            outcome=ConvergenceOutcome.SATISFIED,
            original="a",
            document="b",
            final_report=report,
        )
        assert result.changed
        assert result.operations == []
