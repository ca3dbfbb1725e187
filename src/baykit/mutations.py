"""Position-aware text edits for component files.

Primitives take explicit offsets and never search for them. Operations are
bound to the offsets of one analysis report, and only one bound operation is
applied per report: the driver re-analyzes before choosing the next.
"""

from __future__ import annotations

from .exceptions import MutationError, StaleReportError
from .logging_config import logger
from .models import AnalysisReport, MutationPlan, MutationStep, Operation, SetupTarget
from .scanner import merge_specifiers, render_named_import


def _check_range(document: str, start: int, end: int) -> None:
    if not 0 <= start <= end <= len(document):
        msg = f"Edit range [{start}, {end}) is outside a document of length {len(document)}"
        raise MutationError(msg, details={"start": start, "end": end, "length": len(document)})


def insert_at(document: str, offset: int, text: str) -> str:
    """Splice ``text`` into ``document`` at ``offset``."""
    _check_range(document, offset, offset)
    return document[:offset] + text + document[offset:]


def replace_range(document: str, start: int, end: int, text: str) -> str:
    """Replace ``document[start:end]`` with ``text``."""
    _check_range(document, start, end)
    return document[:start] + text + document[end:]


def prepend(document: str, text: str) -> str:
    return insert_at(document, 0, text)


def render_block(report: AnalysisReport, target: SetupTarget) -> str:
    """Render a minimal instance script block with the import and the call."""
    nl = report.newline
    indent = report.indent
    opening = f'<script lang="{report.block_lang}">' if report.block_lang else "<script>"
    return (
        f"{opening}{nl}"
        f"{indent}{target.import_statement}{nl}"
        f"{nl}"
        f"{indent}{target.call_statement}{nl}"
        "</script>"
    )


def render_layout(report: AnalysisReport, target: SetupTarget) -> str:
    """Render a complete root layout for an empty file."""
    nl = report.newline
    indent = report.indent
    opening = f'<script lang="{report.block_lang}">' if report.block_lang else "<script>"
    return (
        f"{opening}{nl}"
        f"{indent}{target.import_statement}{nl}"
        f"{indent}let {{ children }} = $props();{nl}"
        f"{nl}"
        f"{indent}{target.call_statement}{nl}"
        f"</script>{nl}"
        f"{nl}"
        f"{{@render children()}}{nl}"
    )


def plan(document: str, report: AnalysisReport) -> MutationPlan:
    """Predict the operations needed to satisfy ``report``, in order.

    Only the first operation can be bound from this report; the rest are
    re-derived after each edit.
    """
    operations: list[Operation] = []
    if not report.has_primary_block:
        if not document.strip():
            operations.append(Operation.CREATE_PRIMARY_BLOCK)
        elif report.has_secondary_block:
            operations.append(Operation.INSERT_PRIMARY_BLOCK_AFTER_SECONDARY)
        else:
            operations.append(Operation.INSERT_PRIMARY_BLOCK_BEFORE_CONTENT)
        return MutationPlan(operations=tuple(operations))

    if not report.has_target_symbol_imported:
        if report.has_target_import:
            operations.append(Operation.MERGE_SYMBOL_INTO_IMPORT)
        else:
            operations.append(Operation.INSERT_FRESH_IMPORT)
    if not report.has_init_call:
        operations.append(Operation.APPEND_INIT_CALL)
    return MutationPlan(operations=tuple(operations))


def next_step(
    document: str,
    report: AnalysisReport,
    target: SetupTarget,
) -> MutationStep | None:
    """Bind the first planned operation to offsets from ``report``.

    Returns:
        The step to apply, or None when the document is already satisfied
    """
    if not report.matches(document):
        msg = "Analysis report does not describe this document version"
        raise StaleReportError(msg)

    operations = plan(document, report).operations
    if not operations:
        return None

    operation = operations[0]
    nl = report.newline

    if operation is Operation.CREATE_PRIMARY_BLOCK:
        return MutationStep(
            operation=operation,
            start=0,
            end=len(document),
            text=render_layout(report, target),
        )

    if operation is Operation.INSERT_PRIMARY_BLOCK_AFTER_SECONDARY:
        offset = report.secondary_block_range.end
        return MutationStep(
            operation=operation,
            start=offset,
            end=offset,
            text=f"{nl}{nl}{render_block(report, target)}",
        )

    if operation is Operation.INSERT_PRIMARY_BLOCK_BEFORE_CONTENT:
        return MutationStep(
            operation=operation,
            start=0,
            end=0,
            text=f"{render_block(report, target)}{nl}{nl}",
        )

    if operation is Operation.MERGE_SYMBOL_INTO_IMPORT:
        span = report.import_range
        specifiers = merge_specifiers(target.symbol, report.imported_symbols)
        return MutationStep(
            operation=operation,
            start=span.start,
            end=span.end,
            text=render_named_import(specifiers, target.package, report.import_quote),
        )

    content = report.primary_content_range
    body = content.slice(document)

    if operation is Operation.INSERT_FRESH_IMPORT:
        text = f"{nl}{report.indent}{target.import_statement}"
        if not body.startswith(("\n", "\r\n")):
            text += nl
        return MutationStep(operation=operation, start=content.start, end=content.start, text=text)

    # APPEND_INIT_CALL: after the last content line, before any indentation
    # that precedes the closing tag.
    call = f"{report.init_call_name}();" if report.init_call_name else target.call_statement
    trimmed = body.rstrip(" \t")
    if trimmed.endswith("\n"):
        offset = content.start + len(trimmed)
        text = f"{nl}{report.indent}{call}{nl}"
    else:
        offset = content.end
        text = f"{nl}{nl}{report.indent}{call}{nl}"
    return MutationStep(operation=operation, start=offset, end=offset, text=text)


def apply_step(document: str, report: AnalysisReport, step: MutationStep) -> str:
    """Apply one bound step to the document version ``report`` describes."""
    if not report.matches(document):
        msg = f"Refusing to apply {step.operation.value} with offsets from another document version"
        raise StaleReportError(msg, details={"operation": step.operation.value})

    logger.debug(f"Applying {step.operation.value} at [{step.start}, {step.end})")
    if step.operation is Operation.INSERT_PRIMARY_BLOCK_BEFORE_CONTENT:
        return prepend(document, step.text)
    if step.start == step.end:
        return insert_at(document, step.start, step.text)
    return replace_range(document, step.start, step.end, step.text)
