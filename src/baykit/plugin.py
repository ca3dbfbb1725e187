"""Build-config plugin injector for vite.config files.

Same analyze / edit / re-analyze discipline as the component driver, with a
list field instead of a script block. When the list cannot be located the
import is still added and the result is reported as partial.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

from .driver import read_document, write_atomic
from .logging_config import logger
from .models import PluginOutcome, PluginReport, PluginResult, SetupTarget, Span, fingerprint
from .mutations import insert_at, replace_range
from .scanner import (
    IMPORT_STATEMENT_PATTERN,
    detect_newline,
    find_call,
    find_closing,
    imported_name,
    iter_named_imports,
    line_indent,
    mask_js,
    merge_specifiers,
    render_named_import,
    split_specifiers,
)


def analyze_config(document: str, target: SetupTarget | None = None) -> PluginReport:
    """Analyze a build-config file for the plugin registration.

    Args:
        document: Full text of the config file
        target: Plugin module, factory and list field to look for

    Returns:
        Report whose offsets are valid for ``document`` only
    """
    target = target or SetupTarget()
    try:
        return _analyze_config(document, target)
    except Exception as e:  # noqa: BLE001
        logger.debug(f"Config analysis degraded to an empty report: {e}")
        return PluginReport(
            fingerprint=fingerprint(document),
            newline=detect_newline(document),
        )


def _analyze_config(document: str, target: SetupTarget) -> PluginReport:
    facts: dict[str, object] = {
        "fingerprint": fingerprint(document),
        "newline": detect_newline(document),
    }
    code = mask_js(document)
    strict = mask_js(document, strings=True)

    for match in iter_named_imports(code, target.plugin_module):
        specifiers = split_specifiers(match.group("specifiers"))
        bound = next(
            (spec for spec in specifiers if imported_name(spec) == target.plugin_factory),
            None,
        )
        if bound is not None:
            facts["has_plugin_import"] = True
            if " as " in bound:
                facts["factory_name"] = bound.split(" as ", 1)[1].strip()
            facts.pop("module_import_range", None)
            break
        if "module_import_range" not in facts:
            facts["module_import_range"] = Span(start=match.start(), end=match.end())
            facts["module_import_quote"] = match.group("quote")
            facts["module_imported_symbols"] = specifiers

    imports = list(IMPORT_STATEMENT_PATTERN.finditer(code))
    if imports:
        facts["import_insert_offset"] = imports[-1].end()

    field = re.compile(rf"(?<![\w$.]){re.escape(target.plugin_field)}\s*:\s*\[")
    field_match = field.search(strict)
    if field_match is not None:
        open_index = field_match.end() - 1
        close_index = find_closing(strict, open_index)
        if close_index is not None:
            content = Span(start=open_index + 1, end=close_index)
            facts["has_list"] = True
            facts["list_content_range"] = content
            call_name = facts.get("factory_name") or target.plugin_factory
            facts["has_invocation"] = find_call(content.slice(strict), call_name) is not None
        else:
            logger.debug(f"Unbalanced '{target.plugin_field}' list at offset {open_index}")

    return PluginReport(**facts)


def _import_edit(document: str, report: PluginReport, target: SetupTarget) -> str:
    nl = report.newline
    span = report.module_import_range
    if span is not None:
        specifiers = merge_specifiers(target.plugin_factory, report.module_imported_symbols)
        statement = render_named_import(specifiers, target.plugin_module, report.module_import_quote)
        return replace_range(document, span.start, span.end, statement)

    offset = report.import_insert_offset
    if offset:
        return insert_at(document, offset, f"{nl}{target.plugin_import_statement}")
    return insert_at(document, 0, f"{target.plugin_import_statement}{nl}")


def _invocation_edit(document: str, report: PluginReport, target: SetupTarget) -> str:
    content = report.list_content_range
    body = content.slice(document)
    # commas and the insertion point come from code only, never from comments
    masked = content.slice(mask_js(document, strings=True))
    call = f"{report.factory_name}()" if report.factory_name else target.plugin_call
    trimmed = masked.strip()

    if not body.strip():
        return replace_range(document, content.start, content.end, call)
    if not trimmed:
        return insert_at(document, content.start, call)

    last = content.start + len(masked.rstrip())
    trailing_comma = trimmed.endswith(",")
    if "\n" in body:
        # one entry per line: follow the indentation of the last entry
        indent = line_indent(document, last - 1)
        text = f"{report.newline}{indent}{call},"
        if not trailing_comma:
            text = f",{report.newline}{indent}{call}"
    else:
        text = f" {call}" if trailing_comma else f", {call}"
    return insert_at(document, last, text)


def inject_plugin(
    document: str,
    target: SetupTarget | None = None,
    commit: Callable[[str], str] | None = None,
) -> PluginResult:
    """Register the plugin factory in a build-config document.

    Args:
        document: Config file text
        target: Plugin module, factory and list field
        commit: Receives each edited document and returns the text to
            re-analyze; defaults to keeping the edit in memory

    Returns:
        Result with ``partial`` outcome when the plugin list is missing
    """
    target = target or SetupTarget()
    commit = commit or (lambda text: text)
    original = document
    report = analyze_config(document, target)

    if report.is_configured:
        return PluginResult(
            outcome=PluginOutcome.ALREADY_CONFIGURED,
            original=original,
            document=original,
            final_report=report,
        )

    added_import = False
    if not report.has_plugin_import:
        document = commit(_import_edit(document, report, target))
        added_import = True
        report = analyze_config(document, target)
        logger.debug(f"Added {target.plugin_factory} import")

    if not report.has_list:
        logger.info(f"No '{target.plugin_field}: [...]' list found, plugin not registered")
        return PluginResult(
            outcome=PluginOutcome.PARTIAL,
            original=original,
            document=document,
            added_import=added_import,
            final_report=report,
        )

    added_invocation = False
    if not report.has_invocation:
        document = commit(_invocation_edit(document, report, target))
        added_invocation = True
        report = analyze_config(document, target)
        logger.debug(f"Added {target.plugin_call} to '{target.plugin_field}'")

    return PluginResult(
        outcome=PluginOutcome.CONFIGURED,
        original=original,
        document=document,
        added_import=added_import,
        added_invocation=added_invocation,
        final_report=report,
    )


def inject_plugin_file(
    path: Path,
    target: SetupTarget | None = None,
    dry_run: bool = False,
) -> PluginResult:
    """Register the plugin in a config file, writing after each edit.

    Raises:
        WriteError: If the file cannot be read or written
    """
    path = Path(path)

    def commit(text: str) -> str:
        write_atomic(path, text)
        logger.info(f"Updated {path}")
        return read_document(path)

    document = read_document(path)
    return inject_plugin(document, target, commit=None if dry_run else commit)
