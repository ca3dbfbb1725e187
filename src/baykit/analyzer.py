"""Offset-indexed analysis of Svelte component files.

The analyzer never raises: anything it cannot recognize is reported as
absent, and the convergence driver treats absent facts as work to do.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .logging_config import logger
from .models import AnalysisReport, SetupTarget, Span, fingerprint
from .scanner import (
    detect_newline,
    find_call,
    imported_name,
    iter_named_imports,
    mask_js,
    mask_markup,
    split_specifiers,
)

SCRIPT_OPEN_PATTERN = re.compile(r"<script(?P<attrs>(?:\s[^>]*)?)>", re.IGNORECASE)
SCRIPT_CLOSE_PATTERN = re.compile(r"</script\s*>", re.IGNORECASE)
ATTRIBUTE_PATTERN = re.compile(
    r"(?P<name>[^\s=/>\"']+)"
    r"(?:\s*=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<bare>[^\s\"'>]+)))?",
)

DEFAULT_INDENT = "\t"


@dataclass(frozen=True)
class ScriptBlock:
    """A top-level ``<script>`` element located in a document."""

    tag: Span
    content: Span
    attributes: dict[str, str]

    @property
    def is_module(self) -> bool:
        return "module" in self.attributes or self.attributes.get("context") == "module"

    @property
    def lang(self) -> str | None:
        return self.attributes.get("lang")


def parse_attributes(raw: str) -> dict[str, str]:
    """Parse the attribute text of an opening tag; valueless attributes map to ''."""
    attributes: dict[str, str] = {}
    for match in ATTRIBUTE_PATTERN.finditer(raw):
        value = match.group("dq")
        if value is None:
            value = match.group("sq")
        if value is None:
            value = match.group("bare") or ""
        attributes.setdefault(match.group("name").lower(), value)
    return attributes


def find_script_blocks(document: str) -> list[ScriptBlock]:
    """Locate top-level script blocks in document order.

    Blocks inside markup comments or ``<svelte:head>`` are skipped, as are
    self-closing and unterminated tags.
    """
    masked = mask_markup(document)
    blocks: list[ScriptBlock] = []
    position = 0
    while True:
        opening = SCRIPT_OPEN_PATTERN.search(masked, position)
        if opening is None:
            break
        attrs = opening.group("attrs")
        if attrs.rstrip().endswith("/"):
            position = opening.end()
            continue
        closing = SCRIPT_CLOSE_PATTERN.search(masked, opening.end())
        if closing is None:
            logger.debug(f"Unterminated <script> at offset {opening.start()}")
            break
        blocks.append(
            ScriptBlock(
                tag=Span(start=opening.start(), end=closing.end()),
                content=Span(start=opening.end(), end=closing.start()),
                attributes=parse_attributes(attrs),
            ),
        )
        position = closing.end()
    return blocks


def detect_indent(content: str) -> str:
    """Return the indentation of the first non-blank line of block content."""
    for line in content.splitlines():
        if line.strip():
            return line[: len(line) - len(line.lstrip(" \t"))]
    return DEFAULT_INDENT


def analyze(document: str, target: SetupTarget | None = None) -> AnalysisReport:
    """Analyze a component file for the initializer setup.

    Args:
        document: Full text of the file
        target: What to look for; defaults to the svelte-bay setup

    Returns:
        Report whose offsets are valid for ``document`` only
    """
    target = target or SetupTarget()
    try:
        return _analyze(document, target)
    except Exception as e:  # noqa: BLE001
        logger.debug(f"Analysis degraded to an empty report: {e}")
        return AnalysisReport(
            fingerprint=fingerprint(document),
            newline=detect_newline(document),
        )


def _analyze(document: str, target: SetupTarget) -> AnalysisReport:
    facts: dict[str, object] = {
        "fingerprint": fingerprint(document),
        "newline": detect_newline(document),
    }

    blocks = find_script_blocks(document)
    primary = next((block for block in blocks if not block.is_module), None)
    secondary = next((block for block in blocks if block.is_module), None)
    lang = next((block.lang for block in blocks if block.lang), None)
    if lang:
        facts["block_lang"] = lang

    if secondary is not None:
        facts["has_secondary_block"] = True
        facts["secondary_block_range"] = secondary.tag

    if primary is None:
        logger.debug("No instance <script> block found")
        return AnalysisReport(**facts)

    facts["has_primary_block"] = True
    facts["primary_block_range"] = primary.tag
    facts["primary_content_range"] = primary.content

    offset = primary.content.start
    content = primary.content.slice(document)
    facts["indent"] = detect_indent(content)
    code = mask_js(content)

    import_matches = list(iter_named_imports(code, target.package))
    if import_matches:
        # merges go into the first import; the symbol may be bound by any of them
        first = import_matches[0]
        facts["has_target_import"] = True
        facts["import_range"] = Span(start=offset + first.start(), end=offset + first.end())
        facts["import_quote"] = first.group("quote")
        facts["imported_symbols"] = split_specifiers(first.group("specifiers"))
        bound = next(
            (
                spec
                for match in import_matches
                for spec in split_specifiers(match.group("specifiers"))
                if imported_name(spec) == target.symbol
            ),
            None,
        )
        facts["has_target_symbol_imported"] = bound is not None
        if bound is not None and " as " in bound:
            facts["init_call_name"] = bound.split(" as ", 1)[1].strip()

    call_name = facts.get("init_call_name") or target.symbol
    facts["has_init_call"] = find_call(mask_js(content, strings=True), call_name) is not None

    report = AnalysisReport(**facts)
    logger.debug(
        f"Analyzed block at {primary.tag.start}-{primary.tag.end}: "
        f"import={report.has_target_import} symbol={report.has_target_symbol_imported} "
        f"call={report.has_init_call}",
    )
    return report
