"""Tolerant text scanning helpers shared by the analyzers.

Every mask function returns a string of the same length as its input, so
offsets found in the masked text are valid in the original.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

NAMED_IMPORT_PATTERN = re.compile(
    r"(?<![\w$.])import\s*\{(?P<specifiers>[^{}]*)\}\s*from\s*"
    r"(?P<quote>['\"])(?P<source>[^'\"\n]*)(?P=quote)",
)

# Any top-level import statement, used to find where new imports go.
IMPORT_STATEMENT_PATTERN = re.compile(
    r"^[ \t]*import\b(?:[^;'\"`]*?\bfrom\s*)?(['\"])[^'\"\n]*\1[ \t]*;?",
    re.MULTILINE,
)

MARKUP_COMMENT_PATTERN = re.compile(r"<!--.*?(?:-->|\Z)", re.DOTALL)
SVELTE_HEAD_PATTERN = re.compile(
    r"<svelte:head\b.*?(?:</svelte:head\s*>|\Z)",
    re.DOTALL | re.IGNORECASE,
)

# A slash after one of these (or after a keyword below) starts a regex literal.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};+-*%<>~^")
REGEX_KEYWORD_PATTERN = re.compile(
    r"(?<![\w$.])(?:return|typeof|instanceof|case|do|else|in|of|void|yield|await|delete|new)$",
)

_OPENERS = {"[": "]", "{": "}", "(": ")"}
_CLOSERS = {"]", "}", ")"}


def _blank(text: str) -> str:
    """Replace everything but line breaks with spaces."""
    return re.sub(r"[^\r\n]", " ", text)


def mask_markup(text: str) -> str:
    """Blank out markup comments and ``<svelte:head>`` regions."""
    masked = MARKUP_COMMENT_PATTERN.sub(lambda m: _blank(m.group(0)), text)
    return SVELTE_HEAD_PATTERN.sub(lambda m: _blank(m.group(0)), masked)


def mask_js(text: str, strings: bool = False) -> str:
    """Blank out JavaScript comments, and string contents when ``strings`` is set.

    String delimiters are kept so that quoted values remain recognizable.
    Comment markers inside strings are not treated as comments.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            out[i:end] = _blank(text[i:end])
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out[i:end] = _blank(text[i:end])
            i = end
        elif ch in "'\"`":
            end = _string_end(text, i)
            if strings:
                closed = end - 1 > i and text[end - 1] == ch
                inner_end = end - 1 if closed else end
                out[i + 1:inner_end] = _blank(text[i + 1:inner_end])
            i = end
        elif ch == "/" and _starts_regex(text, i):
            end = _regex_end(text, i)
            if end is None:
                i += 1
                continue
            if strings:
                out[i + 1:end - 1] = _blank(text[i + 1:end - 1])
            i = end
        else:
            i += 1
    return "".join(out)


def _starts_regex(text: str, slash: int) -> bool:
    """Decide whether the ``/`` at ``slash`` opens a regex literal rather than a division."""
    before = text[:slash].rstrip()
    if not before:
        return True
    if before[-1] in _REGEX_PRECEDERS:
        return True
    return REGEX_KEYWORD_PATTERN.search(before) is not None


def _regex_end(text: str, start: int) -> int | None:
    """Return the offset just past the closing slash, or None if there is none on the line."""
    in_class = False
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return None
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            return i + 1
        i += 1
    return None


def _string_end(text: str, start: int) -> int:
    """Return the offset just past the string literal opening at ``start``."""
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            # unterminated single-line string
            return i
        i += 1
    return n


def find_closing(masked: str, open_index: int) -> int | None:
    """Return the offset of the bracket closing the one at ``open_index``.

    ``masked`` must have comments and string contents blanked. Returns
    ``None`` for unbalanced input.
    """
    stack: list[str] = []
    for i in range(open_index, len(masked)):
        ch = masked[i]
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i
    return None


def iter_named_imports(text: str, source: str) -> Iterator[re.Match[str]]:
    """Yield ``import { ... } from '<source>'`` matches in order."""
    for match in NAMED_IMPORT_PATTERN.finditer(text):
        if match.group("source") == source:
            yield match


def split_specifiers(raw: str) -> tuple[str, ...]:
    """Split the text between import braces into normalized specifiers."""
    specifiers: list[str] = []
    for part in raw.split(","):
        spec = " ".join(part.split())
        if spec and spec not in specifiers:
            specifiers.append(spec)
    return tuple(specifiers)


def _bare_name(specifier: str) -> str:
    name = specifier.split(" as ", 1)[0].strip()
    return name[len("type "):].strip() if name.startswith("type ") else name


def imported_name(specifier: str) -> str:
    """Return the exported name a specifier binds at runtime (``a as b`` -> ``a``).

    Type-only specifiers bind nothing and yield an empty string.
    """
    if specifier.startswith("type "):
        return ""
    return _bare_name(specifier)


def merge_specifiers(symbol: str, existing: tuple[str, ...]) -> tuple[str, ...]:
    """Put ``symbol`` first, keeping the other specifiers in their order."""
    rest = tuple(spec for spec in existing if _bare_name(spec) != symbol)
    return (symbol, *rest)


def render_named_import(specifiers: tuple[str, ...], source: str, quote: str = "'") -> str:
    """Render an import statement without a trailing semicolon."""
    return f"import {{ {', '.join(specifiers)} }} from {quote}{source}{quote}"


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def line_indent(text: str, offset: int) -> str:
    """Return the leading whitespace of the line containing ``offset``."""
    line_start = text.rfind("\n", 0, offset) + 1
    match = re.match(r"[ \t]*", text[line_start:])
    return match.group(0) if match else ""


def find_call(code: str, name: str) -> re.Match[str] | None:
    """Find a zero-argument call of ``name`` in comment- and string-masked code.

    Member calls (``obj.name()``) and function declarations do not count.
    """
    pattern = re.compile(rf"(?<![\w$.]){re.escape(name)}\s*\(\s*\)")
    for match in pattern.finditer(code):
        if re.search(r"\bfunction\s*$", code[:match.start()]):
            continue
        return match
    return None
