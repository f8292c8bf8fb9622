"""Single-pass lexical scanning used by the structural validator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DELIMITER_PAIRS: tuple[tuple[str, str], ...] = (("{", "}"), ("(", ")"), ("[", "]"))
_CLOSER_TO_OPENER = {close: open_ for open_, close in DELIMITER_PAIRS}
_OPENERS = frozenset(open_ for open_, _ in DELIMITER_PAIRS)


class ScanState(Enum):
    """Tokenizer states; delimiters only count in NORMAL."""

    NORMAL = "normal"
    LINE_COMMENT = "in_line_comment"
    BLOCK_COMMENT = "in_block_comment"
    SINGLE_QUOTE = "in_single_quote_string"
    DOUBLE_QUOTE = "in_double_quote_string"
    TEMPLATE = "in_template_string"


_QUOTE_STATES = {
    "'": ScanState.SINGLE_QUOTE,
    '"': ScanState.DOUBLE_QUOTE,
    "`": ScanState.TEMPLATE,
}
_STATE_QUOTES = {state: quote for quote, state in _QUOTE_STATES.items()}


@dataclass(slots=True, frozen=True)
class LexicalRules:
    """Which comment and string forms a file category recognizes."""

    line_comment_prefixes: tuple[str, ...] = ("//",)
    block_comments: bool = True
    quotes: tuple[str, ...] = ("'", '"', "`")
    escape_char: str = "\\"


@dataclass(slots=True, frozen=True)
class DelimiterPosition:
    """Delimiter character with 1-based line/column metadata."""

    char: str
    line: int
    col: int

    def describe(self) -> str:
        return f"'{self.char}' at line {self.line}, column {self.col}"


@dataclass(slots=True, frozen=True)
class PairCount:
    """Opening and closing totals for one delimiter pair."""

    open_char: str
    close_char: str
    opened: int
    closed: int

    @property
    def balanced(self) -> bool:
        return self.opened == self.closed


@dataclass(slots=True, frozen=True)
class DelimiterScan:
    """Result of scanning masked text for delimiter nesting."""

    counts: tuple[PairCount, ...]
    first_unmatched_closer: DelimiterPosition | None
    first_mismatch: tuple[DelimiterPosition, DelimiterPosition] | None
    unclosed: tuple[DelimiterPosition, ...]

    @property
    def balanced(self) -> bool:
        return (
            all(count.balanced for count in self.counts)
            and self.first_unmatched_closer is None
            and self.first_mismatch is None
            and not self.unclosed
        )


def mask_comments_and_strings(
    text: str,
    rules: LexicalRules | None = None,
    *,
    keep_strings: bool = False,
) -> str:
    """Blank out comments (and strings unless ``keep_strings``) preserving offsets.

    Newlines are never masked, so line and column positions in the output match
    the input. Single and double quoted strings end at a newline; template
    strings and block comments may span lines. Unterminated regions simply run
    to the end of their scope.
    """
    active = rules or LexicalRules()
    prefixes = tuple(sorted((p for p in active.line_comment_prefixes if p), key=len, reverse=True))
    chars = list(text)
    length = len(text)
    state = ScanState.NORMAL
    index = 0

    def blank(start: int, count: int = 1) -> None:
        for offset in range(start, min(start + count, length)):
            if chars[offset] != "\n":
                chars[offset] = " "

    while index < length:
        char = text[index]

        if state is ScanState.NORMAL:
            prefix = _match_prefix(text, index, prefixes)
            if prefix is not None:
                blank(index, len(prefix))
                state = ScanState.LINE_COMMENT
                index += len(prefix)
                continue
            if active.block_comments and text.startswith("/*", index):
                blank(index, 2)
                state = ScanState.BLOCK_COMMENT
                index += 2
                continue
            # Regex literals are not recognized; a quote inside one opens a string.
            if char in active.quotes:
                if not keep_strings:
                    blank(index)
                state = _QUOTE_STATES[char]
            index += 1
            continue

        if state is ScanState.LINE_COMMENT:
            if char == "\n":
                state = ScanState.NORMAL
            else:
                blank(index)
            index += 1
            continue

        if state is ScanState.BLOCK_COMMENT:
            if text.startswith("*/", index):
                blank(index, 2)
                state = ScanState.NORMAL
                index += 2
                continue
            blank(index)
            index += 1
            continue

        quote = _STATE_QUOTES[state]
        if char == "\n" and state is not ScanState.TEMPLATE:
            state = ScanState.NORMAL
        elif char == quote and not _is_escaped(text, index, active.escape_char):
            state = ScanState.NORMAL
            if not keep_strings:
                blank(index)
        elif not keep_strings:
            blank(index)
        index += 1

    return "".join(chars)


def scan_delimiters(masked_text: str) -> DelimiterScan:
    """Count and nest-check ``{}``, ``()`` and ``[]`` in already-masked text."""
    opened = dict.fromkeys(_OPENERS, 0)
    closed = dict.fromkeys(_CLOSER_TO_OPENER, 0)
    stack: list[DelimiterPosition] = []
    first_unmatched: DelimiterPosition | None = None
    first_mismatch: tuple[DelimiterPosition, DelimiterPosition] | None = None
    line = 1
    col = 1

    for char in masked_text:
        if char in _OPENERS:
            opened[char] += 1
            stack.append(DelimiterPosition(char=char, line=line, col=col))
        elif char in _CLOSER_TO_OPENER:
            closed[char] += 1
            position = DelimiterPosition(char=char, line=line, col=col)
            if not stack:
                if first_unmatched is None:
                    first_unmatched = position
            else:
                opener = stack.pop()
                if opener.char != _CLOSER_TO_OPENER[char] and first_mismatch is None:
                    first_mismatch = (opener, position)

        if char == "\n":
            line += 1
            col = 1
        else:
            col += 1

    counts = tuple(
        PairCount(
            open_char=open_char,
            close_char=close_char,
            opened=opened[open_char],
            closed=closed[close_char],
        )
        for open_char, close_char in DELIMITER_PAIRS
    )
    return DelimiterScan(
        counts=counts,
        first_unmatched_closer=first_unmatched,
        first_mismatch=first_mismatch,
        unclosed=tuple(stack),
    )


def find_matching_brace(masked_text: str, open_index: int) -> int | None:
    """Return the index of the ``}`` closing the ``{`` at ``open_index``."""
    if open_index < 0 or open_index >= len(masked_text) or masked_text[open_index] != "{":
        raise ValueError("open_index must point at an opening brace.")
    depth = 0
    for index in range(open_index, len(masked_text)):
        char = masked_text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def line_col(text: str, index: int) -> tuple[int, int]:
    """Return the 1-based line and column of a character offset."""
    line = text.count("\n", 0, index) + 1
    line_start = text.rfind("\n", 0, index) + 1
    return line, index - line_start + 1


def _match_prefix(text: str, index: int, prefixes: tuple[str, ...]) -> str | None:
    for prefix in prefixes:
        if text.startswith(prefix, index):
            return prefix
    return None


def _is_escaped(text: str, index: int, escape_char: str) -> bool:
    backslashes = 0
    cursor = index - 1
    while cursor >= 0 and text[cursor] == escape_char:
        backslashes += 1
        cursor -= 1
    return backslashes % 2 == 1
