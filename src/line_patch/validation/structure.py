"""Heuristic structural checks run before an edit is accepted."""

from __future__ import annotations

import re
from dataclasses import dataclass

from line_patch.errors import ErrorKind
from line_patch.validation.file_types import FileCategory, FileTypeTable
from line_patch.validation.lexical import (
    LexicalRules,
    PairCount,
    find_matching_brace,
    line_col,
    mask_comments_and_strings,
    scan_delimiters,
)

_EXPORT_ANCHOR_RE = re.compile(
    r"(?:\bexport\s+default|\bmodule\s*\.\s*exports\s*=)\s*(?:[A-Za-z_$][\w$.]*\s*\(\s*)?\{"
)
_TRAILER_RE = re.compile(
    r"\A[\s)]*(?:(?:satisfies|as)\s+[A-Za-z_$][\w$.<>,\s]*?)?\s*[;,]?\s*\Z"
)
_DECLARATION_RE = re.compile(
    r"^[ \t]*(?:\"([^\"\n]+)\"|'([^'\n]+)'|([A-Za-z_$][\w$-]*))[ \t]*:(?!:)",
    re.MULTILINE,
)
_SAME_LINE_DECLARATION_RE = re.compile(
    r"[ \t)]*,?[ \t]*(?:\"([^\"\n]+)\"|'([^'\n]+)'|([A-Za-z_$][\w$-]*))[ \t]*:(?!:)"
)
_OPEN_CHARS = "{(["
_CLOSE_CHARS = "})]"


@dataclass(slots=True, frozen=True)
class BalanceReport:
    """Delimiter balance of one piece of content."""

    balanced: bool
    diagnostics: tuple[str, ...]
    counts: tuple[PairCount, ...]


@dataclass(slots=True, frozen=True)
class ContainmentReport:
    """Outcome of the dangling-declaration heuristic."""

    ok: bool
    diagnostics: tuple[str, ...]
    declaration: str | None = None
    line: int | None = None


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Pass/fail verdict for a proposed after-edit content."""

    valid: bool
    error: str | None = None
    error_kind: ErrorKind | None = None
    diagnostics: tuple[str, ...] = ()


class StructuralValidator:
    """Lightweight syntax sanity checks keyed by file category.

    Never raises on malformed text; the worst case is a failed result with a
    best-effort diagnostic.
    """

    def __init__(
        self,
        file_types: FileTypeTable | None = None,
        *,
        check_balance_enabled: bool = True,
        check_containment_enabled: bool = True,
    ) -> None:
        self._file_types = file_types or FileTypeTable()
        self._check_balance = check_balance_enabled
        self._check_containment = check_containment_enabled

    @property
    def file_types(self) -> FileTypeTable:
        return self._file_types

    def category(self, file_type_hint: str | FileCategory | None) -> FileCategory:
        return self._file_types.resolve(file_type_hint)

    def lexical_rules(self, file_type_hint: str | FileCategory | None) -> LexicalRules:
        return self._file_types.lexical_rules(file_type_hint)

    def check_balance(
        self, content: str, file_type_hint: str | FileCategory | None = None
    ) -> BalanceReport:
        """Count ``{}``, ``()`` and ``[]`` outside strings and comments."""
        masked = mask_comments_and_strings(content, self.lexical_rules(file_type_hint))
        scan = scan_delimiters(masked)

        diagnostics: list[str] = []
        for count in scan.counts:
            if not count.balanced:
                diagnostics.append(
                    f"'{count.open_char}' x{count.opened} vs '{count.close_char}' x{count.closed}"
                )
        if scan.first_unmatched_closer is not None:
            diagnostics.append(f"unmatched closing {scan.first_unmatched_closer.describe()}")
        if scan.first_mismatch is not None:
            opener, closer = scan.first_mismatch
            diagnostics.append(f"{opener.describe()} closed by {closer.describe()}")
        if scan.unclosed:
            diagnostics.append(f"unclosed {scan.unclosed[0].describe()}")
        return BalanceReport(
            balanced=scan.balanced,
            diagnostics=tuple(diagnostics),
            counts=scan.counts,
        )

    def check_declaration_containment(
        self, content: str, file_type_hint: str | FileCategory | None = None
    ) -> ContainmentReport:
        """Flag ``key:`` entries left after the exported object's closing brace."""
        category = self.category(file_type_hint)
        if not category.checks_containment:
            return ContainmentReport(ok=True, diagnostics=())

        masked = mask_comments_and_strings(content, self.lexical_rules(file_type_hint))
        open_index = _locate_top_level_object(masked, category)
        if open_index is None:
            return ContainmentReport(ok=True, diagnostics=("no top-level object found",))
        close_index = find_matching_brace(masked, open_index)
        if close_index is None:
            return ContainmentReport(ok=True, diagnostics=("top-level object is not closed",))
        if _TRAILER_RE.match(masked[close_index + 1 :]):
            return ContainmentReport(ok=True, diagnostics=())

        strings_kept = mask_comments_and_strings(
            content, self.lexical_rules(file_type_hint), keep_strings=True
        )
        found = _find_dangling_declaration(strings_kept, masked, close_index)
        if found is None:
            return ContainmentReport(
                ok=True,
                diagnostics=("content follows the top-level object but no declaration found",),
            )
        name, index = found
        line, _ = line_col(content, index)
        return ContainmentReport(
            ok=False,
            diagnostics=(
                f"'{name}' at line {line} follows the closing brace of the top-level object",
            ),
            declaration=name,
            line=line,
        )

    def is_single_object_module(
        self, content: str, file_type_hint: str | FileCategory | None = None
    ) -> bool:
        """Return True when content is one balanced top-level object plus a trailer."""
        category = self.category(file_type_hint)
        if not category.checks_containment:
            return False
        masked = mask_comments_and_strings(content, self.lexical_rules(file_type_hint))
        open_index = _locate_top_level_object(masked, category)
        if open_index is None:
            return False
        close_index = find_matching_brace(masked, open_index)
        if close_index is None:
            return False
        return _TRAILER_RE.match(masked[close_index + 1 :]) is not None

    def validate(
        self,
        before_content: str,
        after_content: str,
        file_type_hint: str | FileCategory | None = None,
    ) -> ValidationResult:
        """Check balance of the new content, then declaration containment."""
        category = self.category(file_type_hint)

        if self._check_balance:
            balance = self.check_balance(after_content, file_type_hint)
            if not balance.balanced:
                return ValidationResult(
                    valid=False,
                    error=f"Unmatched braces/brackets: {'; '.join(balance.diagnostics)}",
                    error_kind=ErrorKind.UNBALANCED_BRACES,
                    diagnostics=balance.diagnostics,
                )

        if (
            self._check_containment
            and category.checks_containment
            and self.is_single_object_module(before_content, file_type_hint)
        ):
            containment = self.check_declaration_containment(after_content, file_type_hint)
            if not containment.ok:
                return ValidationResult(
                    valid=False,
                    error=(
                        f"Structural issue: {containment.declaration} appears outside "
                        "enclosing block"
                    ),
                    error_kind=ErrorKind.DECLARATION_OUTSIDE_BLOCK,
                    diagnostics=containment.diagnostics,
                )

        return ValidationResult(valid=True)


_DEFAULT_VALIDATOR = StructuralValidator()


def check_balance(content: str, file_type_hint: str | FileCategory | None = None) -> BalanceReport:
    """Module-level shortcut using the default extension table."""
    return _DEFAULT_VALIDATOR.check_balance(content, file_type_hint)


def check_declaration_containment(
    content: str, file_type_hint: str | FileCategory | None = None
) -> ContainmentReport:
    """Module-level shortcut using the default extension table."""
    return _DEFAULT_VALIDATOR.check_declaration_containment(content, file_type_hint)


def validate(
    before_content: str,
    after_content: str,
    file_type_hint: str | FileCategory | None = None,
) -> ValidationResult:
    """Module-level shortcut using the default extension table."""
    return _DEFAULT_VALIDATOR.validate(before_content, after_content, file_type_hint)


def _locate_top_level_object(masked: str, category: FileCategory) -> int | None:
    if category is FileCategory.JSON:
        stripped = masked.lstrip()
        if not stripped.startswith("{"):
            return None
        return len(masked) - len(stripped)
    match = _EXPORT_ANCHOR_RE.search(masked)
    if match is None:
        return None
    return match.end() - 1


def _find_dangling_declaration(
    strings_kept: str, masked: str, close_index: int
) -> tuple[str, int] | None:
    start = close_index + 1
    same_line = _SAME_LINE_DECLARATION_RE.match(strings_kept, start)
    if same_line is not None and masked[same_line.end() - 1] == ":":
        return _declaration_name(same_line), same_line.start()

    for match in _DECLARATION_RE.finditer(strings_kept, start):
        # A colon masked out belongs to a string, not to code.
        if masked[match.end() - 1] != ":":
            continue
        if _nesting_depth(masked, start, match.start()) == 0:
            return _declaration_name(match), match.start()
    return None


def _declaration_name(match: re.Match[str]) -> str:
    return next(group for group in match.groups() if group)


def _nesting_depth(masked: str, start: int, end: int) -> int:
    depth = 0
    for char in masked[start:end]:
        if char in _OPEN_CHARS:
            depth += 1
        elif char in _CLOSE_CHARS:
            depth = max(depth - 1, 0)
    return depth
