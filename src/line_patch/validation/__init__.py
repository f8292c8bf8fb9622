"""Structural validation of proposed file content."""

from .file_types import (
    DEFAULT_EXTENSION_CATEGORIES,
    DEFAULT_EXTENSION_RULES,
    HASH_COMMENT_RULES,
    SASS_RULES,
    FileCategory,
    FileTypeTable,
    parse_category,
)
from .lexical import (
    DelimiterPosition,
    DelimiterScan,
    LexicalRules,
    PairCount,
    ScanState,
    find_matching_brace,
    line_col,
    mask_comments_and_strings,
    scan_delimiters,
)
from .structure import (
    BalanceReport,
    ContainmentReport,
    StructuralValidator,
    ValidationResult,
    check_balance,
    check_declaration_containment,
    validate,
)

__all__ = [
    "BalanceReport",
    "ContainmentReport",
    "DEFAULT_EXTENSION_CATEGORIES",
    "DEFAULT_EXTENSION_RULES",
    "DelimiterPosition",
    "DelimiterScan",
    "FileCategory",
    "FileTypeTable",
    "HASH_COMMENT_RULES",
    "LexicalRules",
    "PairCount",
    "SASS_RULES",
    "ScanState",
    "StructuralValidator",
    "ValidationResult",
    "check_balance",
    "check_declaration_containment",
    "find_matching_brace",
    "line_col",
    "mask_comments_and_strings",
    "parse_category",
    "scan_delimiters",
    "validate",
]
