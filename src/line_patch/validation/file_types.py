"""File-type categories that select validator heuristics."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import PurePosixPath

from line_patch.validation.lexical import LexicalRules


class FileCategory(str, Enum):
    """Closed set of validator dispatch categories."""

    JSON = "json"
    JS_LIKE = "js_like"
    CSS_LIKE = "css_like"
    GENERIC = "generic"

    @property
    def lexical_rules(self) -> LexicalRules:
        return _RULES[self]

    @property
    def checks_containment(self) -> bool:
        """Return True for categories whose files export a single object literal."""
        return self in (FileCategory.JSON, FileCategory.JS_LIKE)


_RULES: dict[FileCategory, LexicalRules] = {
    FileCategory.JSON: LexicalRules(line_comment_prefixes=("//",), quotes=('"',)),
    FileCategory.JS_LIKE: LexicalRules(),
    FileCategory.CSS_LIKE: LexicalRules(line_comment_prefixes=(), quotes=("'", '"')),
    FileCategory.GENERIC: LexicalRules(),
}

SASS_RULES = LexicalRules(line_comment_prefixes=("//",), quotes=("'", '"'))
HASH_COMMENT_RULES = LexicalRules(
    line_comment_prefixes=("#",), block_comments=False, quotes=("'", '"')
)

DEFAULT_EXTENSION_CATEGORIES: Mapping[str, FileCategory] = {
    ".json": FileCategory.JSON,
    ".jsonc": FileCategory.JSON,
    ".json5": FileCategory.JSON,
    ".js": FileCategory.JS_LIKE,
    ".jsx": FileCategory.JS_LIKE,
    ".mjs": FileCategory.JS_LIKE,
    ".cjs": FileCategory.JS_LIKE,
    ".ts": FileCategory.JS_LIKE,
    ".tsx": FileCategory.JS_LIKE,
    ".mts": FileCategory.JS_LIKE,
    ".cts": FileCategory.JS_LIKE,
    ".css": FileCategory.CSS_LIKE,
    ".scss": FileCategory.CSS_LIKE,
    ".sass": FileCategory.CSS_LIKE,
    ".less": FileCategory.CSS_LIKE,
    ".pcss": FileCategory.CSS_LIKE,
    ".html": FileCategory.GENERIC,
    ".htm": FileCategory.GENERIC,
    ".vue": FileCategory.GENERIC,
    ".svelte": FileCategory.GENERIC,
    ".astro": FileCategory.GENERIC,
    ".py": FileCategory.GENERIC,
    ".sh": FileCategory.GENERIC,
    ".bash": FileCategory.GENERIC,
    ".yml": FileCategory.GENERIC,
    ".yaml": FileCategory.GENERIC,
    ".toml": FileCategory.GENERIC,
    ".conf": FileCategory.GENERIC,
}

# Applied only while the extension still maps to its default category.
DEFAULT_EXTENSION_RULES: Mapping[str, LexicalRules] = {
    ".scss": SASS_RULES,
    ".sass": SASS_RULES,
    ".less": SASS_RULES,
    ".py": HASH_COMMENT_RULES,
    ".sh": HASH_COMMENT_RULES,
    ".bash": HASH_COMMENT_RULES,
    ".yml": HASH_COMMENT_RULES,
    ".yaml": HASH_COMMENT_RULES,
    ".toml": HASH_COMMENT_RULES,
    ".conf": HASH_COMMENT_RULES,
}


class FileTypeTable:
    """Extension-to-category mapping with deterministic hint resolution."""

    def __init__(self, extra: Mapping[str, FileCategory] | None = None) -> None:
        table = dict(DEFAULT_EXTENSION_CATEGORIES)
        for extension, category in (extra or {}).items():
            table[normalize_extension(extension)] = category
        self._table = table

    def category_for_path(self, path: str) -> FileCategory:
        """Select a category from a file path's extension, else GENERIC."""
        return self._table.get(_suffix(path), FileCategory.GENERIC)

    def resolve(self, hint: str | FileCategory | None, path: str | None = None) -> FileCategory:
        """Resolve a caller hint: category name, extension, or path.

        An empty hint falls back to ``path`` when given. Anything unrecognized
        is GENERIC.
        """
        key = _classify(hint, path)
        if isinstance(key, FileCategory):
            return key
        if not key:
            return FileCategory.GENERIC
        return self._table.get(key, FileCategory.GENERIC)

    def lexical_rules(
        self, hint: str | FileCategory | None, path: str | None = None
    ) -> LexicalRules:
        """Return comment and string rules for a hint.

        A bare category name always gets the category's rules. An extension or
        path gets its extension's own rules when it has some and the table still
        maps it to the category those rules were written for.
        """
        key = _classify(hint, path)
        category = self.resolve(hint, path)
        if isinstance(key, FileCategory) or key not in DEFAULT_EXTENSION_RULES:
            return category.lexical_rules
        if self._table.get(key) is DEFAULT_EXTENSION_CATEGORIES[key]:
            return DEFAULT_EXTENSION_RULES[key]
        return category.lexical_rules

    def extensions(self) -> dict[str, str]:
        """Return the effective table as plain strings, sorted by extension."""
        return {ext: self._table[ext].value for ext in sorted(self._table)}


def _classify(hint: str | FileCategory | None, path: str | None) -> FileCategory | str | None:
    if isinstance(hint, FileCategory):
        return hint
    normalized = (hint or "").strip().lower()
    if not normalized:
        return _suffix(path) if path else None
    for category in FileCategory:
        if normalized == category.value:
            return category
    if "/" in normalized or "\\" in normalized or "." in normalized[1:]:
        return _suffix(normalized)
    return normalize_extension(normalized)


def _suffix(path: str) -> str:
    return PurePosixPath(path.replace("\\", "/")).suffix.lower()


def normalize_extension(extension: str) -> str:
    stripped = extension.strip().lower()
    if not stripped.startswith("."):
        stripped = f".{stripped}"
    return stripped


def parse_category(value: str) -> FileCategory:
    """Parse a category name, raising ValueError on unknown names."""
    try:
        return FileCategory(value.strip().lower())
    except ValueError:
        allowed = ", ".join(category.value for category in FileCategory)
        raise ValueError(f"Unknown file category '{value}'; expected one of {allowed}.") from None
