from __future__ import annotations

from line_patch.errors import ErrorKind
from line_patch.validation import (
    FileCategory,
    StructuralValidator,
    check_balance,
    check_declaration_containment,
    validate,
)

TAILWIND_CONFIG = """import type { Config } from "tailwindcss";

export default {
  content: ["./src/**/*.{ts,tsx}"],
  theme: {
    extend: {},
  },
  plugins: [require("tailwindcss-animate")],
} satisfies Config;
"""

DANGLING_PLUGINS = """import type { Config } from "tailwindcss";

export default {
  content: ["./src/**/*.{ts,tsx}"],
  theme: {
    extend: {},
  },
} satisfies Config;
plugins: [require("tailwindcss-animate")],
"""


def test_balanced_content_passes() -> None:
    report = check_balance("function run() {\n  return [1, (2)];\n}\n", "app.js")

    assert report.balanced is True
    assert report.diagnostics == ()


def test_unclosed_block_reports_counts_and_position() -> None:
    before = "function run() {\n  return 1;\n}\n"
    after = "function run() {\n  if (true) {\n  return 1;\n}\n"

    result = validate(before, after, "src/app.js")

    assert result.valid is False
    assert result.error_kind is ErrorKind.UNBALANCED_BRACES
    assert result.error is not None
    assert result.error.startswith("Unmatched braces/brackets: '{' x2 vs '}' x1")
    assert "unclosed '{' at line 1, column 16" in result.diagnostics


def test_delimiters_inside_strings_and_comments_are_ignored() -> None:
    content = 'const open = "{";\nconst close = \'}\'; // )\n/* [ */\n'

    assert check_balance(content, "js").balanced is True


def test_css_file_is_balance_checked() -> None:
    report = check_balance(".card {\n  color: red;\n", "src/index.css")

    assert report.balanced is False
    assert report.diagnostics[0] == "'{' x1 vs '}' x0"


def test_generic_file_is_still_balance_checked() -> None:
    result = validate("text\n", "text (unclosed\n", "notes.md")

    assert result.valid is False
    assert result.error_kind is ErrorKind.UNBALANCED_BRACES


def test_balance_check_can_be_disabled() -> None:
    validator = StructuralValidator(check_balance_enabled=False)

    result = validator.validate("a {}\n", "a {\n", "site.css")

    assert result.valid is True


def test_config_closed_before_plugins_is_rejected() -> None:
    result = validate(TAILWIND_CONFIG, DANGLING_PLUGINS, "tailwind.config.ts")

    assert result.valid is False
    assert result.error_kind is ErrorKind.DECLARATION_OUTSIDE_BLOCK
    assert result.error == "Structural issue: plugins appears outside enclosing block"
    assert result.diagnostics == (
        "'plugins' at line 9 follows the closing brace of the top-level object",
    )


def test_edit_inside_exported_object_is_accepted() -> None:
    after = TAILWIND_CONFIG.replace("extend: {},", "extend: {\n      colors: {},\n    },")

    assert validate(TAILWIND_CONFIG, after, "tailwind.config.ts").valid is True


def test_same_line_declaration_after_closing_brace_is_flagged() -> None:
    content = "export default {\n  a: 1,\n}, b: 2;\n"

    report = check_declaration_containment(content, "config.js")

    assert report.ok is False
    assert report.declaration == "b"
    assert report.line == 3


def test_json_key_after_root_object_is_flagged() -> None:
    before = '{\n  "name": "app",\n  "version": "1.0.0"\n}\n'
    after = '{\n  "name": "app"\n}\n"version": "1.0.0"\n'

    result = validate(before, after, "package.json")

    assert result.valid is False
    assert result.error == "Structural issue: version appears outside enclosing block"


def test_call_wrapped_and_commonjs_exports_are_single_object_modules() -> None:
    validator = StructuralValidator()
    wrapped = (
        "import { defineConfig } from 'vite';\n\n"
        "export default defineConfig({\n  plugins: [],\n});\n"
    )
    commonjs = "module.exports = {\n  presets: ['env'],\n};\n"

    assert validator.is_single_object_module(wrapped, "vite.config.ts") is True
    assert validator.is_single_object_module(commonjs, "babel.config.js") is True
    assert check_declaration_containment(wrapped, "vite.config.ts").ok is True


def test_colon_inside_multiline_template_is_not_a_declaration() -> None:
    content = "export default {\n  a: 1,\n};\nconst help = `\nusage: run it\n`;\n"

    report = check_declaration_containment(content, "cli.config.js")

    assert report.ok is True


def test_keys_of_a_later_nested_object_are_not_flagged() -> None:
    content = "export default {\n  a: 1,\n};\nconst other = {\n  b: 2,\n};\n"

    assert check_declaration_containment(content, "config.js").ok is True


def test_containment_skipped_when_file_was_not_a_single_object_module() -> None:
    before = "const base = {};\nexport default {\n  x: 1,\n};\nregister(base);\n"
    after = "const base = {};\nexport default {\n  x: 1,\n};\ny: 2\nregister(base);\n"

    assert validate(before, after, "setup.js").valid is True


def test_containment_can_be_disabled() -> None:
    validator = StructuralValidator(check_containment_enabled=False)

    assert validator.validate(TAILWIND_CONFIG, DANGLING_PLUGINS, "tailwind.config.ts").valid


def test_css_never_runs_containment() -> None:
    report = check_declaration_containment("a {}\ncolor: red;\n", FileCategory.CSS_LIKE)

    assert report.ok is True
    assert report.diagnostics == ()


def test_declaration_on_closing_brace_line_without_comma_is_flagged() -> None:
    before = "export default {\n  content: [],\n};\n"
    after = "export default {\n  content: [],\n} plugins: [];\n"

    result = validate(before, after, "tailwind.config.js")

    assert result.valid is False
    assert result.error == "Structural issue: plugins appears outside enclosing block"


def test_scss_line_comment_delimiters_are_ignored() -> None:
    before = "// layout (grid\n.a {\n  color: red;\n}\n"
    after = "// layout (grid\n.a {\n  color: blue;\n}\n"

    assert validate(before, after, "src/a.scss").valid is True
    assert validate(before, after, "styles/theme.less").valid is True


def test_plain_css_keeps_double_slash_in_urls() -> None:
    content = ".hero {\n  background: url(http://cdn.example/x.png);\n}\n"

    assert check_balance(content, "src/index.css").balanced is True


def test_hex_colours_in_markup_do_not_hide_braces() -> None:
    html = (
        "<html>\n<head><title>App</title>\n"
        "<style>body { color: #333; }</style>\n</head>\n</html>\n"
    )
    vue = "<template><div /></template>\n<style>\n.a { color: #fff; }\n</style>\n"

    retitled = html.replace("<title>App</title>", "<title>Dashboard</title>")
    assert validate(html, retitled, "index.html").valid is True
    assert validate(vue, vue.replace("#fff", "#000"), "src/App.vue").valid is True
    assert check_balance(vue, "src/Widget.svelte").balanced is True


def test_hash_comments_apply_only_to_hash_comment_files() -> None:
    content = "settings = {  # }\n}\n"

    assert check_balance(content, "settings.conf").balanced is True
    assert check_balance(content, "build.py").balanced is True
    assert check_balance(content, "notes.md").balanced is False
