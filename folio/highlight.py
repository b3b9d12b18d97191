"""Syntax highlighting for Folio code blocks.

Grammars and themes are registered once at startup and looked up by id for
every highlight call. Highlighting uses Pygments with inline styles, so the
output depends only on the code, the grammar and the theme.

Key classes:
- GrammarDefinition / ThemeDefinition: Startup registration records.
- GrammarRegistry: Immutable id -> lexer table built at startup.
- Highlighter: Turns code into highlighted HTML.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, load_lexer_from_file
from pygments.style import Style
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html

log = structlog.get_logger()

GRAMMARS_DIR = Path(__file__).parent / "grammars"

DEFAULT_THEME = "material"

_LINE_ENDING_RE = re.compile(r"\r\n|\r|\n")


class GrammarError(Exception):
    """Error raised when a grammar or theme cannot be registered.

    Attributes:
        grammar_id: Id of the grammar or theme that failed.
        message: Human-readable error message.
    """

    def __init__(self, grammar_id: str, message: str):
        self.grammar_id = grammar_id
        self.message = message
        super().__init__(f"{grammar_id}: {message}")


@dataclass(frozen=True)
class GrammarDefinition:
    """Registration record for a language grammar.

    Attributes:
        id: Language id used in code fences (e.g. "ts").
        scope_name: Scope name of the grammar (e.g. "source.ts").
        source_path: Optional Python file defining a Pygments lexer class.
        lexer_name: Pygments alias, or the class name inside ``source_path``.
            Defaults to ``id``.
        aliases: Extra fence ids served by the same grammar.
    """

    id: str
    scope_name: str
    source_path: Path | None = None
    lexer_name: str | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ThemeDefinition:
    """Registration record for a color theme (a Pygments style name)."""

    id: str


DEFAULT_GRAMMARS: tuple[GrammarDefinition, ...] = (
    GrammarDefinition("ts", "source.ts", lexer_name="typescript", aliases=("typescript",)),
    GrammarDefinition("js", "source.js", lexer_name="javascript", aliases=("javascript",)),
    GrammarDefinition("json", "source.json"),
    GrammarDefinition("python", "source.python", aliases=("py",)),
    GrammarDefinition("sh", "source.shell", lexer_name="bash", aliases=("bash", "shell")),
    GrammarDefinition("html", "text.html.basic"),
    GrammarDefinition("css", "source.css"),
    GrammarDefinition("yaml", "source.yaml", aliases=("yml",)),
    GrammarDefinition("sql", "source.sql"),
    GrammarDefinition("diff", "source.diff"),
    GrammarDefinition(
        "dotenv",
        "source.env",
        source_path=GRAMMARS_DIR / "dotenv.py",
        lexer_name="DotenvLexer",
        aliases=("env",),
    ),
)


@dataclass(frozen=True)
class Grammar:
    """A loaded grammar: its definition plus the lexer class to instantiate."""

    definition: GrammarDefinition
    lexer_class: type[Lexer]


def load_grammar(definition: GrammarDefinition) -> Grammar:
    """Load the lexer for a grammar definition.

    Args:
        definition: Grammar registration record.

    Returns:
        The loaded Grammar.

    Raises:
        GrammarError: If the lexer cannot be found or loaded.
    """
    try:
        if definition.source_path is not None:
            lexer = load_lexer_from_file(
                str(definition.source_path),
                definition.lexer_name or "CustomLexer",
            )
        else:
            lexer = get_lexer_by_name(definition.lexer_name or definition.id)
    except ClassNotFound as exc:
        raise GrammarError(definition.id, str(exc)) from exc
    except OSError as exc:
        raise GrammarError(
            definition.id, f"Cannot read grammar file {definition.source_path}: {exc}"
        ) from exc
    return Grammar(definition=definition, lexer_class=type(lexer))


def load_theme(theme: ThemeDefinition) -> type[Style]:
    """Resolve a theme id to its Pygments style class.

    Raises:
        GrammarError: If no style with that name exists.
    """
    try:
        return get_style_by_name(theme.id)
    except ClassNotFound as exc:
        raise GrammarError(theme.id, f"Unknown theme: {exc}") from exc


class GrammarRegistry:
    """Immutable lookup table of grammars and themes.

    Built once by startup code; the highlighter only reads from it, so one
    registry can be shared by concurrent renders.
    """

    def __init__(
        self,
        grammars: Iterable[GrammarDefinition] = DEFAULT_GRAMMARS,
        themes: Iterable[ThemeDefinition] = (ThemeDefinition(DEFAULT_THEME),),
    ):
        """Load every grammar and theme.

        Args:
            grammars: Grammar definitions to register.
            themes: Theme definitions to register.

        Raises:
            GrammarError: On a duplicate id or a grammar/theme that fails to load.
        """
        self._grammars: dict[str, Grammar] = {}
        self._themes: dict[str, type[Style]] = {}
        for definition in grammars:
            grammar = load_grammar(definition)
            for language_id in (definition.id, *definition.aliases):
                if language_id in self._grammars:
                    raise GrammarError(language_id, "Grammar id registered twice")
                self._grammars[language_id] = grammar
        for theme in themes:
            if theme.id in self._themes:
                raise GrammarError(theme.id, "Theme id registered twice")
            self._themes[theme.id] = load_theme(theme)

    def grammar(self, language_id: str | None) -> Grammar | None:
        if not language_id:
            return None
        return self._grammars.get(language_id.lower())

    def theme(self, theme_id: str) -> type[Style]:
        try:
            return self._themes[theme_id]
        except KeyError:
            raise GrammarError(theme_id, "Theme is not registered") from None

    @property
    def language_ids(self) -> list[str]:
        return sorted(self._grammars)

    @property
    def theme_ids(self) -> list[str]:
        return sorted(self._themes)


def plain_code_html(code: str, language_id: str | None = None) -> str:
    """Render code without highlighting.

    Args:
        code: Raw code text.
        language_id: Language id kept as a class for client-side use.

    Returns:
        ``<pre><code>`` fragment with the code escaped.
    """
    lang_class = f' class="language-{escape_html(language_id)}"' if language_id else ""
    return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>"


def _restore_line_endings(code: str, body: str) -> str:
    """Put back the \\r\\n and \\r line endings that Pygments turns into \\n."""
    endings = _LINE_ENDING_RE.findall(code)
    if all(ending == "\n" for ending in endings):
        return body
    parts = body.split("\n")
    if len(parts) != len(endings) + 1:
        return body
    return "".join(part + ending for part, ending in zip(parts, endings)) + parts[-1]


class Highlighter:
    """Highlights code using a GrammarRegistry.

    Holds no state besides the read-only registry, so calls can run
    concurrently and their output can be cached.

    Attributes:
        registry: Loaded grammars and themes.
    """

    def __init__(self, registry: GrammarRegistry | None = None):
        self.registry = registry or GrammarRegistry()

    def highlight(
        self,
        code: str,
        language_id: str | None,
        theme_id: str,
        line_numbers: Iterable[int] = (),
    ) -> str:
        """Highlight code as HTML.

        Line breaks and indentation are kept exactly. An unknown or missing
        language falls back to escaped, unhighlighted output.

        Args:
            code: Raw code text.
            language_id: Fence language id, or None.
            theme_id: Registered theme id.
            line_numbers: 1-based lines to mark as highlighted.

        Returns:
            HTML fragment.
        """
        grammar = self.registry.grammar(language_id)
        if grammar is None:
            if language_id:
                log.debug("highlight.unknown_language", language=language_id)
            return plain_code_html(code, language_id)

        style = self.registry.theme(theme_id)
        lexer = grammar.lexer_class(stripnl=False, ensurenl=False, tabsize=0)
        formatter = HtmlFormatter(
            style=style,
            noclasses=True,
            nowrap=True,
            hl_lines=list(line_numbers),
        )
        body = pygments_highlight(code, lexer, formatter)
        # The formatter terminates the last line even when the source does not.
        if not code.endswith(("\n", "\r")) and body.endswith("\n"):
            body = body[:-1]
        body = _restore_line_endings(code, body)
        background = style.background_color or "transparent"
        return (
            f'<pre class="highlight" data-lang="{escape_html(grammar.definition.id)}"'
            f' style="background-color: {background}"><code>{body}</code></pre>'
        )
