"""Pygments lexer for ``.env`` files."""

from pygments.lexer import RegexLexer, bygroups
from pygments.token import Comment, Name, Operator, String, Text


class DotenvLexer(RegexLexer):
    """Lexer for dotenv files: ``KEY=value`` lines and ``#`` comments."""

    name = "Dotenv"
    aliases = ["dotenv", "env"]
    filenames = [".env", "*.env"]

    tokens = {
        "root": [
            (r"\s*#.*?$", Comment.Single),
            (
                r"(\s*)(export)(\s+)",
                bygroups(Text, Name.Builtin, Text),
            ),
            (
                r"(\s*)([A-Za-z_][A-Za-z0-9_.]*)(\s*)(=)",
                bygroups(Text, Name.Variable, Text, Operator),
                "value",
            ),
            (r"\n", Text),
            (r".", Text),
        ],
        "value": [
            (r'"(\\\\|\\"|[^"])*"', String.Double),
            (r"'[^']*'", String.Single),
            (r"\$\{[^}]*\}", Name.Variable),
            (r"[ \t]+#.*?$", Comment.Single),
            (r"[^\n\"'$#]+", String),
            (r"[$#]", String),
            (r"\n", Text, "#pop"),
        ],
    }
