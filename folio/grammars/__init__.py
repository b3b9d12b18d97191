"""Grammar files bundled with Folio.

Each module here defines a Pygments lexer class and is loaded by path at
startup through ``folio.highlight.load_grammar``.
"""
