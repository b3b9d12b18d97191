"""Element templates for Folio.

Custom node renderers produce their markup through small Jinja2 templates
stored in ``folio/templates/elements``. Autoescaping is on; HTML that was
already rendered (children, highlighted code) is passed in as ``Markup``.

Key class:
- TemplateEngine: Loads and renders element templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

# Path to the bundled element templates
TEMPLATES_DIR = Path(__file__).parent / "templates"


class TemplateEngine:
    """Renders element templates with Jinja2.

    The environment is built once and only read afterwards, so a single
    engine can be shared across concurrent renders.

    Attributes:
        template_dir: Directory that holds the ``elements/`` templates.
        env: Jinja2 environment.
    """

    def __init__(self, template_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            template_dir: Optional directory overriding the bundled templates.
        """
        self.template_dir = template_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(
                enabled_extensions=("html", "jinja"), default_for_string=True
            ),
            undefined=StrictUndefined,
        )

    def render(self, name: str, **context: Any) -> str:
        """Render ``elements/<name>.html.jinja``.

        Args:
            name: Element template name, e.g. ``"img"``.
            **context: Template variables.

        Returns:
            Rendered HTML string.
        """
        template = self.env.get_template(f"elements/{name}.html.jinja")
        return template.render(**context)
