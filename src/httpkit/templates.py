"""
=============================================================================
FILE RENDERER
=============================================================================

Resolves files under the public root and renders them for handlers:

    public/
    ├── index.html            → returned as-is
    └── hello.html.tmpl       → "$name" placeholders substituted

    @server.get("/hello/:name")
    def hello(ctx):
        return server.render("hello.html.tmpl", name=ctx.params["name"])

Files ending in ".tmpl" go through string.Template ($name / ${name});
a placeholder with no matching variable raises KeyError, which the
pipeline turns into a 500. Every other file is returned as UTF-8 text.

Paths are resolved and must stay inside the root: "../secret" is treated
exactly like a missing file.

=============================================================================
"""

from pathlib import Path
from string import Template
from typing import Any, Union
import logging

from .errors import TemplateNotFound


logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".tmpl"


class FileRenderer:
    """
    Render files relative to a root directory.

    Args:
        root: Directory files are looked up in. It does not need to exist
              until the first render() call.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def resolve(self, name: str) -> Path:
        """
        Map a relative name to a file inside the root.

        Raises:
            TemplateNotFound: Missing file, a directory, or a path that
                              escapes the root
        """
        path = (self.root / name.lstrip("/")).resolve()

        try:
            path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path traversal attempt: {name}")
            raise TemplateNotFound(name)

        if not path.is_file():
            raise TemplateNotFound(name)
        return path

    def render(self, name: str, /, **variables: Any) -> str:
        """
        Read a file and, for .tmpl files, substitute the variables.

        The path is positional-only so templates may use $name and $file.
        """
        path = self.resolve(name)
        content = path.read_text(encoding="utf-8")

        if path.name.endswith(TEMPLATE_SUFFIX):
            return Template(content).substitute(
                {key: str(value) for key, value in variables.items()}
            )
        return content
