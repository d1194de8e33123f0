"""Jinja2 environments for note templates.

Packaged templates live in ``bookkeeper/templates/<group>/``. A library may
shadow any of them from ``.bookkeeper/templates/<group>/`` or, for a single
group, straight from ``.bookkeeper/templates/``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
)

logger = logging.getLogger(__name__)

OVERRIDE_DIR = Path(".bookkeeper") / "templates"


def override_dirs(library_root: Path, group: str) -> list[Path]:
    """Existing override directories for *group*, most specific first."""
    base = library_root / OVERRIDE_DIR
    return [d for d in (base / group, base) if d.is_dir()]


def build_template_environment(group: str, *, library_root: Path | None = None) -> Environment:
    """Environment that resolves library overrides before packaged templates.

    Undefined variables raise instead of rendering as empty text.
    """
    loaders: list[BaseLoader] = []
    if library_root is not None:
        dirs = override_dirs(library_root, group)
        if dirs:
            logger.debug("Template overrides for %s: %s", group, ", ".join(map(str, dirs)))
            loaders.append(FileSystemLoader([str(d) for d in dirs]))
    loaders.append(PackageLoader("bookkeeper", f"templates/{group}"))

    return Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def template_origin(env: Environment, name: str) -> Path | None:
    """File *name* resolves to in *env*, or None when no loader has it."""
    try:
        filename = env.get_template(name).filename
    except TemplateNotFound:
        return None
    return Path(filename) if filename else None
