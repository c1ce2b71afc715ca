"""Welcome-page themes.

A theme directory holds:
- theme.json: `{"name": ..., "properties": {<str>: <str>}}`
- templates/: Jinja2 templates (`index.html` renders the welcome page)
- resources/: static files served under `welcome-content/`

Lookup checks the configured themes dir first, then the themes bundled here.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates
from jsonschema import Draft202012Validator

from gatehouse_core.errors import ResourceReadError

logger = logging.getLogger(__name__)

BUNDLED_THEMES_DIR = Path(__file__).resolve().parent

THEME_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "properties": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
    },
    "additionalProperties": True,
}


def _validate_theme_json(data: Any) -> list[str]:
    v = Draft202012Validator(THEME_SCHEMA)
    errors: list[str] = []
    for e in v.iter_errors(data):
        p = ".".join(str(x) for x in e.path)
        errors.append(f"{p}: {e.message}" if p else e.message)
    return errors


@dataclass
class Theme:
    name: str
    directory: Path
    properties: dict[str, str] = field(default_factory=dict)
    _templates: Jinja2Templates | None = field(default=None, init=False, repr=False)

    @property
    def templates_dir(self) -> Path:
        return self.directory / "templates"

    @property
    def resources_dir(self) -> Path:
        return self.directory / "resources"

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def get_bool_property(self, key: str, default: bool = False) -> bool:
        raw = self.properties.get(key)
        if raw is None:
            return default
        return raw.strip().lower() == "true"

    def render(self, view_model: dict[str, Any], template_name: str) -> str:
        if self._templates is None:
            self._templates = Jinja2Templates(directory=str(self.templates_dir))
        return self._templates.get_template(template_name).render(view_model)

    def read_resource(self, path: str) -> tuple[bytes, str] | None:
        """Return `(content, mime_type)` for a resource, or None when not found."""

        base = self.resources_dir.resolve()
        candidate = (base / path).resolve()
        if not candidate.is_relative_to(base) or not candidate.is_file():
            return None

        try:
            content = candidate.read_bytes()
        except OSError as exc:
            raise ResourceReadError(f"Failed to read theme resource {path!r}: {exc}") from exc

        guess, _enc = mimetypes.guess_type(candidate.name)
        return content, guess or "application/octet-stream"


def load_theme(directory: Path) -> Theme | None:
    theme_json = directory / "theme.json"
    if not theme_json.is_file():
        return None

    try:
        data = json.loads(theme_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Theme descriptor %s is unreadable: %s", theme_json, exc)
        return None

    errors = _validate_theme_json(data)
    if errors:
        logger.error("Theme descriptor %s is invalid: %s", theme_json, "; ".join(errors))
        return None

    return Theme(
        name=str(data.get("name") or directory.name),
        directory=directory,
        properties=dict(data.get("properties") or {}),
    )


class ThemeProvider:
    def __init__(self, *, name: str, themes_dirs: list[Path]) -> None:
        self.name = name
        self.themes_dirs = themes_dirs
        self._active: Theme | None = None

    def get_active_theme(self) -> Theme | None:
        if self._active is not None:
            return self._active

        for base in self.themes_dirs:
            theme = load_theme(base / self.name)
            if theme is not None:
                self._active = theme
                return theme

        logger.error(
            "Theme %r was not found in %s; check the theme.name setting",
            self.name,
            ", ".join(str(d) for d in self.themes_dirs),
        )
        return None
