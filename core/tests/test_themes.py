from __future__ import annotations

import json
from pathlib import Path

import pytest

from gatehouse_core.errors import ResourceReadError
from gatehouse_core.themes import BUNDLED_THEMES_DIR, ThemeProvider, load_theme


def test_bundled_default_theme_loads() -> None:
    theme = load_theme(BUNDLED_THEMES_DIR / "default")
    assert theme is not None
    assert theme.name == "default"
    assert theme.get_bool_property("redirectToAdmin") is False

    html = theme.render(
        {
            "product_name": "Gatehouse",
            "properties": theme.properties,
            "bootstrap": True,
            "local_user": True,
            "state_checker": "t",
        },
        "index.html",
    )
    assert 'name="stateChecker"' in html
    assert 'value="t"' in html


def test_read_resource_returns_content_and_mime_type() -> None:
    theme = load_theme(BUNDLED_THEMES_DIR / "default")
    assert theme is not None

    found = theme.read_resource("welcome.css")
    assert found is not None
    content, media_type = found
    assert b"body" in content
    assert media_type == "text/css"

    assert theme.read_resource("missing.css") is None
    assert theme.read_resource("../theme.json") is None


def test_bool_property_is_case_insensitive(tmp_path: Path) -> None:
    theme_dir = tmp_path / "custom"
    theme_dir.mkdir()
    (theme_dir / "theme.json").write_text(
        json.dumps({"name": "custom", "properties": {"redirectToAdmin": "TRUE"}}),
        encoding="utf-8",
    )

    theme = load_theme(theme_dir)
    assert theme is not None
    assert theme.get_bool_property("redirectToAdmin") is True


def test_invalid_theme_descriptor_is_ignored(tmp_path: Path) -> None:
    theme_dir = tmp_path / "broken"
    theme_dir.mkdir()
    (theme_dir / "theme.json").write_text(
        json.dumps({"name": "broken", "properties": {"redirectToAdmin": True}}),
        encoding="utf-8",
    )

    assert load_theme(theme_dir) is None


def test_provider_prefers_configured_dir_and_reports_missing(tmp_path: Path) -> None:
    override = tmp_path / "default"
    override.mkdir()
    (override / "theme.json").write_text(
        json.dumps({"name": "override", "properties": {}}), encoding="utf-8"
    )

    provider = ThemeProvider(name="default", themes_dirs=[tmp_path, BUNDLED_THEMES_DIR])
    active = provider.get_active_theme()
    assert active is not None
    assert active.name == "override"

    missing = ThemeProvider(name="nope", themes_dirs=[tmp_path, BUNDLED_THEMES_DIR])
    assert missing.get_active_theme() is None


def test_read_resource_failure_raises_resource_error(tmp_path: Path, monkeypatch) -> None:
    theme_dir = tmp_path / "custom"
    (theme_dir / "resources").mkdir(parents=True)
    (theme_dir / "resources" / "site.css").write_text("body {}", encoding="utf-8")
    (theme_dir / "theme.json").write_text(json.dumps({"name": "custom"}), encoding="utf-8")
    theme = load_theme(theme_dir)
    assert theme is not None

    def _unreadable(self: Path) -> bytes:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_bytes", _unreadable)

    with pytest.raises(ResourceReadError) as info:
        theme.read_resource("site.css")
    assert info.value.status_code == 500
    assert "site.css" not in info.value.message
