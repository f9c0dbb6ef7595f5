"""Tests for PromptManager - Jinja2 template rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from src.sitecraft.prompts.prompt_manager import PromptManager


def test_renders_generation_request_template() -> None:
    rendered = PromptManager().render(
        "generation_request.jinja2",
        language="en",
        conversation_history="User: hi",
        prompt="Build a landing page",
        project_files="[]",
    )

    assert "<user_request>Build a landing page</user_request>" in rendered
    assert "<project_files>[]</project_files>" in rendered


def test_missing_variable_raises() -> None:
    with pytest.raises(UndefinedError):
        PromptManager().render("generation_request.jinja2", language="en")


def test_missing_template_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        PromptManager(template_dir=tmp_path / "missing")


def test_custom_template_directory(tmp_path: Path) -> None:
    (tmp_path / "hello.jinja2").write_text("Hello {{ name }}", encoding="utf-8")

    assert PromptManager(template_dir=tmp_path).render("hello.jinja2", name="SiteCraft") == "Hello SiteCraft"


def test_renders_critique_request_template() -> None:
    rendered = PromptManager().render("critique_request.jinja2", language="en", project_files='[{"name": "a.css"}]')

    assert rendered.startswith("<language_preference>en</language_preference>")
    assert '<project_files>[{"name": "a.css"}]</project_files>' in rendered
