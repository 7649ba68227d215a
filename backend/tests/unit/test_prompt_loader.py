"""Unit tests for PromptLoader service."""

from pathlib import Path

import pytest

from backend.src.services.prompt_loader import (
    INLINE_PROMPTS,
    PromptLoader,
    PromptLoaderError,
    DEFAULT_PROMPTS_DIR,
)


@pytest.fixture
def prompts_dir(tmp_path: Path) -> Path:
    """Create a temporary prompts directory with test templates."""
    prompts = tmp_path / "prompts"
    notes_dir = prompts / "notes"
    notes_dir.mkdir(parents=True)

    # Override one inline prompt with a Jinja2 template
    (notes_dir / "title.md").write_text(
        "Title in at most {{ max_words }} words for {{ user_id or 'anyone' }}"
    )

    return prompts


@pytest.fixture
def loader(prompts_dir: Path) -> PromptLoader:
    """Create a PromptLoader with the test prompts directory."""
    return PromptLoader(prompts_dir=prompts_dir)


class TestPromptLoaderInit:
    """Tests for PromptLoader initialization."""

    def test_init_with_existing_directory(self, prompts_dir: Path) -> None:
        """Loader initializes with Jinja2 environment when directory exists."""
        loader = PromptLoader(prompts_dir=prompts_dir)

        assert loader.prompts_dir == prompts_dir
        assert loader.env is not None

    def test_init_with_nonexistent_directory(self, tmp_path: Path) -> None:
        """Loader falls back to inline prompts when directory doesn't exist."""
        nonexistent = tmp_path / "nonexistent"
        loader = PromptLoader(prompts_dir=nonexistent)

        assert loader.prompts_dir == nonexistent
        assert loader.env is None

    def test_default_prompts_dir_is_backend_prompts(self) -> None:
        """DEFAULT_PROMPTS_DIR points to backend/prompts/."""
        assert DEFAULT_PROMPTS_DIR.name == "prompts"
        assert DEFAULT_PROMPTS_DIR.parent.name == "backend"


class TestPromptLoaderLoad:
    """Tests for PromptLoader.load() method."""

    def test_load_template_from_filesystem(self, loader: PromptLoader) -> None:
        result = loader.load("notes/title.md", {"max_words": 5, "user_id": "alice"})

        assert result == "Title in at most 5 words for alice"

    def test_load_template_with_default_values(self, loader: PromptLoader) -> None:
        result = loader.load("notes/title.md", {"max_words": 3})

        assert result.endswith("for anyone")

    def test_missing_template_uses_inline_fallback(self, loader: PromptLoader) -> None:
        result = loader.load("tags/categorize.md")

        assert "tag categorization assistant" in result

    def test_inline_organize_prompt_lists_sections(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        result = loader.load("categories/organize.md", {"sections": ["work", "health"]})

        assert "life sections: work, health." in result

    def test_unknown_path_raises(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        with pytest.raises(PromptLoaderError) as exc_info:
            loader.load("unknown/prompt.md", {})

        assert "Prompt not found" in str(exc_info.value)
        assert "unknown/prompt.md" in str(exc_info.value)

    def test_broken_template_raises(self, prompts_dir: Path) -> None:
        (prompts_dir / "notes" / "title.md").write_text("{{ unclosed ")
        loader = PromptLoader(prompts_dir=prompts_dir)

        with pytest.raises(PromptLoaderError):
            loader.load("notes/title.md", {})


class TestPromptLoaderListAvailable:
    def test_list_available(self, loader: PromptLoader) -> None:
        available = loader.list_available()

        assert available["filesystem"] == ["notes/title.md"]
        assert available["inline"] == sorted(INLINE_PROMPTS)

    def test_every_categorizer_prompt_has_inline_fallback(self) -> None:
        for path in (
            "notes/title.md",
            "notes/analyze.md",
            "notes/regenerate_tags.md",
            "notes/regenerate_title.md",
            "tags/categorize.md",
            "categories/organize.md",
            "email/analyze.md",
            "url/summarize.md",
            "url/analyze.md",
            "image/analyze.md",
        ):
            assert path in INLINE_PROMPTS


class TestPromptLoaderHotReload:
    def test_template_changes_are_reflected(self, prompts_dir: Path) -> None:
        loader = PromptLoader(prompts_dir=prompts_dir)
        assert "at most 5" in loader.load("notes/title.md", {"max_words": 5})

        (prompts_dir / "notes" / "title.md").write_text("Updated {{ max_words }}")

        assert PromptLoader(prompts_dir=prompts_dir).load("notes/title.md", {"max_words": 2}) == "Updated 2"
