"""Jinja2-based prompt template loader for the note analysis calls.

This service loads prompt templates from the backend/prompts/ directory and renders
them with context variables. It supports hot-reload (no caching) so prompts can be
edited without restarting the server.

Every prompt used by the categorizer also has an inline fallback, so the service
works without a prompts directory.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

logger = logging.getLogger(__name__)

# backend/src/services/prompt_loader.py -> backend/prompts/
DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"

INLINE_PROMPTS: Dict[str, str] = {
    "notes/title.md": (
        "Generate a short, concise title (maximum {{ max_words or 5 }} words) for the "
        "following note. Respond with just the title, nothing else."
    ),
    "notes/analyze.md": (
        "You are a helpful assistant that categorizes notes and extracts relevant tags. "
        'Respond only with JSON in the format: {"category": "string", "tags": ["string"]}'
    ),
    "notes/regenerate_tags.md": (
        "Generate 3-5 relevant tags for the following note. "
        "Return only a JSON array of strings, nothing else."
    ),
    "notes/regenerate_title.md": (
        "Generate a concise, descriptive title (2-5 words) for the following note. "
        "Return only the title as a string, nothing else."
    ),
    "tags/categorize.md": """You are a tag categorization assistant. Given a list of tags, group them into 3-5 broad categories.
Return ONLY a valid JSON object where each key is a category and its value is an array of tags that belong to that category.
Do not include any explanations or additional text, just the JSON object.
Example format:
{
  "Work": ["meeting", "project", "deadline"],
  "Personal": ["family", "health", "hobby"],
  "Learning": ["study", "course", "tutorial"]
}
""",
    "categories/organize.md": """You are a category organization assistant. Given a set of categories, group them into major life sections: {{ sections | join(', ') }}.
Return ONLY a valid JSON object where each key is one of these life sections and its value is an array of categories that belong to that section.
Do not include any explanations or additional text, just the JSON object.
Example format:
{
  "work": ["meetings", "projects"],
  "health": ["exercise", "nutrition"],
  "social": ["friends", "events"]
}
""",
    "email/analyze.md": """Analyze the following email and provide:
1. A category that best describes the content
2. Relevant tags (including the subject as first tag)
3. Any key metadata or insights

Respond with a JSON object containing:
{
  "category": "string",
  "tags": ["string"],
  "metadata": {
    "email_subject": "string",
    "sender": "string",
    "analysis_notes": "string"
  }
}
""",
    "url/summarize.md": (
        "Summarize the main points of this webpage content in a clear and concise way. "
        "Focus on the key information and maintain the original meaning."
    ),
    "url/analyze.md": """Analyze the following content and provide a category, title, and relevant tags.
Respond with a JSON object containing:
- "category" (string): A broad category for the content
- "title" (string): A concise, descriptive title (2-5 words)
- "tags" (array of strings): 3-5 relevant tags

Do not include any markdown formatting or code blocks in your response.
""",
    "image/analyze.md": (
        "You are an AI that analyzes images and provides detailed descriptions with relevant "
        "tags and categories. Respond with a JSON object containing: description (string), "
        "tags (array of strings), and category (string)."
    ),
}


class PromptLoaderError(Exception):
    """Raised when a prompt cannot be loaded."""

    pass


class PromptLoader:
    """Load and render Jinja2 prompt templates.

    Supports:
    - Loading templates from filesystem (backend/prompts/)
    - Fallback to inline prompts when a template is missing
    - Hot-reload: templates are reloaded on every call (no caching)

    Example:
        >>> loader = PromptLoader()
        >>> system_prompt = loader.load("notes/title.md", {"max_words": 5})
    """

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR

        if self.prompts_dir.is_dir():
            self.env = jinja2.Environment(
                loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
                autoescape=False,  # Prompts are plain text, not HTML
                auto_reload=True,
                keep_trailing_newline=True,
            )
            logger.debug(
                "PromptLoader initialized with filesystem templates",
                extra={"prompts_dir": str(self.prompts_dir)},
            )
        else:
            self.env = None
            logger.debug(
                "Prompts directory not found, using inline prompts",
                extra={"prompts_dir": str(self.prompts_dir)},
            )

    def load(self, path: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Load and render a prompt template.

        Args:
            path: Relative path to the template file (e.g., "notes/analyze.md").
            context: Dictionary of variables to render into the template.

        Returns:
            The rendered prompt string.

        Raises:
            PromptLoaderError: If the template cannot be loaded or rendered.
        """
        context = context or {}

        if self.env is not None:
            try:
                template = self.env.get_template(path)
                return template.render(**context)
            except jinja2.TemplateNotFound:
                logger.debug(
                    "Template not found in filesystem, trying inline fallback",
                    extra={"path": path},
                )
            except jinja2.TemplateError as e:
                logger.error(
                    "Failed to render template",
                    extra={"path": path, "error": str(e)},
                )
                raise PromptLoaderError(f"Failed to render template {path}: {e}") from e

        return self._get_inline_prompt(path, context)

    def _get_inline_prompt(self, path: str, context: Dict[str, Any]) -> str:
        template_str = INLINE_PROMPTS.get(path)

        if template_str is None:
            raise PromptLoaderError(
                f"Prompt not found: {path}. "
                f"Available inline prompts: {sorted(INLINE_PROMPTS)}"
            )

        try:
            return jinja2.Template(template_str).render(**context)
        except jinja2.TemplateError as e:
            logger.error(
                "Failed to render inline template",
                extra={"path": path, "error": str(e)},
            )
            raise PromptLoaderError(
                f"Failed to render inline template {path}: {e}"
            ) from e

    def list_available(self) -> Dict[str, list[str]]:
        """List available prompt templates, by source."""
        result: Dict[str, list[str]] = {
            "filesystem": [],
            "inline": sorted(INLINE_PROMPTS),
        }

        if self.prompts_dir.is_dir():
            for md_file in self.prompts_dir.rglob("*.md"):
                result["filesystem"].append(md_file.relative_to(self.prompts_dir).as_posix())

        return result


__all__ = ["PromptLoader", "PromptLoaderError", "DEFAULT_PROMPTS_DIR", "INLINE_PROMPTS"]
