"""Language-model backed categorization of notes, tags, emails, pages and images.

Every model reply is parsed as JSON and validated against a pydantic schema
before it is returned; anything that does not match is rejected. The only
heuristic recovery is the comma-split fallback for regenerated tags.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..models.note import EmailAnalysis, ImageAnalysis, NoteAnalysis, UrlAnalysis
from ..models.tags import LIFE_SECTIONS
from .llm_client import LLMClient, LLMError, MessageContent, extract_json
from .prompt_loader import PromptLoader

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

URL_TEXT_LIMIT = 8000
GROUPING_TEMPERATURE = 0.7
GROUPING_MAX_TOKENS = 1000

_GROUPING_ADAPTER = TypeAdapter(Dict[str, List[str]])
_TAG_LIST_ADAPTER = TypeAdapter(List[str])


class CategorizationError(Exception):
    """Raised when a categorization call fails or returns an unusable shape.

    ``error`` is ``remote_failure`` for transport/API failures and
    ``invalid_response`` for replies that fail parsing or validation.
    """

    def __init__(self, error: str, message: str, *, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.raw = raw


def split_tag_list(raw: str) -> List[str]:
    """Heuristic parse of a tag list that is not valid JSON."""
    cleaned = raw.strip().strip("[]")
    tags: List[str] = []
    for part in cleaned.replace("\n", ",").split(","):
        tag = part.strip().strip("\"'`").lstrip("-*# ").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _clean_title(raw: str) -> str:
    return raw.strip().strip("\"'`").strip()


class CategorizerService:
    """Assign categories and tags using the configured language model."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        prompt_loader: Optional[PromptLoader] = None,
    ) -> None:
        self.llm = llm or LLMClient()
        self.prompts = prompt_loader or PromptLoader()

    async def _call(
        self,
        prompt_path: str,
        user_content: MessageContent,
        *,
        context: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        system_prompt = self.prompts.load(prompt_path, context)
        try:
            return await self.llm.complete(
                system_prompt,
                user_content,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except LLMError as exc:
            logger.error(
                "Categorization call failed",
                extra={"prompt": prompt_path, "error": exc.message},
            )
            raise CategorizationError("remote_failure", exc.message) from exc

    def _parse(self, raw: str, schema: Type[ModelT], prompt_path: str) -> ModelT:
        try:
            payload = extract_json(raw)
        except ValueError as exc:
            logger.error(
                "Model returned malformed JSON",
                extra={"prompt": prompt_path, "raw": raw},
            )
            raise CategorizationError(
                "invalid_response", "Invalid response format from language model", raw=raw
            ) from exc
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            logger.error(
                "Model response failed validation",
                extra={"prompt": prompt_path, "raw": raw, "errors": exc.errors()},
            )
            raise CategorizationError(
                "invalid_response", "Unexpected response shape from language model", raw=raw
            ) from exc

    def _parse_grouping(self, raw: str, prompt_path: str) -> Dict[str, List[str]]:
        try:
            return _GROUPING_ADAPTER.validate_python(extract_json(raw))
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Failed to parse grouping response",
                extra={"prompt": prompt_path, "raw": raw},
            )
            raise CategorizationError(
                "invalid_response", "Invalid response format from language model", raw=raw
            ) from exc

    async def generate_title(self, content: str) -> str:
        raw = await self._call("notes/title.md", content, context={"max_words": 5})
        title = _clean_title(raw)
        if not title:
            raise CategorizationError("invalid_response", "Empty title from language model", raw=raw)
        return title

    async def analyze_note(self, content: str) -> NoteAnalysis:
        """Generate a title and ``{category, tags}``; the title becomes the first tag."""
        title = await self.generate_title(content)
        raw = await self._call("notes/analyze.md", content)
        analysis = self._parse(raw, NoteAnalysis, "notes/analyze.md")
        tags = [title] + [tag for tag in analysis.tags if tag != title]
        logger.info(
            "Note analyzed",
            extra={"category": analysis.category, "tags_count": len(tags)},
        )
        return NoteAnalysis(category=analysis.category, tags=tags)

    async def regenerate_tags(self, content: str) -> List[str]:
        """Ask for 3-5 tags as a JSON array; falls back to a comma split."""
        raw = await self._call("notes/regenerate_tags.md", content)
        try:
            tags = _TAG_LIST_ADAPTER.validate_python(extract_json(raw))
            tags = [tag.strip() for tag in tags if tag.strip()]
        except (ValueError, ValidationError):
            logger.warning(
                "Tag regeneration returned non-JSON output, using comma split",
                extra={"raw": raw},
            )
            tags = split_tag_list(raw)
        if not tags:
            raise CategorizationError("invalid_response", "No tags in model response", raw=raw)
        return tags

    async def regenerate_title(self, content: str) -> str:
        raw = await self._call("notes/regenerate_title.md", content)
        title = _clean_title(raw)
        if not title:
            raise CategorizationError("invalid_response", "Empty title from language model", raw=raw)
        return title

    async def categorize_tags(self, tags: List[str]) -> Dict[str, List[str]]:
        """Group tags into 3-5 broad categories, keeping only tags that were asked about."""
        raw = await self._call(
            "tags/categorize.md",
            f"Please categorize these tags: {json.dumps(tags)}",
            temperature=GROUPING_TEMPERATURE,
            max_tokens=GROUPING_MAX_TOKENS,
        )
        grouping = self._parse_grouping(raw, "tags/categorize.md")
        known = set(tags)
        result: Dict[str, List[str]] = {}
        for category, members in grouping.items():
            kept = [tag for tag in members if tag in known]
            if category.strip() and kept:
                result[category.strip()] = kept
        return result

    async def organize_categories(
        self, categories: Dict[str, List[str]]
    ) -> Dict[str, List[str]]:
        """Group categories into life sections.

        Returns the input categories re-keyed as ``"<section>: <category>"``;
        categories the model invents are dropped.
        """
        raw = await self._call(
            "categories/organize.md",
            f"Please categorize these categories: {json.dumps(list(categories))}",
            context={"sections": LIFE_SECTIONS},
            temperature=GROUPING_TEMPERATURE,
            max_tokens=GROUPING_MAX_TOKENS,
        )
        sections = self._parse_grouping(raw, "categories/organize.md")
        reorganized: Dict[str, List[str]] = {}
        for section, names in sections.items():
            for name in names:
                if name in categories:
                    reorganized[f"{section.strip().lower()}: {name}"] = categories[name]
        return reorganized

    async def analyze_email(self, subject: str, sender: str, body: str) -> EmailAnalysis:
        raw = await self._call(
            "email/analyze.md",
            f"Subject: {subject}\nFrom: {sender}\n\nContent:\n{body}",
            temperature=GROUPING_TEMPERATURE,
            max_tokens=GROUPING_MAX_TOKENS,
        )
        return self._parse(raw, EmailAnalysis, "email/analyze.md")

    async def summarize_page(self, text: str) -> str:
        return await self._call("url/summarize.md", text[:URL_TEXT_LIMIT])

    async def analyze_url(self, summary: str) -> UrlAnalysis:
        raw = await self._call("url/analyze.md", summary)
        return self._parse(raw, UrlAnalysis, "url/analyze.md")

    async def analyze_image(self, image_url: str) -> ImageAnalysis:
        raw = await self._call(
            "image/analyze.md",
            [
                {
                    "type": "text",
                    "text": "Analyze this image and provide a description, relevant tags, and a category.",
                },
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        )
        return self._parse(raw, ImageAnalysis, "image/analyze.md")


__all__ = ["CategorizerService", "CategorizationError", "split_tag_list"]
