"""Note lifecycle: submission, metadata regeneration, edits, URL and image notes."""

from __future__ import annotations

import asyncio
import base64
import ipaddress
import logging
import mimetypes
import re
import socket
import uuid
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import httpx
from bs4 import BeautifulSoup

from ..models.note import InputType, Note, NoteUpdate
from .categorizer import CategorizationError, CategorizerService
from .config import get_config
from .note_store import NoteNotFoundError, NoteStore

logger = logging.getLogger(__name__)

ANALYZE_FAILED_MESSAGE = "Failed to analyze note. Please try again."
URL_FETCH_TIMEOUT = 30.0
URL_MAX_BYTES = 2 * 1024 * 1024
URL_MAX_REDIRECTS = 5
ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


class NoteProcessingError(Exception):
    """Raised when a note cannot be created or updated; nothing is persisted."""

    def __init__(self, error: str, message: str, status_code: int = 502):
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code


def html_to_text(html: str) -> str:
    """Strip scripts, styles and markup, collapsing all whitespace to single spaces."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return re.sub(r"\s+", " ", soup.get_text(separator=" ")).strip()


Resolver = Callable[[str], Awaitable[List[str]]]


async def resolve_host(host: str) -> List[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def is_public_address(address: str) -> bool:
    """True for globally routable unicast addresses only."""
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    if ip.version == 6 and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    return ip.is_global and not ip.is_multicast


class NoteService:
    """Create and update notes, calling the categorizer where needed."""

    def __init__(
        self,
        store: Optional[NoteStore] = None,
        categorizer: Optional[CategorizerService] = None,
        *,
        image_dir: Optional[Path] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[Resolver] = None,
    ) -> None:
        self.store = store or NoteStore()
        self.categorizer = categorizer or CategorizerService()
        self.image_dir = image_dir or get_config().image_dir
        self._http_transport = http_transport
        self._resolver = resolver or resolve_host

    async def submit(self, user_id: str, content: str) -> Note:
        """Categorize and store a new text note.

        The row is only written after categorization succeeds.
        """
        try:
            analysis = await self.categorizer.analyze_note(content)
        except CategorizationError as exc:
            logger.error(
                "Note analysis failed",
                extra={"user_id": user_id, "error": exc.error, "detail": exc.message},
            )
            raise NoteProcessingError("analysis_failed", ANALYZE_FAILED_MESSAGE) from exc

        return self.store.insert(user_id, content, analysis.category, analysis.tags)

    async def regenerate(self, user_id: str, note_id: str, kind: str) -> Note:
        """Recompute the tags or the display title of an existing note.

        Tags are replaced wholesale. A new title replaces the first tag.
        """
        note = self.store.get(user_id, note_id)
        try:
            if kind == "tags":
                tags = await self.categorizer.regenerate_tags(note.content)
            elif kind == "title":
                title = await self.categorizer.regenerate_title(note.content)
                tags = [title] + [tag for tag in note.tags[1:] if tag != title]
            else:
                raise NoteProcessingError(
                    "invalid_request", f"Unknown regeneration type: {kind}", status_code=400
                )
        except CategorizationError as exc:
            logger.error(
                "Metadata regeneration failed",
                extra={"user_id": user_id, "note_id": note_id, "kind": kind, "error": exc.error},
            )
            raise NoteProcessingError(
                "regeneration_failed", f"Failed to regenerate {kind}. Please try again."
            ) from exc

        updated = self.store.update(user_id, note_id, tags=tags)
        logger.info(
            "Note metadata regenerated",
            extra={"user_id": user_id, "note_id": note_id, "kind": kind},
        )
        return updated

    def edit(self, user_id: str, note_id: str, changes: NoteUpdate) -> Note:
        return self.store.update(
            user_id,
            note_id,
            content=changes.content,
            category=changes.category,
            tags=changes.tags,
        )

    async def _check_destination(self, url: httpx.URL) -> None:
        """Refuse hosts that are, or resolve to, non-public addresses."""
        if url.scheme not in ("http", "https") or not url.host:
            raise NoteProcessingError(
                "blocked_url", "URL must be an http:// or https:// address", status_code=400
            )
        try:
            addresses = [str(ipaddress.ip_address(url.host))]
        except ValueError:
            try:
                addresses = await self._resolver(url.host)
            except OSError as exc:
                logger.warning("URL host did not resolve", extra={"host": url.host, "error": str(exc)})
                raise NoteProcessingError(
                    "url_fetch_failed", f"Failed to resolve host: {url.host}"
                ) from exc
        if not addresses or not all(is_public_address(address) for address in addresses):
            logger.warning(
                "Blocked URL fetch to a non-public address",
                extra={"url": str(url), "addresses": addresses},
            )
            raise NoteProcessingError(
                "blocked_url", "URL points to a private or local address", status_code=400
            )

    @staticmethod
    async def _read_limited(response: httpx.Response) -> str:
        too_large = NoteProcessingError(
            "page_too_large",
            f"Page exceeds {URL_MAX_BYTES // (1024 * 1024)} MB",
            status_code=413,
        )
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > URL_MAX_BYTES:
            raise too_large
        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > URL_MAX_BYTES:
                raise too_large
        return body.decode(response.encoding or "utf-8", errors="replace")

    async def _fetch_page(self, url: str) -> str:
        """GET a public page, checking every redirect hop and capping the body size."""
        try:
            target = httpx.URL(url)
            async with httpx.AsyncClient(
                timeout=URL_FETCH_TIMEOUT,
                transport=self._http_transport,
            ) as client:
                for _ in range(URL_MAX_REDIRECTS + 1):
                    await self._check_destination(target)
                    async with client.stream("GET", target) as response:
                        if response.is_redirect:
                            target = response.url.join(response.headers["location"])
                            continue
                        response.raise_for_status()
                        return await self._read_limited(response)
        except httpx.InvalidURL as exc:
            raise NoteProcessingError("blocked_url", f"Invalid URL: {exc}", status_code=400) from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "URL fetch returned an error status",
                extra={"url": url, "status_code": exc.response.status_code},
            )
            raise NoteProcessingError(
                "url_fetch_failed",
                f"Failed to fetch URL: {exc.response.reason_phrase or exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("URL fetch failed", extra={"url": url, "error": str(exc)})
            raise NoteProcessingError("url_fetch_failed", f"Failed to fetch URL: {exc}") from exc
        raise NoteProcessingError("url_fetch_failed", "Failed to fetch URL: too many redirects")

    async def create_from_url(self, user_id: str, url: str) -> Note:
        """Summarize a web page and store the summary as a note."""
        html = await self._fetch_page(url)
        text = html_to_text(html)
        if not text:
            raise NoteProcessingError("empty_page", "The page has no readable text", status_code=422)

        try:
            summary = await self.categorizer.summarize_page(text)
            analysis = await self.categorizer.analyze_url(summary)
        except CategorizationError as exc:
            logger.error("URL analysis failed", extra={"url": url, "error": exc.error})
            raise NoteProcessingError("analysis_failed", "Failed to analyze content") from exc

        tags = [analysis.title] + [tag for tag in analysis.tags if tag != analysis.title]
        return self.store.insert(
            user_id,
            summary,
            analysis.category,
            tags,
            input_type=InputType.URL,
            source_url=url,
        )

    def _store_image(self, filename: str, data: bytes) -> Path:
        ext = Path(filename or "").suffix.lstrip(".").lower() or "png"
        self.image_dir.mkdir(parents=True, exist_ok=True)
        path = self.image_dir / f"{uuid.uuid4()}.{ext}"
        path.write_bytes(data)
        return path

    async def create_from_image(
        self,
        user_id: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Note:
        """Store an uploaded image and create a note from its description."""
        if not data:
            raise NoteProcessingError("no_file", "No file uploaded", status_code=400)
        mime = content_type or mimetypes.guess_type(filename or "")[0] or ""
        if mime not in ALLOWED_IMAGE_TYPES:
            raise NoteProcessingError(
                "unsupported_media", f"Unsupported image type: {mime or 'unknown'}", status_code=415
            )

        path = self._store_image(filename, data)
        data_url = f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
        try:
            analysis = await self.categorizer.analyze_image(data_url)
        except CategorizationError as exc:
            logger.error("Image analysis failed", extra={"path": str(path), "error": exc.error})
            path.unlink(missing_ok=True)
            raise NoteProcessingError("analysis_failed", "Failed to analyze image") from exc

        return self.store.insert(
            user_id,
            analysis.description,
            analysis.category,
            analysis.tags,
            input_type=InputType.IMAGE,
            source_image_path=path.name,
        )

    def get(self, user_id: str, note_id: str) -> Note:
        return self.store.get(user_id, note_id)

    def list_notes(self, user_id: str) -> list[Note]:
        return self.store.list_notes(user_id)


__all__ = ["NoteService", "NoteProcessingError", "NoteNotFoundError", "html_to_text"]
