"""Crawler page records: the shape the external page fetcher hands over.

The fetcher extracts main text and metadata from web pages and attached
PDFs; this module only parses its output and turns it into documents.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class PdfPage:
    page_no: int
    text: str


@dataclass
class PdfAttachment:
    """A PDF linked from a crawled page.

    Attributes:
        pdf_url: Where the PDF was found; becomes the FILE source's uri.
        title: Document title (may be empty).
        pages: Per-page extracted text.
        extracted_content: Whole-document text from an external extractor;
            preferred over ``pages`` when present.
        page_count: Page count reported by the fetcher.
    """

    pdf_url: str
    title: str = ""
    pages: list[PdfPage] = field(default_factory=list)
    extracted_content: str | None = None
    page_count: int | None = None

    @property
    def text(self) -> str:
        if self.extracted_content:
            return self.extracted_content
        ordered = sorted(self.pages, key=lambda p: p.page_no)
        return "\n\n".join(p.text for p in ordered)

    @property
    def label(self) -> str:
        return self.title or self.pdf_url or "PDF document"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PdfAttachment:
        overall = data.get("overall") or {}
        return cls(
            pdf_url=str(data.get("pdf_url") or ""),
            title=str(data.get("title") or ""),
            pages=[
                PdfPage(page_no=int(p.get("page_no", 0)), text=str(p.get("text") or ""))
                for p in data.get("pages") or []
            ],
            extracted_content=data.get("extracted_content") or data.get("perplexity_content"),
            page_count=data.get("page_count") or overall.get("page_count"),
        )


@dataclass
class PageRecord:
    """One crawled web page with already-extracted text."""

    page_url: str
    title: str = ""
    canonical_url: str | None = None
    main_text: str = ""
    headings: dict[str, list[str]] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)
    fetched_at: str | None = None
    lang: str | None = None
    pdfs: list[PdfAttachment] = field(default_factory=list)

    @property
    def uri(self) -> str:
        return self.canonical_url or self.page_url

    @property
    def label(self) -> str:
        return self.title or self.uri

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageRecord:
        return cls(
            page_url=str(data.get("page_url") or data.get("url") or ""),
            title=str(data.get("title") or ""),
            canonical_url=data.get("canonical_url") or None,
            main_text=str(data.get("main_text") or data.get("text") or data.get("content") or ""),
            headings=dict(data.get("headings") or {}),
            meta=dict(data.get("meta") or {}),
            fetched_at=data.get("fetched_at"),
            lang=data.get("lang"),
            pdfs=[PdfAttachment.from_dict(p) for p in data.get("pdfs") or []],
        )


def to_markdown(title: str, text: str) -> str:
    """Render a document as ``# <title>`` followed by its body."""
    return f"# {title}\n\n{text}"


def load_pages(path: Path) -> list[PageRecord]:
    """Read page records from a JSON array or JSON-Lines file.

    Raises:
        ValueError: If the file is neither a JSON array nor JSON-Lines objects.
    """
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return []
    if raw.startswith("["):
        items = json.loads(raw)
    else:
        items = [json.loads(line) for line in raw.splitlines() if line.strip()]
    if not all(isinstance(item, dict) for item in items):
        raise ValueError(f"{path}: every page record must be a JSON object")
    return [PageRecord.from_dict(item) for item in items]
