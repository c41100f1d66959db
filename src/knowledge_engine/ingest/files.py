"""Local file extraction for FILE sources."""

from __future__ import annotations

from pathlib import Path

import pypdf
from pypdf.errors import PyPdfError

PDF_EXTS = {".pdf"}
TEXT_EXTS = {".txt", ".md", ".markdown", ".rst", ".text"}
SUPPORTED_EXTS = PDF_EXTS | TEXT_EXTS


def extract_text(path: Path) -> str:
    """Return the text of a local PDF or plain-text file.

    PDF pages that yield no text (scanned images, etc.) are skipped.

    Raises:
        ValueError: If the extension is not supported or the PDF cannot be read.
    """
    ext = path.suffix.lower()
    if ext in PDF_EXTS:
        return _extract_pdf(path)
    if ext in TEXT_EXTS:
        return path.read_text(encoding="utf-8", errors="replace")
    raise ValueError(
        f"Unsupported file type {ext!r} for '{path.name}'. "
        f"Supported: {', '.join(sorted(SUPPORTED_EXTS))}"
    )


def _open_pdf(path: Path) -> pypdf.PdfReader:
    try:
        return pypdf.PdfReader(str(path))
    except PyPdfError as exc:
        raise ValueError(f"Cannot read PDF '{path.name}': {exc}") from exc


def _extract_pdf(path: Path) -> str:
    reader = _open_pdf(path)
    parts: list[str] = []
    try:
        for page in reader.pages:
            stripped = (page.extract_text() or "").strip()
            if stripped:
                parts.append(stripped)
    except PyPdfError as exc:
        raise ValueError(f"Cannot read PDF '{path.name}': {exc}") from exc
    return "\n\n".join(parts)


def pdf_page_count(path: Path) -> int | None:
    if path.suffix.lower() not in PDF_EXTS:
        return None
    return len(_open_pdf(path).pages)
