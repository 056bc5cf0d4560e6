"""Document decoding for uploaded PDF and plain-text files."""

from __future__ import annotations

import io

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..errors import ReadError


PDF_MIME = "application/pdf"
TEXT_MIME = "text/plain"


def decode_document(data: bytes, mime_type: str | None, file_name: str | None = None) -> str:
    """Decode document bytes into plain text.

    The MIME type decides the decoder; when it is missing the file
    extension is used instead.

    Raises:
        ReadError: Unsupported type, unreadable PDF, or no extractable text
    """
    kind = _document_kind(mime_type, file_name)
    if kind == "pdf":
        text = pdf_to_text(data)
    elif kind == "txt":
        text = data.decode("utf-8", errors="replace")
    else:
        raise ReadError(
            f"Unsupported document type {mime_type or file_name or 'unknown'}: only PDF and TXT are supported",
            source=file_name,
        )
    if not text.strip():
        raise ReadError("The document contains no extractable text", source=file_name)
    return text


def pdf_to_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as exc:
        raise ReadError(f"Invalid PDF: {exc}") from exc
    return "\n".join(pages)


def _document_kind(mime_type: str | None, file_name: str | None) -> str | None:
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime == PDF_MIME:
        return "pdf"
    if mime == TEXT_MIME:
        return "txt"
    if not mime and file_name:
        lowered = file_name.lower()
        if lowered.endswith(".pdf"):
            return "pdf"
        if lowered.endswith(".txt"):
            return "txt"
    return None
