"""Format detection and ``bytes -> text`` extraction for uploaded files.

Supported formats form a closed set (:class:`DocumentFormat`).  Each format
is served by one :class:`TextExtractor` whose only job is turning raw bytes
into plain text; format selection looks at the declared MIME type first and
the file extension second.

Usage::

    from knowledge_hub.ingestion.extractors import extract_text

    result = extract_text(payload, filename="handbook.docx")
    print(result.format, len(result.text))
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from bs4 import BeautifulSoup

from knowledge_hub.exceptions import ExtractionError, UnsupportedFormat

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    CSV = "csv"
    HTML = "html"
    DOCX = "docx"
    PPTX = "pptx"
    XLSX = "xlsx"
    PDF = "pdf"


@dataclass(frozen=True)
class ExtractedText:
    """Plain text pulled out of a file together with the detected format."""

    text: str
    format: DocumentFormat


# ---------------------------------------------------------------------------
# Format inference
# ---------------------------------------------------------------------------


def _extension(filename: str | None) -> str:
    match = re.search(r"\.([a-z0-9]+)$", (filename or "").lower())
    return match.group(1) if match else ""


def infer_format(filename: str | None = None, mime_type: str | None = None) -> DocumentFormat:
    """Pick a :class:`DocumentFormat` from MIME type first, extension second.

    Anything unrecognised falls back to :attr:`DocumentFormat.TEXT`.
    """
    mime = (mime_type or "").lower()
    ext = _extension(filename)

    if mime.startswith("text/"):
        if "markdown" in mime or ext == "md":
            return DocumentFormat.MARKDOWN
        if "csv" in mime or ext == "csv":
            return DocumentFormat.CSV
        if "html" in mime or ext in ("html", "htm"):
            return DocumentFormat.HTML
        return DocumentFormat.TEXT

    if "pdf" in mime or ext == "pdf":
        return DocumentFormat.PDF
    if "word" in mime or ext == "docx":
        return DocumentFormat.DOCX
    if "presentation" in mime or ext == "pptx":
        return DocumentFormat.PPTX
    if "sheet" in mime or ext == "xlsx":
        return DocumentFormat.XLSX
    if ext == "csv":
        return DocumentFormat.CSV
    if ext == "md":
        return DocumentFormat.MARKDOWN
    if ext in ("html", "htm"):
        return DocumentFormat.HTML
    return DocumentFormat.TEXT


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


class TextExtractor(ABC):
    """Turns the raw bytes of one file format into plain text."""

    format: DocumentFormat

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Return the text content of *data*; raise on malformed input."""
        ...


class PlainTextExtractor(TextExtractor):
    """Text, Markdown and CSV are kept as-is."""

    def __init__(self, fmt: DocumentFormat) -> None:
        self.format = fmt

    def extract(self, data: bytes) -> str:
        return data.decode("utf-8-sig", errors="replace")


class HtmlExtractor(TextExtractor):
    format = DocumentFormat.HTML

    _BLOCK_TAGS = [
        "p", "div", "section", "article", "h1", "h2", "h3", "h4", "h5", "h6",
        "li", "ul", "ol", "table", "tr", "td",
    ]

    def extract(self, data: bytes) -> str:
        soup = BeautifulSoup(data.decode("utf-8-sig", errors="replace"), "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        for tag in soup(["br", "hr"]):
            tag.replace_with("\n")
        for tag in soup(self._BLOCK_TAGS):
            tag.append("\n")

        text = soup.get_text()
        text = re.sub(r"[ \t]+\n", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()


class DocxExtractor(TextExtractor):
    format = DocumentFormat.DOCX

    def extract(self, data: bytes) -> str:
        import docx

        document = docx.Document(io.BytesIO(data))
        return "\n".join(p.text for p in document.paragraphs if p.text.strip())


class PptxExtractor(TextExtractor):
    """Reads ``<a:t>`` text runs from every slide, one paragraph per slide."""

    format = DocumentFormat.PPTX

    @staticmethod
    def _slide_number(name: str) -> int:
        match = re.search(r"(\d+)\.xml$", name)
        return int(match.group(1)) if match else 0

    def extract(self, data: bytes) -> str:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = sorted(
                (
                    n
                    for n in archive.namelist()
                    if n.startswith("ppt/slides/slide") and n.endswith(".xml")
                ),
                key=self._slide_number,
            )
            slides: list[str] = []
            for name in names:
                soup = BeautifulSoup(archive.read(name).decode("utf-8"), "html.parser")
                slide_text = " ".join(run.get_text() for run in soup.find_all("a:t")).strip()
                if slide_text:
                    slides.append(slide_text)
        return "\n\n".join(slides)


class XlsxExtractor(TextExtractor):
    """One tab-separated block per sheet, headed by ``# Sheet: <name>``."""

    format = DocumentFormat.XLSX

    def extract(self, data: bytes) -> str:
        from openpyxl import load_workbook

        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        try:
            sheets: list[str] = []
            for sheet in workbook.worksheets:
                rows = [
                    "\t".join("" if value is None else str(value) for value in row)
                    for row in sheet.iter_rows(values_only=True)
                ]
                tsv = "\n".join(rows)
                if tsv.strip():
                    sheets.append(f"# Sheet: {sheet.title}\n{tsv}")
        finally:
            workbook.close()
        return "\n\n".join(sheets)


class PdfExtractor(TextExtractor):
    format = DocumentFormat.PDF

    def extract(self, data: bytes) -> str:
        import fitz

        with fitz.open(stream=data, filetype="pdf") as pdf:
            pages = [page.get_text().strip() for page in pdf]
        return "\n\n".join(p for p in pages if p)


EXTRACTORS: dict[DocumentFormat, TextExtractor] = {
    DocumentFormat.TEXT: PlainTextExtractor(DocumentFormat.TEXT),
    DocumentFormat.MARKDOWN: PlainTextExtractor(DocumentFormat.MARKDOWN),
    DocumentFormat.CSV: PlainTextExtractor(DocumentFormat.CSV),
    DocumentFormat.HTML: HtmlExtractor(),
    DocumentFormat.DOCX: DocxExtractor(),
    DocumentFormat.PPTX: PptxExtractor(),
    DocumentFormat.XLSX: XlsxExtractor(),
    DocumentFormat.PDF: PdfExtractor(),
}
"""Mapping of format → extractor.  Every :class:`DocumentFormat` has an entry."""


def extract_text(
    data: bytes,
    *,
    filename: str | None = None,
    mime_type: str | None = None,
    fmt: DocumentFormat | str | None = None,
) -> ExtractedText:
    """Extract plain text from an uploaded file.

    Parameters
    ----------
    data:
        Raw file contents.
    filename / mime_type:
        Hints used by :func:`infer_format` when *fmt* is not given.
    fmt:
        Explicit format override.

    Raises
    ------
    UnsupportedFormat
        *fmt* names a format outside :class:`DocumentFormat`.
    ExtractionError
        The file is malformed or yields no text.
    """
    if fmt is None:
        target = infer_format(filename, mime_type)
    else:
        try:
            target = DocumentFormat(fmt)
        except ValueError:
            raise UnsupportedFormat(f"Unsupported format: {fmt!r}", format=str(fmt)) from None

    extractor = EXTRACTORS.get(target)
    if extractor is None:
        raise UnsupportedFormat(f"No extractor registered for {target.value!r}", format=target.value)

    try:
        text = extractor.extract(data)
    except Exception as exc:
        logger.warning("Extraction failed for %s (%s): %s", filename or "<upload>", target.value, exc)
        raise ExtractionError(
            f"Could not read {target.value} file {filename or ''}".strip(), format=target.value
        ) from exc

    if not text or not text.strip():
        if target is DocumentFormat.PDF:
            message = "PDF parsing produced no text. Try DOCX/MD/TXT/CSV/XLSX or paste text."
        else:
            message = "Could not extract text from the uploaded file."
        raise ExtractionError(message, format=target.value)

    logger.debug("Extracted %d chars from %s as %s", len(text), filename or "<upload>", target.value)
    return ExtractedText(text=text, format=target)
