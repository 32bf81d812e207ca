"""Paragraph-first, sentence-second text chunking."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from langchain_text_splitters import TextSplitter

if TYPE_CHECKING:
    from langchain_core.documents import Document

DEFAULT_MAX_LEN = 1200
MIN_CHUNK_CHARS = 20

_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def chunk_text(text: str, max_len: int = DEFAULT_MAX_LEN) -> list[str]:
    """Split *text* into retrieval-sized chunks.

    Paragraphs (separated by blank lines) that fit in *max_len* become one
    chunk each.  Longer paragraphs are split into sentences which are packed
    greedily up to *max_len*; a single sentence longer than *max_len* is
    emitted on its own.  Chunks shorter than ``MIN_CHUNK_CHARS`` after
    trimming are dropped.

    Parameters
    ----------
    text:
        Normalised plain text.
    max_len:
        Maximum number of characters per chunk.

    Returns
    -------
    list[str]
        Chunks in document order.  Consecutive chunks never overlap.
    """
    if max_len <= 0:
        raise ValueError(f"max_len must be > 0, got {max_len}")

    chunks: list[str] = []
    for paragraph in _PARAGRAPH_BREAK.split(text):
        if len(paragraph) <= max_len:
            chunks.append(paragraph.strip())
            continue

        buf = ""
        for sentence in _SENTENCE_BREAK.split(paragraph):
            if len(f"{buf} {sentence}".strip()) > max_len:
                if buf.strip():
                    chunks.append(buf.strip())
                buf = sentence
            else:
                buf = f"{buf} {sentence}".strip()
        if buf.strip():
            chunks.append(buf.strip())

    return [c for c in chunks if len(c.strip()) >= MIN_CHUNK_CHARS]


class ParagraphSentenceSplitter(TextSplitter):
    """LangChain splitter adapter around :func:`chunk_text`.

    ``chunk_overlap`` is pinned to zero: the paragraph/sentence strategy
    never repeats text across chunks.
    """

    def __init__(self, max_len: int = DEFAULT_MAX_LEN, **kwargs: Any) -> None:
        kwargs.pop("chunk_overlap", None)
        super().__init__(chunk_size=max_len, chunk_overlap=0, **kwargs)
        self.max_len = max_len

    def split_text(self, text: str) -> list[str]:
        return chunk_text(text, self.max_len)


def chunk_documents(
    documents: list[Document],
    max_len: int = DEFAULT_MAX_LEN,
) -> list[Document]:
    """Split LangChain *documents*, copying each source's metadata onto its chunks."""
    return ParagraphSentenceSplitter(max_len=max_len).split_documents(documents)
