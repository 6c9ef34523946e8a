from __future__ import annotations
import logging
from pathlib import Path
from typing import List
import fitz, pdfplumber
from .candidates import PositionedToken

logger = logging.getLogger("drawlens.text_source")

BACKENDS = ("pymupdf", "pdfplumber")


def _pymupdf_tokens(pdf_path: str) -> List[PositionedToken]:
    out: List[PositionedToken] = []
    with fitz.open(pdf_path) as doc:
        if doc.page_count == 0:
            return out
        page = doc.load_page(0)
        height = page.rect.height
        for block in page.get_text("dict")["blocks"]:
            # image blocks carry no lines
            for line in block.get("lines", []):
                for span in line["spans"]:
                    ox, oy = span["origin"]
                    # PyMuPDF is top-down; flip to PDF user space
                    out.append(PositionedToken(span["text"], float(ox), float(height - oy)))
    return out


def _pdfplumber_tokens(pdf_path: str) -> List[PositionedToken]:
    out: List[PositionedToken] = []
    with pdfplumber.open(pdf_path) as pdf:
        if not pdf.pages:
            return out
        p = pdf.pages[0]
        height = float(p.height)
        for w in p.extract_words():
            # bbox values can be Decimals; cast to float
            out.append(PositionedToken(w["text"], float(w["x0"]), height - float(w["bottom"])))
    return out


def read_page_tokens(pdf_path: str | Path, backend: str = "pymupdf") -> List[PositionedToken]:
    """Positioned text tokens of page 1, baseline origins in PDF user space (y up).

    ``pymupdf`` yields one token per text span, ``pdfplumber`` one per word.
    """
    path = Path(pdf_path)
    if backend not in BACKENDS:
        raise ValueError(f"Unknown text backend {backend!r}; expected one of {', '.join(BACKENDS)}")
    if not path.exists():
        raise FileNotFoundError(f"file not found: {path}")

    if backend == "pymupdf":
        tokens = _pymupdf_tokens(path.as_posix())
    else:
        tokens = _pdfplumber_tokens(path.as_posix())
    logger.debug("Read %d token(s) from %s via %s", len(tokens), path, backend)
    return tokens
