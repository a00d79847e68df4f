"""
Disclosure Ingest - Document Text

Text extraction from downloaded PDF filings. Electronic filings carry a
text layer that pdfplumber reads directly; scanned paper filings have none
and go through pdf2image + Tesseract OCR.
"""
from __future__ import annotations

import logging
from pathlib import Path

import pdfplumber
import pytesseract
from pdf2image import convert_from_path
from PIL import Image

from modules.errors import ParseError

text_logger = logging.getLogger("disclosure_ingest.pdf_text")

PAGE_BREAK = "\n\n--- PAGE BREAK ---\n\n"

# Below this many characters a text layer is treated as absent
MIN_TEXT_LAYER_CHARS = 20


def is_pdf(path: Path) -> bool:
    """Check the file signature rather than trusting the url suffix."""
    with open(path, "rb") as f:
        return f.read(4) == b"%PDF"


def extract_text_layer(pdf_path: Path) -> str:
    """Read the embedded text of every page."""
    pages = []
    with pdfplumber.open(pdf_path) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
    return PAGE_BREAK.join(pages)


def pdf_to_images(pdf_path: Path, dpi: int = 300) -> list[Image.Image]:
    """Convert PDF pages to high-DPI images for OCR."""
    images = convert_from_path(
        pdf_path,
        dpi=dpi,
        fmt='png',
        thread_count=2,
    )
    text_logger.info(f"Converted {len(images)} pages from {pdf_path.name}")
    return images


def extract_text_from_image(image: Image.Image) -> str:
    """Extract text from a single image using Tesseract."""
    # psm 6: uniform block of text, oem 3: LSTM engine
    return pytesseract.image_to_string(image, config=r'--oem 3 --psm 6')


def ocr_pdf(pdf_path: Path, dpi: int = 300) -> str:
    """Full pipeline: PDF -> Images -> OCR Text."""
    images = pdf_to_images(pdf_path, dpi)
    all_text = []
    for i, image in enumerate(images):
        text_logger.debug(f"OCR page {i + 1}/{len(images)}")
        all_text.append(extract_text_from_image(image))
    return PAGE_BREAK.join(all_text)


def extract_text(pdf_path: Path) -> str:
    """
    Return the text of a PDF filing.

    Raises:
        ParseError: if the file is not a readable PDF or OCR is unavailable.
    """
    try:
        text = extract_text_layer(pdf_path)
    except Exception as e:
        raise ParseError(f"Unreadable PDF: {e}", {"path": str(pdf_path)}) from e

    if len(text.replace(PAGE_BREAK, "").strip()) >= MIN_TEXT_LAYER_CHARS:
        return text

    text_logger.info(f"No text layer in {pdf_path.name}, falling back to OCR")
    try:
        return ocr_pdf(pdf_path)
    except Exception as e:
        raise ParseError(f"OCR failed: {e}", {"path": str(pdf_path)}) from e
