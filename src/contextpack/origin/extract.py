"""Text extraction from binary documents."""

import asyncio

import fitz

from contextpack.errors import PerFileExtractionError


def _extract_pdf_text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as pdf:
        return "\n\n".join(page.get_text() for page in pdf).strip()


async def extract_pdf_text(data: bytes, file_name: str = "") -> str:
    """Extract the text layer of a PDF.

    Returns an empty string for PDFs without a text layer (e.g. scans).

    Raises:
        PerFileExtractionError: If the PDF cannot be parsed
    """
    try:
        return await asyncio.to_thread(_extract_pdf_text, data)
    except (RuntimeError, ValueError) as exc:
        raise PerFileExtractionError(f"Failed to parse PDF {file_name!r}: {exc}") from exc
