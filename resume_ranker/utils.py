import asyncio
import logging
from io import BytesIO
from typing import List, Optional

from docx import Document as DocxDocument
from docx.table import Table
from pdfminer.high_level import extract_text as pdfminer_extract_text
from pypdf import PdfReader

from .errors import ExtractionFailed, UnsupportedFormat
from .models.schemas import IncomingFile, UploadedDocument

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Below this many characters pypdf output is treated as a failed decode
MIN_PDF_TEXT_CHARS = 20


def _is_pdf(filename: str, media_type: Optional[str]) -> bool:
    return media_type == PDF_MEDIA_TYPE or filename.lower().endswith(".pdf")


def _is_docx(filename: str, media_type: Optional[str]) -> bool:
    return media_type == DOCX_MEDIA_TYPE or filename.lower().endswith(".docx")


def is_supported(filename: str, media_type: Optional[str] = None) -> bool:
    return _is_pdf(filename, media_type) or _is_docx(filename, media_type)


def _join_tokens(text: str) -> str:
    return " ".join(text.split())


def extract_text_from_pdf(filename: str, data: bytes) -> str:
    """Extract text page by page with pypdf, falling back to pdfminer.

    Tokens within a page are joined by single spaces; pages are concatenated
    in page order without a separator.
    """
    text = ""
    try:
        reader = PdfReader(BytesIO(data))
        if getattr(reader, "is_encrypted", False):
            try:
                reader.decrypt("")
                logging.info(f"PDF was encrypted, attempted empty-password decrypt: {filename}")
            except Exception as e:
                logging.warning(f"Failed to decrypt PDF {filename}: {e}")
        for page in reader.pages:
            try:
                piece = page.extract_text()
            except Exception as pe:
                logging.warning(f"Failed to extract text from a page in {filename}: {pe}")
                continue
            if piece:
                text += _join_tokens(piece)
    except Exception as e:
        logging.warning(f"pypdf failed for {filename}: {e}")
    if len(text.strip()) < MIN_PDF_TEXT_CHARS:
        try:
            pages = (pdfminer_extract_text(BytesIO(data)) or "").split("\f")
            text2 = "".join(_join_tokens(p) for p in pages)
            if len(text2.strip()) > len(text.strip()):
                logging.info(f"Used pdfminer fallback for {filename}")
                text = text2
        except Exception as e:
            logging.warning(f"pdfminer fallback failed for {filename}: {e}")
    return text.strip()


def _docx_table_lines(table: Table) -> List[str]:
    lines = []
    for row in table.rows:
        seen = []
        for cell in row.cells:
            # Merged cells are repeated once per grid column
            if seen and cell._tc is seen[-1]:
                continue
            seen.append(cell._tc)
            lines.append(cell.text)
    return lines


def extract_text_from_docx(filename: str, data: bytes) -> str:
    """Raw body text in document order, table cells included."""
    doc = DocxDocument(BytesIO(data))
    lines = []
    for block in doc.iter_inner_content():
        if isinstance(block, Table):
            lines.extend(_docx_table_lines(block))
        else:
            lines.append(block.text)
    return "\n".join(lines).strip()


def extract_text_from_upload(filename: str, data: bytes, media_type: Optional[str] = None) -> str:
    if _is_pdf(filename, media_type):
        decode = extract_text_from_pdf
    elif _is_docx(filename, media_type):
        decode = extract_text_from_docx
    else:
        raise UnsupportedFormat(f"Unsupported file type: {filename}")
    try:
        text = decode(filename, data)
    except Exception as e:
        raise ExtractionFailed(f"Failed to process {filename}: {e}") from e
    if not text:
        raise ExtractionFailed(f"Failed to process {filename}: no text could be extracted")
    return text


async def extract_document(upload: IncomingFile) -> UploadedDocument:
    """Decode one upload off the event loop and wrap it as a document."""
    content = await asyncio.to_thread(
        extract_text_from_upload, upload.file_name, upload.data, upload.media_type
    )
    return UploadedDocument(
        id=UploadedDocument.make_id(upload.file_name, upload.last_modified),
        file_name=upload.file_name,
        last_modified=upload.last_modified,
        media_type=upload.media_type,
        data=upload.data,
        content=content,
    )
