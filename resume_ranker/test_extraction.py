import asyncio
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from docx import Document as DocxDocument

from resume_ranker.conftest import docx_bytes
from resume_ranker.errors import ExtractionFailed, UnsupportedFormat
from resume_ranker.models.schemas import IncomingFile
from resume_ranker.utils import extract_document, extract_text_from_upload, is_supported


def _fake_reader(*page_texts):
    reader = MagicMock()
    reader.is_encrypted = False
    pages = []
    for t in page_texts:
        page = MagicMock()
        page.extract_text.return_value = t
        pages.append(page)
    reader.pages = pages
    return reader


def test_supported_types():
    assert is_supported("cv.PDF")
    assert is_supported("cv.docx")
    assert is_supported("blob", "application/pdf")
    assert not is_supported("cv.txt")
    assert not is_supported("cv.doc")


def test_pdf_pages_join_tokens_and_concatenate_without_separator():
    reader = _fake_reader("Jane  Doe\nSenior Python Engineer", "Django and\tAWS")
    with patch("resume_ranker.utils.PdfReader", return_value=reader):
        text = extract_text_from_upload("cv.pdf", b"%PDF-1.4 fake")
    assert text == "Jane Doe Senior Python EngineerDjango and AWS"


def test_pdf_falls_back_to_pdfminer_when_pypdf_yields_little():
    reader = _fake_reader("", "")
    with patch("resume_ranker.utils.PdfReader", return_value=reader), \
            patch("resume_ranker.utils.pdfminer_extract_text",
                  return_value="Page one text here\n\fPage two text here") as fallback:
        text = extract_text_from_upload("scan.pdf", b"%PDF-1.4 fake")
    fallback.assert_called_once()
    assert text == "Page one text herePage two text here"


def test_corrupt_pdf_raises_extraction_failed():
    with patch("resume_ranker.utils.pdfminer_extract_text", side_effect=ValueError("bad xref")):
        with pytest.raises(ExtractionFailed) as exc:
            extract_text_from_upload("broken.pdf", b"not a pdf")
    assert "broken.pdf" in str(exc.value)


def test_docx_raw_text():
    data = docx_bytes("Jane Doe", "Python developer")
    assert extract_text_from_upload("cv.docx", data) == "Jane Doe\nPython developer"


def _table_resume(heading=None, footer=None) -> bytes:
    doc = DocxDocument()
    if heading:
        doc.add_paragraph(heading)
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Skills"
    table.cell(0, 1).text = "Python Kubernetes"
    merged = table.cell(1, 0).merge(table.cell(1, 1))
    merged.text = "Led the platform team"
    if footer:
        doc.add_paragraph(footer)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def test_docx_table_cells_are_kept_in_document_order():
    data = _table_resume(heading="Jane Doe", footer="References on request")
    assert extract_text_from_upload("cv.docx", data) == (
        "Jane Doe\nSkills\nPython Kubernetes\nLed the platform team\nReferences on request"
    )


def test_table_only_docx_is_accepted():
    text = extract_text_from_upload("cv.docx", _table_resume())
    assert "Kubernetes" in text


def test_corrupt_docx_raises_extraction_failed():
    with pytest.raises(ExtractionFailed):
        extract_text_from_upload("cv.docx", b"definitely not a zip")


def test_unsupported_format():
    with pytest.raises(UnsupportedFormat):
        extract_text_from_upload("notes.txt", b"hello")


def test_extract_document_assigns_identity():
    upload = IncomingFile(file_name="cv.docx", data=docx_bytes("Jane Doe"), last_modified=42)
    doc = asyncio.run(extract_document(upload))
    assert doc.id == "cv.docx-42"
    assert doc.content == "Jane Doe"
    assert doc.data == upload.data
