"""
Test cases for reading CV files
"""
import docx
import pytest

from extraction.text import read_document_text
from shared.exceptions import ExtractionError


class TestReadDocumentText:
    """Test cases for read_document_text"""

    def test_reads_txt(self, tmp_path):
        path = tmp_path / "ana.txt"
        path.write_text("\n  Ana Torres\nBackend Developer  \n", encoding="utf-8")

        assert read_document_text(str(path)) == "Ana Torres\nBackend Developer"

    def test_reads_docx(self, tmp_path):
        path = tmp_path / "luis.docx"
        document = docx.Document()
        document.add_paragraph("Luis Gil")
        document.add_paragraph("Skills: C#, SQL")
        document.save(str(path))

        text = read_document_text(str(path))

        assert "Luis Gil" in text
        assert "Skills: C#, SQL" in text

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError, match="File not found"):
            read_document_text(str(tmp_path / "nope.pdf"))

    def test_unsupported_type(self, tmp_path):
        path = tmp_path / "cv.rtf"
        path.write_text("text")
        with pytest.raises(ExtractionError, match="Unsupported file type: .rtf"):
            read_document_text(str(path))

    def test_blank_file(self, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("   \n\n")
        with pytest.raises(ExtractionError, match="No text content"):
            read_document_text(str(path))

    def test_corrupt_pdf(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        with pytest.raises(ExtractionError, match="broken.pdf"):
            read_document_text(str(path))
