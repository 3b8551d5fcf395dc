import docx
import pytest

from kgvis.document_loader import (FILE_SEPARATOR, DocumentLoadError, combine_documents, extract_text,
                                   notebook_name)


def test_plain_text(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("# Title\nSome notes.", encoding='utf-8')
    assert extract_text(path) == "# Title\nSome notes."


def test_unknown_extension_read_as_text(tmp_path, caplog):
    path = tmp_path / "data.log"
    path.write_bytes(b"ok \xff end")
    text = extract_text(str(path))
    assert text.startswith("ok ")
    assert text.endswith(" end")
    assert "Unrecognized extension" in caplog.text


def test_missing_file(tmp_path):
    with pytest.raises(DocumentLoadError, match="File not found"):
        extract_text(tmp_path / "missing.txt")


def test_docx_paragraphs_and_tables(tmp_path):
    path = tmp_path / "report.docx"
    doc = docx.Document()
    doc.add_paragraph("Quarterly report")
    doc.add_paragraph("")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Revenue"
    table.rows[0].cells[1].text = "42"
    doc.save(str(path))

    assert extract_text(path) == "Quarterly report\nRevenue | 42"


def test_corrupt_pdf_raises(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")
    with pytest.raises(DocumentLoadError, match="broken.pdf"):
        extract_text(path)


def test_combine_documents(tmp_path):
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    first.write_text("alpha")
    second.write_text("beta")
    assert combine_documents([first, second]) == "alpha" + FILE_SEPARATOR + "beta"


def test_notebook_name():
    assert notebook_name(["/docs/paper.pdf"]) == "paper.pdf"
    assert notebook_name(["a.txt", "b.txt", "c.txt"]) == "Combined Analysis (3 files)"
