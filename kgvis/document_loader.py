import logging
from pathlib import Path

import docx
import pypdf

logger = logging.getLogger(__name__)

FILE_SEPARATOR = "\n\n--- NEXT FILE ---\n\n"
TEXT_EXTENSIONS = {'.txt', '.md', '.json', '.csv', '.html', '.xml'}


class DocumentLoadError(Exception):
    pass


def _extract_pdf(path):
    reader = pypdf.PdfReader(str(path))
    pages = []
    for page in reader.pages:
        pages.append(page.extract_text() or "")
    return "\n".join(pages)


def _extract_docx(path):
    doc = docx.Document(str(path))
    parts = [para.text for para in doc.paragraphs if para.text.strip()]

    # Extract tables
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)


def extract_text(path):
    """Returns the plain text of a document. Unknown extensions are read as text."""
    path = Path(path)
    if not path.is_file():
        raise DocumentLoadError(f"File not found: {path}")

    ext = path.suffix.lower()
    try:
        if ext == '.pdf':
            text = _extract_pdf(path)
        elif ext == '.docx':
            text = _extract_docx(path)
        else:
            if ext not in TEXT_EXTENSIONS:
                logger.warning(f"Unrecognized extension '{ext}', reading {path.name} as plain text.")
            text = path.read_text(encoding='utf-8', errors='replace')
    except Exception as e:
        logger.error(f"Error extracting text from {path.name}: {e}")
        raise DocumentLoadError(f"Could not read {path.name}: {e}") from e

    logger.info(f"Extracted {len(text)} characters from {path.name}.")
    return text


def combine_documents(paths):
    return FILE_SEPARATOR.join(extract_text(p) for p in paths)


def notebook_name(paths):
    paths = list(paths)
    if len(paths) == 1:
        return Path(paths[0]).name
    return f"Combined Analysis ({len(paths)} files)"
