"""
Text extraction entry point used by the indexer.

`extract_text` never raises for a bad file: it returns (None, errors) so
the caller can skip the file and keep going with the others.
"""
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from ..models import SourceFile

logger = logging.getLogger(__name__)

PLAIN_TEXT_SUFFIXES = {'.txt', '.md', '.markdown', '.text'}


def extract_text(file: Union[SourceFile, str, Path]) -> Tuple[Optional[str], List[str]]:
    """
    Extract plain text from an attached file.

    Args:
        file: SourceFile or path

    Returns:
        (text, errors); text is None when nothing usable was extracted
    """
    if isinstance(file, SourceFile):
        path = Path(file.path) if file.path else Path(file.filename)
    else:
        path = Path(file)

    if not path.exists():
        return None, [f"File not found: {path.name}"]

    suffix = path.suffix.lower()
    errors: List[str] = []

    try:
        if suffix == '.pdf':
            from .pdf_processor import PDFProcessor
            extracted = PDFProcessor().process(str(path))
            if extracted.empty_pages:
                errors.append(
                    f"No text found on pages {', '.join(str(p) for p in extracted.empty_pages)}"
                )
            text = extracted.text

        elif suffix == '.docx':
            from .docx_processor import DocxProcessor
            text = DocxProcessor().process(str(path)).text

        elif suffix in PLAIN_TEXT_SUFFIXES:
            text = path.read_text(encoding='utf-8', errors='replace')

        else:
            return None, [f"Unsupported file type: {suffix or 'none'}"]

    except Exception as e:
        logger.warning(f"Text extraction failed for {path.name}: {e}")
        return None, [f"Text extraction failed: {e}"]

    if not text or not text.strip():
        errors.append("No text could be extracted")
        return None, errors

    return text, errors
