"""
PDF Processor - Extracts plain text from PDF documents.

Uses pdfplumber for text extraction including tables. Tables are rendered
as markdown so they survive chunking as readable text.
"""
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass, field
import logging

try:
    import pdfplumber
except ImportError:
    pdfplumber = None

logger = logging.getLogger(__name__)


@dataclass
class ExtractedPDF:
    """Text extracted from a PDF, one entry per paragraph or table."""
    blocks: List[str] = field(default_factory=list)
    total_pages: int = 0
    empty_pages: List[int] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(self.blocks)


class PDFProcessor:
    """
    Processes PDF files to extract text content.

    Extracts:
    - Paragraph text, reflowed from pdfplumber's line output
    - Tables (converted to markdown)
    """

    def __init__(self):
        if pdfplumber is None:
            raise ImportError("pdfplumber is required. Install with: pip install pdfplumber")

    def process(self, file_path: str) -> ExtractedPDF:
        """
        Process a PDF file and extract all content.

        Args:
            file_path: Path to the PDF file

        Returns:
            ExtractedPDF with paragraph and table blocks in page order
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if not path.suffix.lower() == '.pdf':
            raise ValueError(f"Expected .pdf file, got: {path.suffix}")

        result = ExtractedPDF()

        with pdfplumber.open(file_path) as pdf:
            result.total_pages = len(pdf.pages)

            for page_num, page in enumerate(pdf.pages, start=1):
                table_texts = set()
                page_blocks = []

                for table in page.extract_tables():
                    table_block = self._process_table(table)
                    if table_block:
                        page_blocks.append(table_block)
                        # Track table text to avoid duplication
                        for row in table:
                            for cell in row:
                                if cell:
                                    table_texts.add(cell.strip())

                text = page.extract_text() or ""
                page_blocks.extend(self._paragraphs(text, table_texts))

                if not page_blocks:
                    result.empty_pages.append(page_num)
                result.blocks.extend(page_blocks)

        logger.debug(
            f"Extracted {len(result.blocks)} blocks from {result.total_pages} pages of {path.name}"
        )
        return result

    def _paragraphs(self, text: str, skip_lines: set) -> List[str]:
        """Group extracted lines into paragraphs on blank lines."""
        paragraphs = []
        current = []

        for line in text.split('\n'):
            line = line.strip()

            if line in skip_lines:
                continue

            if not line:
                if current:
                    paragraphs.append(' '.join(current))
                    current = []
            else:
                current.append(line)

        if current:
            paragraphs.append(' '.join(current))

        return paragraphs

    def _process_table(self, table: List[List[str]]) -> Optional[str]:
        """Convert a table to readable text format."""
        if not table or not table[0]:
            return None

        table = [row for row in table if any(cell for cell in row)]

        if not table:
            return None

        markdown_rows = []

        header = [str(cell or '').strip() for cell in table[0]]
        markdown_rows.append("| " + " | ".join(header) + " |")
        markdown_rows.append("| " + " | ".join(["---"] * len(header)) + " |")

        for row in table[1:]:
            cells = [str(cell or '').strip().replace('\n', ' ') for cell in row]
            while len(cells) < len(header):
                cells.append('')
            cells = cells[:len(header)]
            markdown_rows.append("| " + " | ".join(cells) + " |")

        return "\n".join(markdown_rows)
