"""
DOCX Processor - Extracts plain text from Word documents.
"""
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass, field
from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph
import logging

logger = logging.getLogger(__name__)


@dataclass
class ExtractedDocument:
    """Text extracted from a DOCX file, one entry per paragraph or table."""
    blocks: List[str] = field(default_factory=list)
    title: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n\n".join(self.blocks)


class DocxProcessor:
    """Processes DOCX files, keeping body paragraphs and tables in order."""

    def process(self, file_path: str) -> ExtractedDocument:
        """Process a DOCX file and extract all content."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if not path.suffix.lower() == '.docx':
            raise ValueError(f"Expected .docx file, got: {path.suffix}")

        doc = Document(file_path)
        blocks = []

        for element in doc.element.body:
            if element.tag.endswith('}p'):
                text = Paragraph(element, doc).text.strip()
                if text:
                    blocks.append(text)

            elif element.tag.endswith('}tbl'):
                table_text = self._process_table(Table(element, doc))
                if table_text:
                    blocks.append(table_text)

        logger.debug(f"Extracted {len(blocks)} blocks from {path.name}")

        return ExtractedDocument(
            blocks=blocks,
            title=doc.core_properties.title or None
        )

    def _process_table(self, table: Table) -> Optional[str]:
        if not table.rows:
            return None

        markdown_rows = []
        header_cells = [cell.text.strip() for cell in table.rows[0].cells]
        markdown_rows.append("| " + " | ".join(header_cells) + " |")
        markdown_rows.append("| " + " | ".join(["---"] * len(header_cells)) + " |")

        for row in table.rows[1:]:
            cells = [cell.text.strip().replace('\n', ' ') for cell in row.cells]
            markdown_rows.append("| " + " | ".join(cells) + " |")

        return "\n".join(markdown_rows)
