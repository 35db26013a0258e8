"""
Document Processing Module - Handles text extraction from PDF, DOCX and plain text files.
"""
from .extractor import extract_text, PLAIN_TEXT_SUFFIXES
from .docx_processor import DocxProcessor, ExtractedDocument
from .pdf_processor import PDFProcessor, ExtractedPDF

__all__ = [
    "extract_text",
    "PLAIN_TEXT_SUFFIXES",
    "DocxProcessor",
    "ExtractedDocument",
    "PDFProcessor",
    "ExtractedPDF",
]
