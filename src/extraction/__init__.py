# Extraction module for turning CV files into structured data
from .llm_extractor import ExtractionService, LLMExtractor
from .text import read_document_text

__all__ = ["ExtractionService", "LLMExtractor", "read_document_text"]
