"""
Services package for the entity extraction application.

Contains:
- text_extractor: PDF/DOCX plain text extraction
- ai: OpenAI integration and response validation
- storage: Entity persistence
- pipeline: Per-batch orchestration
- export: CSV export
"""

from .ai import ExtractionClient
from .pipeline import PipelineOrchestrator
from .storage import EntityStore
from .text_extractor import TextExtractor

__all__ = ["EntityStore", "ExtractionClient", "PipelineOrchestrator", "TextExtractor"]
