"""
Document Entity Extractor Application.

A FastAPI service that extracts structured information about people
from uploaded PDF and DOCX documents using an LLM (OpenAI GPT-4.1).
"""

__version__ = "1.0.0"
