"""
Routers package for FastAPI endpoints.

Organized by domain:
- upload: Document upload and entity extraction
- entities: Entity listing, search, export and deletion
"""

from . import entities, upload

__all__ = ["entities", "upload"]
