"""
CSV export of stored entities.
"""

import csv
import io
from collections.abc import Iterable
from datetime import date

from ..models import StoredEntity

CSV_HEADERS = [
    "Full Name",
    "Email",
    "Phone Number",
    "Address",
    "Organisation",
    "Role/Title",
    "Technology Stack",
    "Comments",
    "Source Document",
    "Extracted Date",
]


def entities_to_csv(entities: Iterable[StoredEntity]) -> str:
    """Render entities as CSV text; null fields become empty cells."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entity in entities:
        writer.writerow(
            [
                entity.full_name or "",
                entity.email or "",
                entity.phone_number or "",
                entity.address or "",
                entity.organisation or "",
                entity.role_title or "",
                entity.technology_stack or "",
                entity.comments or "",
                entity.source_document_name,
                entity.created_at.strftime("%b %d, %Y, %I:%M %p"),
            ]
        )
    return buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    """Download filename for a CSV export."""
    return f"extracted-entities-{(today or date.today()).isoformat()}.csv"
