"""Text exports and the PDF analysis report."""

import io
from pathlib import PurePath
from xml.sax.saxutils import escape

import docx
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from docflow.database.models import DocumentRecord
from docflow.documents.models import ExportedFile

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EXPORT_FORMATS = ("txt", "docx")


def export_text(record: DocumentRecord, fmt: str) -> ExportedFile:
    """Export the extracted text as a plain text or word-processing file.

    Raises:
        ValueError: if fmt is not one of EXPORT_FORMATS.
    """
    stem = PurePath(record.original_display_name).stem or "document"
    if fmt == "txt":
        return ExportedFile(
            filename=f"{stem}.txt",
            media_type=TEXT_MEDIA_TYPE,
            content=record.extracted_text.encode("utf-8"),
        )
    if fmt == "docx":
        return ExportedFile(
            filename=f"{stem}.docx",
            media_type=DOCX_MEDIA_TYPE,
            content=_render_docx(record.extracted_text),
        )
    raise ValueError(f"Unknown export format '{fmt}'. Choose from: {list(EXPORT_FORMATS)}")


def _render_docx(text: str) -> bytes:
    document = docx.Document()
    for line in text.splitlines():
        document.add_paragraph(line)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def render_report(record: DocumentRecord, summary: str) -> bytes:
    """Render the one-page analysis report of a processed document."""
    styles = getSampleStyleSheet()
    details = [
        ("Document", record.original_display_name),
        ("Status", record.status.value),
        ("Classification", f"{record.classification_label} ({record.classification_confidence}%)"),
        ("Sentiment", record.sentiment.value),
        ("Routed to", record.route_destination or "Not routed"),
        ("Size", f"{record.size_bytes / 1024:.2f} KB"),
        ("Uploaded", record.created_at.strftime("%Y-%m-%d %H:%M")),
    ]
    story = [Paragraph("Document Analysis Report", styles["Title"]), Spacer(1, 12)]
    for label, value in details:
        story.append(Paragraph(f"<b>{label}:</b> {escape(value)}", styles["Normal"]))
    if record.structured_data:
        story.append(Spacer(1, 12))
        story.append(Paragraph("Extracted Fields", styles["Heading2"]))
        for name, value in record.structured_data.items():
            story.append(Paragraph(f"<b>{escape(name)}:</b> {escape(value)}", styles["Normal"]))
    story.append(Spacer(1, 12))
    story.append(Paragraph("AI Summary", styles["Heading2"]))
    story.append(Paragraph(escape(summary), styles["Normal"]))

    buffer = io.BytesIO()
    SimpleDocTemplate(buffer, pagesize=A4, title="Document Analysis Report").build(story)
    return buffer.getvalue()
