"""
renderer.py — Proof-of-Sale Document Renderer

Builds the sale receipt as a Word document (python-docx). Output depends only
on the snapshot: the date and document metadata come from the sale, never
from the clock.
"""

from decimal import Decimal
from io import BytesIO
from typing import List

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH

from .models import SaleSnapshot

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOCUMENT_TITLE = "PROOF OF SALE"
DETAIL_HEADERS = ("Product", "Quantity", "Unit price", "Subtotal")


def format_money(amount) -> str:
    return f"${Decimal(amount).quantize(Decimal('0.01')):,}"


def header_fields(snapshot: SaleSnapshot) -> List[tuple]:
    customer = snapshot.customer
    return [
        ("Folio", snapshot.folio),
        ("Customer", customer.name),
        ("Tax ID", customer.tax_id),
        ("Date", snapshot.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")),
        ("Payment method", snapshot.payment_method or "-"),
        ("Delivery address", snapshot.delivery_address or "-"),
    ]


def detail_rows(snapshot: SaleSnapshot) -> List[tuple]:
    return [
        (item.snapshot.name, str(item.quantity), format_money(item.snapshot.price), format_money(item.subtotal))
        for item in snapshot.items
    ]


def summary_lines(snapshot: SaleSnapshot) -> List[str]:
    """The document's text content, in rendering order."""
    lines = [DOCUMENT_TITLE]
    lines += [f"{label}: {value}" for label, value in header_fields(snapshot)]
    lines.append("--- DETAIL ---")
    lines += [f"{name} x{qty} - {subtotal}" for name, qty, _, subtotal in detail_rows(snapshot)]
    lines.append(f"TOTAL: {format_money(snapshot.total)}")
    return lines


class DocumentRenderer:
    content_type = DOCX_CONTENT_TYPE
    extension = "docx"

    def render(self, snapshot: SaleSnapshot) -> bytes:
        """
        Renders the proof of sale for a snapshot.

        Args:
            snapshot (SaleSnapshot): Folio, customer, line items and total to show.

        Returns:
            bytes: The .docx file content.
        """
        doc = Document()
        doc.core_properties.title = f"{DOCUMENT_TITLE} {snapshot.folio}"
        doc.core_properties.created = snapshot.created_at

        heading = doc.add_heading(DOCUMENT_TITLE, level=0)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

        for label, value in header_fields(snapshot):
            doc.add_paragraph(f"{label}: {value}")

        doc.add_heading("Detail", level=2)
        table = doc.add_table(rows=1, cols=len(DETAIL_HEADERS))
        table.style = "Table Grid"
        for cell, title in zip(table.rows[0].cells, DETAIL_HEADERS):
            cell.text = title
        for row in detail_rows(snapshot):
            for cell, value in zip(table.add_row().cells, row):
                cell.text = value

        total = doc.add_paragraph()
        total.add_run(f"TOTAL: {format_money(snapshot.total)}").bold = True
        total.alignment = WD_ALIGN_PARAGRAPH.RIGHT

        buffer = BytesIO()
        doc.save(buffer)
        return buffer.getvalue()
