"""
Membership credential rendering.

Draws a single credit-card sized page (ID-1, 85.6 x 54 mm) in landscape
with reportlab. Pure function of the record and the generation time; it
never touches the database.
"""

import io
from datetime import datetime
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from affiliates.config import settings
from affiliates.models import AffiliateRecord

CARD_SIZE = (85.6 * mm, 54 * mm)
BACKGROUND = colors.HexColor("#004B8D")
MARGIN = 6 * mm


def credential_filename(record: AffiliateRecord) -> str:
    return f"credencial_{record.national_id}.pdf"


def render_credential(
    record: AffiliateRecord,
    generated_at: Optional[datetime] = None,
    organization: Optional[str] = None
) -> bytes:
    """
    Render the credential PDF for one affiliate.

    Args:
        record: The affiliate
        generated_at: Date printed on the card (defaults to now)
        organization: Header text (defaults to settings.organization_name)

    Returns:
        PDF document bytes
    """
    generated_at = generated_at or datetime.now()
    organization = organization or settings.organization_name
    width, height = CARD_SIZE

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=CARD_SIZE)
    pdf.setTitle(f"Credencial {record.national_id}")
    pdf.setAuthor(organization)

    pdf.setFillColor(BACKGROUND)
    pdf.rect(0, 0, width, height, stroke=0, fill=1)

    pdf.setFillColor(colors.white)
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(MARGIN, height - MARGIN - 4 * mm, organization)

    pdf.setStrokeColor(colors.white)
    pdf.setLineWidth(0.5)
    pdf.line(MARGIN, height - MARGIN - 6 * mm, width - MARGIN, height - MARGIN - 6 * mm)

    lines = [
        f"Nombre: {record.full_name}",
        f"DNI: {record.national_id}",
        f"Afiliado N°: {record.member_number}",
    ]
    if record.category:
        lines.append(f"Categoría: {record.category}")

    pdf.setFont("Helvetica", 8)
    y = height - MARGIN - 12 * mm
    for line in lines:
        pdf.drawString(MARGIN, y, line)
        y -= 4.5 * mm

    pdf.setFont("Helvetica-Oblique", 6)
    pdf.drawRightString(
        width - MARGIN,
        MARGIN,
        f"Fecha: {generated_at.strftime('%d/%m/%Y')}"
    )

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
