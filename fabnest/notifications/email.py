"""Proforma-invoice (PI) e-mails sent when an admin prices a quote request.

Only the dry-run transport exists: the rendered message is written to the
outbox directory. Callers must treat any exception from ``send_pi_email`` as a
failed delivery.
"""
import logging
from html import escape

from pydantic import BaseModel, EmailStr, Field

from fabnest.shared.artifacts import save_json
from fabnest.shared.config import settings

logger = logging.getLogger(__name__)

class EmailNotConfigured(RuntimeError):
    pass

class PIEmail(BaseModel):
    to: EmailStr
    customer_name: str = "Customer"
    quote_request_id: str
    file_name: str
    material: str
    quality: str
    price: float = Field(ge=0)
    admin_notes: str | None = None
    admin_name: str | None = None

def render_subject(data: PIEmail) -> str:
    return f"Proforma Invoice - {data.file_name}"

def render_text(data: PIEmail) -> str:
    lines = [
        f"Dear {data.customer_name},",
        "",
        "Thank you for your quote request. Here is the proforma invoice for your 3D printing order.",
        "",
        f"File: {data.file_name}",
        f"Material: {data.material}",
        f"Quality: {data.quality}",
    ]
    if data.admin_notes:
        lines.append(f"Notes: {data.admin_notes}")
    lines += [
        "",
        f"Price: {settings.CURRENCY} {data.price:.2f}",
        "",
        "If you accept this quote, visit your account dashboard to place the order.",
        "",
        f"Best regards,\n{data.admin_name or 'FABNEST 3D Team'}",
    ]
    return "\n".join(lines)

def render_html(data: PIEmail) -> str:
    notes = f"<p><strong>Notes:</strong> {escape(data.admin_notes)}</p>" if data.admin_notes else ""
    return (
        "<html><body>"
        "<h1>Proforma Invoice</h1><p>FABNEST 3D Printing Service</p>"
        f"<p>Dear {escape(data.customer_name)},</p>"
        f"<p><strong>File:</strong> {escape(data.file_name)}</p>"
        f"<p><strong>Material:</strong> {escape(data.material)}</p>"
        f"<p><strong>Quality:</strong> {escape(data.quality)}</p>"
        f"{notes}"
        f"<p class=\"price\">{settings.CURRENCY} {data.price:.2f}</p>"
        f"<p>Best regards,<br>{escape(data.admin_name or 'FABNEST 3D Team')}</p>"
        "<p><small>This is a Proforma Invoice and does not constitute a final invoice.</small></p>"
        "</body></html>"
    )

def send_pi_email(data: PIEmail) -> dict:
    message = {
        "from": settings.EMAIL_FROM,
        "to": data.to,
        "subject": render_subject(data),
        "text": render_text(data),
        "html": render_html(data),
        "quote_request_id": data.quote_request_id,
    }
    if not settings.EMAIL_DRY_RUN:
        raise EmailNotConfigured("No e-mail transport configured; set EMAIL_DRY_RUN=true")
    path = save_json(settings.EMAIL_OUTBOX_DIR, "pi-email", message)
    logger.info("PI e-mail for quote %s written to %s", data.quote_request_id, path)
    return {"status": "dry-run", "artifact_path": path, "to": data.to}
