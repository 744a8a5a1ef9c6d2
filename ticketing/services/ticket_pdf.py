# ticketing/services/ticket_pdf.py
import json
from io import BytesIO

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode import qr
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from starlette.concurrency import run_in_threadpool

from ticketing import config
from ticketing.models.booking import TicketData
from ticketing.utils.signature import ticket_security_hash

# Landscape ticket stub
PAGE_W, PAGE_H = 210 * mm, 74 * mm
QR_SIZE = 48 * mm
QR_X, QR_Y = 8 * mm, (PAGE_H - QR_SIZE) / 2
TEXT_X = QR_X + QR_SIZE + 8 * mm

BACKGROUND = colors.Color(139 / 255, 92 / 255, 246 / 255)
TEXT = colors.white

T_8 = 8
T_10 = 10
T_16 = 16


def qr_payload(ticket: TicketData) -> str:
    return json.dumps(
        {
            "bid": ticket.booking_id,
            "tid": ticket.ticket_id,
            "eid": ticket.event_id or "unk",
            "sig": ticket_security_hash(ticket.booking_id, ticket.event_id, ticket.customer_email),
        },
        separators=(",", ":"),
    )


def _draw_qr(c: canvas.Canvas, payload: str):
    widget = qr.QrCodeWidget(payload, barLevel="H")
    x1, y1, x2, y2 = widget.getBounds()
    width, height = x2 - x1, y2 - y1
    drawing = Drawing(QR_SIZE, QR_SIZE, transform=[QR_SIZE / width, 0, 0, QR_SIZE / height, 0, 0])
    drawing.add(widget)
    c.setFillColor(colors.white)
    c.rect(QR_X - 1 * mm, QR_Y - 1 * mm, QR_SIZE + 2 * mm, QR_SIZE + 2 * mm, stroke=0, fill=1)
    renderPDF.draw(drawing, c, QR_X, QR_Y)


def _lines(ticket: TicketData):
    yield "Helvetica-Bold", T_16, ticket.event_title
    if ticket.day_title:
        yield "Helvetica", T_10, f"Day {ticket.day_number}: {ticket.day_title}"
    yield "Helvetica", T_10, f"{ticket.event_date}  {ticket.event_time}"
    yield "Helvetica", T_10, ticket.event_venue
    yield "Helvetica-Bold", T_10, ticket.customer_name
    yield "Helvetica", T_10, f"{ticket.pass_type}  x{ticket.quantity}"
    if ticket.event_duration:
        yield "Helvetica", T_8, ticket.event_duration
    yield "Courier-Bold", T_10, ticket.ticket_id
    yield "Helvetica", T_8, f"Booking {ticket.booking_id}"


def render_ticket_pdf(ticket: TicketData) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(PAGE_W, PAGE_H))
    c.setTitle(f"Ticket {ticket.ticket_id}")

    c.setFillColor(BACKGROUND)
    c.rect(0, 0, PAGE_W, PAGE_H, stroke=0, fill=1)

    _draw_qr(c, qr_payload(ticket))

    c.setFillColor(TEXT)
    y = PAGE_H - 12 * mm
    for font, size, text in _lines(ticket):
        c.setFont(font, size)
        c.drawString(TEXT_X, y, str(text))
        y -= size + 3

    c.setFont("Helvetica-Bold", T_8)
    c.drawRightString(PAGE_W - 6 * mm, 6 * mm, config.TICKET_BRAND)

    c.showPage()
    c.save()
    return buf.getvalue()


async def generate_ticket_pdf(ticket: TicketData) -> bytes:
    return await run_in_threadpool(render_ticket_pdf, ticket)
