# ticketing/services/mailer.py
import smtplib
from html import escape
from email.message import EmailMessage
from typing import Optional

from starlette.concurrency import run_in_threadpool

from ticketing import config
from ticketing.logger_config import logger
from ticketing.models.booking import TicketData


def booking_confirmation_html(ticket: TicketData) -> str:
    ticket = ticket.model_copy(
        update={key: escape(value) for key, value in ticket.model_dump().items() if isinstance(value, str)}
    )
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333;">
        <h1>{config.TICKET_BRAND}</h1>
        <h2>Booking Confirmation</h2>
        <p>Dear {ticket.customer_name},</p>
        <p>Thank you for your booking! Your tickets have been confirmed.</p>
        <h3>Event Details</h3>
        <p><strong>Event:</strong> {ticket.event_title}</p>
        <p><strong>Date:</strong> {ticket.event_date}</p>
        <p><strong>Time:</strong> {ticket.event_time}</p>
        <p><strong>Venue:</strong> {ticket.event_venue}</p>
        <h3>Booking Details</h3>
        <p><strong>Booking ID:</strong> {ticket.booking_id}</p>
        <p><strong>Ticket ID:</strong> {ticket.ticket_id}</p>
        <p><strong>Pass Type:</strong> {ticket.pass_type}</p>
        <p><strong>Quantity:</strong> {ticket.quantity}</p>
        <p><strong>Total Amount:</strong> &#8377;{ticket.total_amount}</p>
        <p>Your ticket is attached to this email. Please present it at the venue for entry.</p>
      </body>
    </html>
    """


class Mailer:
    def __init__(self, host: str, port: int, user: str, password: str, sender: str, timeout: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def build_confirmation(self, ticket: TicketData, pdf: Optional[bytes]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f'"{config.TICKET_BRAND}" <{self.sender}>'
        message["To"] = ticket.customer_email
        message["Subject"] = f"Booking Confirmation - {ticket.event_title}"
        message.set_content(
            f"Your booking {ticket.booking_id} for {ticket.event_title} is confirmed. "
            f"Ticket ID: {ticket.ticket_id}."
        )
        message.add_alternative(booking_confirmation_html(ticket), subtype="html")
        if pdf:
            message.add_attachment(
                pdf, maintype="application", subtype="pdf", filename=f"ticket-{ticket.booking_id}.pdf"
            )
        return message

    def _send(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_booking_confirmation(self, ticket: TicketData, pdf: Optional[bytes] = None) -> bool:
        """Send the confirmation email; errors propagate to the caller."""
        message = self.build_confirmation(ticket, pdf)
        await run_in_threadpool(self._send, message)
        logger.info(f"Confirmation email sent to {ticket.customer_email} for booking {ticket.booking_id}")
        return True


def get_mailer() -> Mailer:
    return Mailer(
        config.SMTP_HOST,
        config.SMTP_PORT,
        config.SMTP_USER,
        config.SMTP_PASS,
        config.SMTP_FROM or config.SMTP_USER,
        config.SMTP_TIMEOUT,
    )
