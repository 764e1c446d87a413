"""Order notification sink.

Sending is best effort: OrderNotifier.notify never raises, it logs and reports
False so an order that was already stored is never affected by mail problems.
"""

import html
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional
from uuid import uuid4

import structlog

from schemas import Order
from settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class EmailPort(ABC):
    """Abstract interface for email dispatch adapters."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str, html_body: Optional[str] = None) -> dict:
        """Send an email message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...


class SmtpEmailAdapter(EmailPort):
    """Sends through an SMTP server over SSL (Gmail app passwords by default)."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.timeout = settings.SMTP_TIMEOUT
        self.sender_name = settings.STORE_NAME

    def send(self, to, subject, body, html_body=None) -> dict:
        message = EmailMessage()
        message["From"] = f'"{self.sender_name}" <{self.user}>'
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.host)
        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.login(self.user, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            return {"message_id": None, "status": "failed", "error": str(exc)}

        return {"message_id": message["Message-ID"], "status": "sent"}


class DisabledEmailAdapter(EmailPort):
    """Used when SMTP is not configured: nothing is kept and every send fails."""

    def send(self, to, subject, body, html_body=None) -> dict:
        logger.warning("Email not sent, SMTP not configured", to=to, subject=subject)
        return {"message_id": None, "status": "failed", "error": "SMTP not configured"}


class FakeEmailAdapter(EmailPort):
    """Test adapter that records messages in memory instead of sending them."""

    def __init__(self):
        self.sent_emails: list = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to, subject, body, html_body=None) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {"message_id": message_id, "to": to, "subject": subject, "body": body, "html_body": html_body}
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_emails.clear()
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"


def render_order_email(order: Order, currency: str = "₹", store_name: str = "") -> dict:
    lines = "\n".join(
        f"  {item.name} x{item.quantity}  {currency}{item.line_total:.2f}" for item in order.items
    )
    body = (
        f"New order {order.order_id}\n\n"
        f"Player:  {order.minecraft_username} ({order.edition})\n"
        f"UTR:     {order.transaction_reference}\n\n"
        f"{lines}\n\n"
        f"Total:   {currency}{order.total:.2f}\n\n"
        "Verify the UTR in your UPI app and deliver items in-game."
    )

    rows = "".join(
        f"<tr><td>{html.escape(item.name)}</td>"
        f'<td style="text-align:center">&times;{item.quantity}</td>'
        f'<td style="text-align:right">{currency}{item.line_total:.2f}</td></tr>'
        for item in order.items
    )
    html_body = (
        '<div style="font-family:Arial,sans-serif;max-width:500px;margin:0 auto">'
        f"<h2>New Order Received</h2><p>{html.escape(store_name)}</p>"
        f"<p><b>Order ID:</b> <code>{order.order_id}</code></p>"
        f"<p><b>Player:</b> {html.escape(order.minecraft_username)} ({order.edition})</p>"
        f"<p><b>UTR / Transaction ID:</b> <code>{order.transaction_reference}</code></p>"
        f'<table style="width:100%">{rows}</table>'
        f"<h3>Total: {currency}{order.total:.2f}</h3>"
        "<p>Verify the UTR in your UPI app and deliver items in-game.</p>"
        "</div>"
    )

    return {
        "subject": f"New Order - {order.minecraft_username} - {currency}{order.total:.2f}",
        "body": body,
        "html_body": html_body,
    }


class OrderNotifier:
    """Tells the store owner about a newly placed order."""

    def __init__(self, channel: EmailPort, recipient: Optional[str], currency: str = "₹", store_name: str = ""):
        self.channel = channel
        self.recipient = recipient
        self.currency = currency
        self.store_name = store_name

    def notify(self, order: Order) -> bool:
        if not self.recipient:
            logger.warning("No notification recipient configured", order_id=order.order_id)
            return False
        try:
            content = render_order_email(order, self.currency, self.store_name)
            result = self.channel.send(to=self.recipient, **content)
        except Exception:
            logger.exception("Order notification crashed", order_id=order.order_id)
            return False

        if result.get("status") != "sent":
            logger.error(
                "Order notification failed",
                order_id=order.order_id,
                error=result.get("error", "Unknown dispatch error"),
            )
            return False

        logger.info("Order notification sent", order_id=order.order_id, message_id=result.get("message_id"))
        return True


_channel: Optional[EmailPort] = None


def get_email_channel(settings: Optional[Settings] = None) -> EmailPort:
    """Return the configured email adapter (singleton). Without SMTP credentials every send fails."""
    global _channel
    if _channel is None:
        settings = settings or get_settings()
        _channel = SmtpEmailAdapter(settings) if settings.email_configured else DisabledEmailAdapter()
    return _channel


def reset_email_channel():
    global _channel
    _channel = None
