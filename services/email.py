import logging
import os
from typing import Dict, Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.config import settings
from tasks.email_tasks import send_email_task, deliver_email

logger = logging.getLogger(__name__)

# Jinja2 environment for email templates
_templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
)


def send_email(to_email: str, subject: str, body: str) -> None:
    """
    Queue the email on Celery, falling back to a direct SMTP send when the
    broker is unreachable. Returns immediately when the task is queued.
    """
    if not to_email:
        logger.debug("Skipping email %r without recipient", subject)
        return
    try:
        send_email_task.delay(to_email, subject, body)
        logger.debug("Email task queued to Celery for %s", to_email)
        return
    except Exception as exc:
        logger.warning("Celery not available, sending email directly: %s", exc)
    _send_email_direct(to_email, subject, body)


def render_template(template_path: str, context: Dict[str, Any]) -> str:
    """Render a text template from templates/ directory with provided context."""
    template = _templates_env.get_template(template_path)
    return template.render(**context)


def send_templated_email(to_email: str, subject: str, template_path: str, context: Dict[str, Any]) -> None:
    """Render a template and send email via existing send_email path."""
    body = render_template(template_path, context)
    send_email(to_email, subject, body)


def _send_email_direct(to_email: str, subject: str, body: str) -> None:
    if settings.TESTING or not settings.SMTP_PASSWORD:
        logger.info("Email to %s not sent (no SMTP credentials): %s", to_email, subject)
        return
    try:
        deliver_email(to_email, subject, body)
        logger.info("Email sent to %s", to_email)
    except Exception:
        # Notifications never fail an order operation
        logger.exception("Email sending to %s failed", to_email)


def notify_order_approved(order) -> None:
    if order.snap_url:
        send_templated_email(
            order.buyer_email,
            "Pesanan disetujui - selesaikan pembayaran",
            "emails/order_approved_payment.txt",
            {"buyer_name": order.buyer_name or "", "seller_name": order.seller_name or "", "order_id": order.id,
             "total_amount": int(float(order.total_amount)), "snap_url": order.snap_url},
        )
    else:
        send_templated_email(
            order.buyer_email,
            "Pesanan disetujui",
            "emails/order_approved_free.txt",
            {"buyer_name": order.buyer_name or "", "seller_name": order.seller_name or "", "order_id": order.id},
        )


def notify_order_rejected(order) -> None:
    send_templated_email(
        order.buyer_email,
        "Pesanan ditolak",
        "emails/order_rejected.txt",
        {"buyer_name": order.buyer_name or "", "seller_name": order.seller_name or "", "order_id": order.id,
         "rejection_reason": order.rejection_reason or ""},
    )
