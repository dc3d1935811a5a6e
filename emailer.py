import logging
from typing import Optional

import resend

from settings import settings

logger = logging.getLogger(__name__)

STATUS_CONTENT = {
    "pending": ("Awaiting Confirmation", "Your order has been received and is awaiting confirmation from our team."),
    "accepted": (
        "Confirmed! Complete Your Payment",
        "Great news! Your order has been accepted. Please complete your payment to proceed with delivery.",
    ),
    "preparing": ("Being Prepared", "Your order is now being prepared with care."),
    "shipped": ("On Its Way!", "Your order has been shipped and is on its way to you."),
    "delivered": ("Delivered Successfully", "Your order has been delivered. We hope you enjoy your purchase!"),
    "cancelled": (
        "Cancelled",
        "Your order has been cancelled. If you have any questions, please contact us.",
    ),
}


def build_status_email(order: dict, status: str) -> dict:
    order_id = order["order_id"]
    title, message = STATUS_CONTENT.get(status, ("Status Update", f"Your order status has been updated to: {status}"))
    rows = "".join(
        f"<tr><td>{item['name']}</td><td>x{item['quantity']}</td><td>{item['price'] * item['quantity']:.2f}</td></tr>"
        for item in order.get("items", [])
    )
    payment = ""
    if status == "accepted":
        link = f"{settings.frontend_url}/payment/{order_id}"
        payment = f'<p><a href="{link}">Complete Payment Now</a></p>'
    html = (
        f"<h2>Order {order_id}</h2>"
        f"<p>Hello {order.get('name', '')},</p>"
        f"<p>{message}</p>"
        f"<p>Status: <strong>{status.upper()}</strong></p>"
        f"<table>{rows}</table>"
        f"<p>Total: {order.get('total', 0):.2f}</p>"
        f"{payment}"
    )
    return {
        "from": settings.sender_email,
        "to": [order["email"]],
        "subject": f"Order {order_id} - {title}",
        "html": html,
    }


def send_status_email(order: dict, status: str) -> Optional[dict]:
    """Notify the customer of a status change; never raises."""
    if not order.get("email"):
        return None
    if not settings.resend_api_key:
        logger.warning("Resend API key not configured, skipping email for order %s", order.get("order_id"))
        return None
    resend.api_key = settings.resend_api_key
    try:
        result = resend.Emails.send(build_status_email(order, status))
        logger.info("Status email for order %s sent: %s", order.get("order_id"), result)
        return result
    except Exception as e:
        logger.error("Failed to send status email for order %s: %s", order.get("order_id"), e)
        return None
