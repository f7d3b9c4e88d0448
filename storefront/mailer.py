# storefront/mailer.py
import logging
from typing import Optional

import httpx

from . import config

logger = logging.getLogger(__name__)


async def send_email(to: str, subject: str, text: Optional[str] = None, html: Optional[str] = None) -> bool:
    """Send through the SendGrid v3 API. Returns False instead of raising."""
    if not config.SENDGRID_API_KEY:
        if config.APP_ENV == "development":
            logger.info("[MAIL] development mode, not sending '%s' to %s:\n%s", subject, to, text or html)
            return True
        logger.warning("[MAIL] SENDGRID_API_KEY is not set, email to %s not sent", to)
        return False

    content = []
    if text:
        content.append({"type": "text/plain", "value": text})
    if html:
        content.append({"type": "text/html", "value": html})
    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": config.EMAIL_FROM},
        "subject": subject,
        "content": content,
    }
    headers = {"Authorization": f"Bearer {config.SENDGRID_API_KEY}"}
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            r = await client.post(config.SENDGRID_URL, json=payload, headers=headers)
        r.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("[MAIL] SendGrid error sending to %s: %s", to, e)
        return False
    logger.info("[MAIL] email sent to %s", to)
    return True


def reset_link(token: str) -> str:
    return f"{config.SITE_URL}/reset-password?token={token}"


async def send_password_reset_email(email: str, token: str) -> bool:
    url = reset_link(token)
    text = (
        "Hello,\n\n"
        "We received a request to reset the password of your account. "
        f"Open the following link to choose a new password:\n\n{url}\n\n"
        "If you did not ask for this, ignore this message. The link expires in one hour.\n"
    )
    html = (
        "<p>Hello,</p>"
        "<p>We received a request to reset the password of your account.</p>"
        f'<p><a href="{url}">Reset password</a></p>'
        "<p>If you did not ask for this, ignore this message. The link expires in one hour.</p>"
    )
    return await send_email(email, "Password reset", text=text, html=html)


async def send_order_confirmation(email: str, order_number: str, total: int, tracking_number: str) -> bool:
    text = (
        f"Thank you for your order {order_number}.\n"
        f"Total: {total}\n"
        f"Track your shipment with tracking number {tracking_number} at {config.SITE_URL}/track-order\n"
    )
    return await send_email(email, f"Order {order_number} confirmed", text=text)
