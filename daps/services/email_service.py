"""
Email service using SendGrid for account and offer notifications.
"""

import os
import logging
from typing import Dict, Optional, Tuple
from urllib.parse import quote
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content
from dotenv import load_dotenv
from daps.database.models import OfferStatus
from daps.utils.constants import get_bool_env

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# SendGrid Configuration
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "noreply@daps.com")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5175")
ENABLE_EMAIL = get_bool_env("ENABLE_EMAIL", default=True)


def is_enabled() -> bool:
    """Check whether outgoing email is enabled."""
    return ENABLE_EMAIL


def _send(to_email: str, subject: str, text: str, html: Optional[str] = None) -> bool:
    """
    Deliver one message through SendGrid.

    Returns:
        bool: True if sent (or intentionally skipped), False if delivery failed
    """
    if not is_enabled():
        logger.info(f"Email sending is disabled. Skipped '{subject}' to {to_email}")
        return True  # Skipping is not a failure

    if not SENDGRID_API_KEY:
        logger.warning(f"SENDGRID_API_KEY not configured. Skipped '{subject}' to {to_email}")
        return True

    try:
        message = Mail(
            from_email=Email(SENDGRID_FROM_EMAIL),
            to_emails=To(to_email),
            subject=subject,
            plain_text_content=Content("text/plain", text),
            html_content=Content("text/html", html) if html else None,
        )

        sg = SendGridAPIClient(SENDGRID_API_KEY)
        response = sg.send(message)

        if 200 <= response.status_code < 300:
            logger.info(f"Email '{subject}' sent to {to_email}")
            return True
        logger.error(f"SendGrid returned status {response.status_code}: {response.body}")
        return False
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {to_email}: {str(e)}")
        return False


async def send_verification_email(to_email: str, token: str) -> bool:
    """Send the account verification link."""
    url = f"{PUBLIC_BASE_URL}/api/users/verify?token={quote(token)}"
    return _send(
        to_email,
        "Verify your Daps account",
        f"Verify your email: {url}",
        f'<p>Verify your email:</p><p><a href="{url}">{url}</a></p>',
    )


async def send_password_reset_email(to_email: str, token: str) -> bool:
    """Send the password reset link."""
    url = f"{PUBLIC_BASE_URL}/reset-password?token={quote(token)}"
    return _send(
        to_email,
        "Reset your Daps password",
        f"Reset password: {url}",
        f'<p>Reset your password:</p><p><a href="{url}">{url}</a></p>',
    )


def build_offer_status_email(offer: Dict) -> Optional[Tuple[str, str, str]]:
    """
    Build (subject, text, html) for an offer status change.

    Args:
        offer: Offer snapshot with status, offered, exp_desc, game_desc and an
            optional athlete dict carrying a name

    Returns:
        The message parts, or None for an unrecognized status
    """
    status = offer.get("status")
    offered = offer.get("offered")
    athlete_name = (offer.get("athlete") or {}).get("name") or "the athlete"
    experience = offer.get("exp_desc") or offer.get("game_desc") or "your requested experience"
    amount = f"${offered:g}" if offered else ""

    if status == OfferStatus.APPROVED.value:
        subject = "Your Daps offer was approved"
        text = (
            f"Good news! Your offer ({amount or '-'}) for {experience} "
            f"with {athlete_name} was approved."
        )
        html = (
            "<h2>Offer approved</h2>"
            f"<p>Good news! Your offer {f'<b>{amount}</b> ' if amount else ''}for <b>{experience}</b> "
            f"with <b>{athlete_name}</b> was approved.</p>"
            "<p>We'll be in touch with next steps.</p>"
        )
    elif status == OfferStatus.DECLINED.value:
        subject = "Update on your Daps offer"
        text = (
            f"Thanks for your offer for {experience} with {athlete_name}. "
            "It wasn't approved this time."
        )
        html = (
            "<h2>Offer update</h2>"
            f"<p>Thanks for your offer for <b>{experience}</b> with <b>{athlete_name}</b>. "
            "It wasn't approved this time.</p>"
            "<p>You can submit a new offer anytime.</p>"
        )
    elif status == OfferStatus.PENDING.value:
        subject = "Your Daps offer is pending"
        text = f"Your offer for {experience} with {athlete_name} is pending review."
        html = (
            "<h2>Offer pending</h2>"
            f"<p>Your offer for <b>{experience}</b> with <b>{athlete_name}</b> is pending review.</p>"
        )
    else:
        return None

    return subject, text, html


async def send_offer_status_email(to_email: Optional[str], offer: Dict) -> bool:
    """
    Notify a customer that their offer's status changed.

    Args:
        to_email: Recipient (the offer's effective customer email)
        offer: Offer snapshot (see build_offer_status_email)

    Returns:
        bool: True if sent, False if skipped for a missing recipient/unknown status or failed
    """
    if not to_email:
        logger.warning("Offer status email skipped: no recipient")
        return False

    parts = build_offer_status_email(offer)
    if parts is None:
        logger.warning(f"Offer status email skipped: unknown status {offer.get('status')!r}")
        return False

    subject, text, html = parts
    logger.info(f"Sending offer status email to {to_email} (offer={offer.get('id')}, status={offer.get('status')})")
    return _send(to_email, subject, text, html)
