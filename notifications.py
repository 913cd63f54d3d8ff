"""
Notifications for Turf Fertility Manager.

Email delivery over SMTP for two events:

- a new account signed up and is waiting for approval (sent to the admin)
- alert-enabled products in a tenant's catalog dropped to or below the
  tenant's low-stock threshold (sent to the tenant's notification address)

Delivery failures are logged and reported as False; they never propagate
into the request that triggered them.
"""

import logging
import re
import smtplib
from email.mime.text import MIMEText

from config import Config
from constants import DEFAULT_NOTIFICATION_SETTINGS
from nutrient_calculator import _number

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def normalize_notification_settings(raw):
    """Validate and normalize a tenant's notification settings.

    Raises:
        ValueError: enabled without a valid email, or a negative threshold
    """
    settings = dict(DEFAULT_NOTIFICATION_SETTINGS)
    raw = raw or {}
    settings['enabled'] = bool(raw.get('enabled', settings['enabled']))
    settings['email'] = str(raw.get('email') or '').strip()

    threshold = _number(raw.get('threshold', settings['threshold']))
    if threshold is None or threshold < 0:
        raise ValueError("Threshold must be a number of 0 or more")
    settings['threshold'] = threshold

    if settings['enabled'] and not _EMAIL_RE.match(settings['email']):
        raise ValueError("A valid email address is required to enable notifications")
    return settings


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

def send_email(to_address, subject, body):
    """Send a plain-text email via SMTP. Returns True on success."""
    if not to_address or not Config.SMTP_FROM:
        logger.warning(f"Email '{subject}' not sent: missing recipient or sender")
        return False
    try:
        msg = MIMEText(body, _charset='utf-8')
        msg['Subject'] = f"[Turf Fertility] {subject}"
        msg['From'] = Config.SMTP_FROM
        msg['To'] = to_address

        with smtplib.SMTP(Config.SMTP_HOST, Config.SMTP_PORT) as server:
            server.starttls()
            server.login(Config.SMTP_FROM, Config.SMTP_PASSWORD)
            server.send_message(msg)
        logger.info(f"Sent email '{subject}' to {to_address}")
        return True
    except Exception as e:
        logger.error(f"Email send error: {e}")
        return False


def send_signup_notification(user):
    """Tell the administrator that a new account is waiting for approval."""
    if not Config.SIGNUP_EMAIL_ENABLED or not user or user.get('is_approved'):
        return False
    body = (
        f"A new account has signed up and is waiting for approval.\n\n"
        f"Username: {user['username']}\n"
        f"Golf course: {user.get('golf_course', '')}\n"
        f"Signed up: {user.get('created_at') or ''}\n"
    )
    return send_email(Config.ADMIN_EMAIL, f"New signup: {user['username']}", body)


# ---------------------------------------------------------------------------
# Low stock
# ---------------------------------------------------------------------------

def low_stock_fertilizers(fertilizers, threshold):
    """Alert-enabled products whose stock is at or below threshold."""
    limit = _number(threshold)
    if limit is None:
        limit = Config.LOW_STOCK_DEFAULT_THRESHOLD
    return [
        fert for fert in fertilizers or []
        if fert.get('low_stock_alert_enabled') and (_number(fert.get('stock')) or 0.0) <= limit
    ]


def check_low_stock(username):
    """Email the tenant a list of low-stock products if notifications are on.

    Returns:
        dict with 'low_stock' (product names) and 'sent'
    """
    from tenant_store import get_fertilizers, get_notification_settings

    settings = get_notification_settings(username)
    low = low_stock_fertilizers(get_fertilizers(username), settings.get('threshold'))
    summary = {'low_stock': [f['name'] for f in low], 'sent': False}
    if not low or not settings.get('enabled') or not Config.LOW_STOCK_EMAIL_ENABLED:
        return summary

    lines = [f"- {f['name']}: {f.get('stock', 0)} left" for f in low]
    body = (
        f"The following products are at or below your alert threshold "
        f"({settings['threshold']}):\n\n" + "\n".join(lines) + "\n\nPlease reorder."
    )
    summary['sent'] = send_email(settings.get('email'), "Low stock alert", body)
    logger.info(f"Low-stock check for {username}: {len(low)} product(s), sent={summary['sent']}")
    return summary
