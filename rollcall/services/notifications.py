"""Email transport (Mailgun over httpx, SendGrid fallback) and the messages the auth flow sends."""
import logging
from dataclasses import dataclass

import httpx

from rollcall.config import Settings

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""


def send_email(settings: Settings, message: EmailMessage) -> bool:
    """Send via Mailgun (preferred) or SendGrid. Returns True only when a provider accepted the message."""
    if settings.mailgun_api_key and settings.mailgun_domain:
        return _send_email_mailgun(settings, message)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(settings, message)
    logger.warning(
        "Email NOT SENT: to=%s subject=%s. Set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY) in .env",
        message.to,
        message.subject,
    )
    return False


def _mailgun_from(settings: Settings) -> str:
    domain = settings.mailgun_domain.lower()
    from_addr = settings.mailgun_from_email
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun drops mail whose sender domain differs from the sending domain
        from_addr = f"noreply@{domain}"
    return f"{settings.mailgun_from_name} <{from_addr}>"


def _send_email_mailgun(settings: Settings, message: EmailMessage) -> bool:
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).rstrip("/")
    domain = settings.mailgun_domain.lower()
    data = {
        "from": _mailgun_from(settings),
        "to": message.to,
        "subject": message.subject,
        "text": message.text,
        "html": message.html,
    }
    auth = ("api", settings.mailgun_api_key)
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=auth, data=data)
            if 200 <= r.status_code < 300:
                logger.info("Mailgun accepted email to=%s subject=%s", message.to, message.subject)
                return True
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                logger.info("Mailgun 401 on US endpoint, retrying EU endpoint")
                r = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=auth, data=data)
                if 200 <= r.status_code < 300:
                    logger.info("Mailgun (EU) accepted email to=%s", message.to)
                    return True
            logger.warning("Mailgun failed: status=%s to=%s body=%s", r.status_code, message.to, r.text[:500])
            return False
    except httpx.HTTPError as e:
        logger.warning("Mailgun request error: to=%s %s: %s", message.to, type(e).__name__, e)
        return False


def _send_email_sendgrid(settings: Settings, message: EmailMessage) -> bool:
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    mail = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=message.to,
        subject=message.subject,
        html_content=message.html,
        plain_text_content=message.text,
    )
    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(mail)
    except Exception:
        # python-http-client raises one class per status code
        logger.exception("SendGrid failed: to=%s", message.to)
        return False
    logger.info("SendGrid accepted email to=%s status=%s", message.to, response.status_code)
    return True


def verification_code_email(settings: Settings, to_email: str, code: str) -> EmailMessage:
    minutes = settings.verification_code_expire_minutes
    subject = f"[{settings.app_name}] Your verification code"
    text = f"Your verification code is: {code}. It expires in {minutes} minutes."
    html = f"""
    <p>Hello,</p>
    <p>Your verification code is: <strong style="font-size:1.2em;letter-spacing:0.2em;">{code}</strong></p>
    <p>This code expires in {minutes} minutes. If you did not request this, you can ignore this email.</p>
    <p>{settings.app_name}</p>
    """
    return EmailMessage(to=to_email, subject=subject, html=html, text=text)


def welcome_email(settings: Settings, to_email: str, name: str | None = None) -> EmailMessage:
    name = (name or "").strip() or "there"
    subject = f"[{settings.app_name}] Welcome, your account is ready"
    text = f"Hi {name}, welcome to {settings.app_name}. Your account is registered and you can now sign in."
    html = f"""
    <p>Hi {name},</p>
    <p>Welcome to <strong>{settings.app_name}</strong>. Your account is registered and you can now sign in.</p>
    <p>{settings.app_name}</p>
    """
    return EmailMessage(to=to_email, subject=subject, html=html, text=text)


def password_reset_email(settings: Settings, to_email: str, token: str) -> EmailMessage:
    link = reset_link(settings, token)
    minutes = settings.reset_token_expire_minutes
    subject = f"[{settings.app_name}] Reset your password"
    text = f"Reset your password using this link (valid for {minutes} minutes): {link}"
    html = f"""
    <p>Hello,</p>
    <p>We received a request to reset your password. <a href="{link}">Click here to choose a new one.</a></p>
    <p>The link is valid for {minutes} minutes. If you did not request this, you can ignore this email.</p>
    <p>{settings.app_name}</p>
    """
    return EmailMessage(to=to_email, subject=subject, html=html, text=text)


def reset_link(settings: Settings, token: str) -> str:
    return f"{settings.frontend_base_url.rstrip('/')}/auth/reset-password?token={token}"
