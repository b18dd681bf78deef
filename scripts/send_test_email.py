"""
Send a test email through the configured provider (Mailgun, else SendGrid).
Usage: python scripts/send_test_email.py <to_email>
"""
import logging
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from rollcall.config import get_settings
from rollcall.services.notifications import EmailMessage, send_email


def main():
    to_email = (sys.argv[1] if len(sys.argv) > 1 else "").strip()
    if not to_email:
        print("Usage: python scripts/send_test_email.py <to_email>")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    if settings.mailgun_api_key and settings.mailgun_domain:
        print(f"Provider: Mailgun (domain={settings.mailgun_domain}, base={settings.mailgun_base_url})")
    elif settings.sendgrid_api_key:
        print(f"Provider: SendGrid (from={settings.sendgrid_from_email})")
    else:
        print("No email provider configured. Set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY) in .env")
        sys.exit(1)

    message = EmailMessage(
        to=to_email,
        subject=f"[{settings.app_name}] Test email",
        html=f"<p>This is a <strong>test email</strong> from {settings.app_name}.</p>",
        text=f"This is a test email from {settings.app_name}.",
    )
    print(f"Sending test email to: {to_email}")
    if send_email(settings, message):
        print("Success: test email accepted. Check the inbox (and spam) for", to_email)
    else:
        print("Failed: the provider rejected the message (details in the log above).")
        print("  - For EU Mailgun accounts set MAILGUN_BASE_URL=https://api.eu.mailgun.net in .env")
        sys.exit(1)


if __name__ == "__main__":
    main()
