"""
SMTP mail for the contact workflow: owner notification, auto-reply to the
sender, and an admin's reply to a stored message.
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Optional

from fastapi import Request

import config
from config import logger


class MailError(Exception):
    pass


def _paragraphs(text: str) -> str:
    return escape(text).replace("\n", "<br>")


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender_name: str = "Portfolio",
        notify_address: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender_name = sender_name
        self.notify_address = notify_address or username
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> "Mailer":
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            sender_name=config.MAIL_FROM_NAME,
            notify_address=config.CONTACT_NOTIFY_EMAIL,
        )

    def send(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = formataddr((self.sender_name, self.username or ""))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"Failed to send mail to {to}: {exc}") from exc
        logger.info("Mail sent to %s: %s", to, subject)

    # Contact workflow messages

    def notify_new_contact(self, contact: dict) -> None:
        html = (
            "<h3>New Contact Form Submission</h3>"
            f"<p><strong>Name:</strong> {escape(contact['name'])}</p>"
            f"<p><strong>Email:</strong> {escape(contact['email'])}</p>"
            f"<p><strong>Subject:</strong> {escape(contact['subject'])}</p>"
            "<p><strong>Message:</strong></p>"
            f"<p>{_paragraphs(contact['message'])}</p>"
        )
        self.send(self.notify_address, f"Portfolio Contact: {contact['subject']}", html)

    def send_auto_reply(self, contact: dict) -> None:
        html = (
            f"<h3>Hello {escape(contact['name'])},</h3>"
            "<p>Thank you for reaching out! I have received your message and will get back to you as soon as possible.</p>"
            f"<p>Best regards,<br>{escape(self.sender_name)}</p>"
        )
        self.send(contact["email"], "Thank you for contacting me!", html)

    def send_reply(self, contact: dict, subject: str, reply: str) -> None:
        received = contact.get("created_at")
        received = received.strftime("%Y-%m-%d") if received else ""
        html = (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f"<h3>Hello {escape(contact['name'])},</h3>"
            "<p>Thank you for your message. Here's my response:</p>"
            '<div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">'
            f"{_paragraphs(reply)}</div>"
            '<hr style="margin: 30px 0; border: none; border-top: 1px solid #ddd;">'
            "<h4>Your Original Message:</h4>"
            f"<p><strong>Subject:</strong> {escape(contact['subject'])}</p>"
            f"<p><strong>Date:</strong> {received}</p>"
            '<div style="background-color: #f9f9f9; padding: 15px; border-radius: 5px;">'
            f"{_paragraphs(contact['message'])}</div>"
            f"<br><p>Best regards,<br><strong>{escape(self.sender_name)}</strong></p>"
            "</div>"
        )
        self.send(contact["email"], subject, html)


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
