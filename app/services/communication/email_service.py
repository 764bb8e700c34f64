import asyncio
import logging
import smtplib
from pathlib import Path
from typing import List, Optional, Tuple
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.application import MIMEApplication
from jinja2 import Environment, FileSystemLoader, select_autoescape
from app.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates"

# (filename, content, subtype) e.g. ("PO-20260101-0001.html", b"...", "html")
Attachment = Tuple[str, bytes, str]

def get_template_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
    )

class EmailService:
    """Email service for sending notifications"""

    def __init__(self):
        self.smtp_server = settings.MAIL_SERVER
        self.smtp_port = settings.MAIL_PORT
        self.username = settings.MAIL_USERNAME
        self.password = settings.MAIL_PASSWORD
        self.from_email = settings.MAIL_FROM
        self.from_name = settings.MAIL_FROM_NAME
        self.use_tls = settings.MAIL_TLS
        self.use_ssl = settings.MAIL_SSL
        self.timeout = settings.MAIL_TIMEOUT

        # Setup Jinja2 for email templates
        self.template_env = get_template_environment()

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_server and self.from_email)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None
    ) -> bool:
        """Send email"""
        if not self.is_configured:
            logger.error(f"Cannot send email to {to_email}: SMTP is not configured")
            return False

        try:
            msg = MIMEMultipart('mixed')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
            msg['To'] = to_email

            body = MIMEMultipart('alternative')
            if text_content:
                body.attach(MIMEText(text_content, 'plain'))
            body.attach(MIMEText(html_content, 'html'))
            msg.attach(body)

            for filename, content, subtype in attachments or []:
                part = MIMEApplication(content, _subtype=subtype)
                part.add_header('Content-Disposition', 'attachment', filename=filename)
                msg.attach(part)

            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

    def _deliver(self, msg: MIMEMultipart) -> None:
        smtp_class = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        with smtp_class(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
            if self.use_tls and not self.use_ssl:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)

    def render_template(self, template_name: str, **context) -> str:
        template = self.template_env.get_template(template_name)
        return template.render(**context)
