# domain_agent/notifications/email.py
import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import SmtpConfig
from ..logging_config import get_logger
from .templates import EmailMessage

logger = get_logger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot receive a message"""


class EmailSender:
    """SMTP sender; the blocking smtplib session runs in a worker thread"""

    def __init__(self, config: SmtpConfig):
        self.config = config

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        mime = MIMEMultipart("alternative")
        mime["Subject"] = message.subject
        mime["From"] = self.config.sender
        mime["To"] = message.to
        mime.attach(MIMEText(message.text, "plain", "utf-8"))
        mime.attach(MIMEText(message.html, "html", "utf-8"))
        return mime

    def _send_blocking(self, message: EmailMessage):
        # ssl: implicit TLS (port 465); starttls: upgrade after connect; none: plain relay
        smtp_class = smtplib.SMTP_SSL if self.config.security == "ssl" else smtplib.SMTP
        with smtp_class(self.config.host, self.config.port, timeout=self.config.timeout_seconds) as smtp:
            if self.config.security == "starttls":
                smtp.starttls()
            if self.config.username:
                smtp.login(self.config.username, self.config.password)
            smtp.send_message(self._build(message))

    async def send(self, message: EmailMessage):
        try:
            await asyncio.to_thread(self._send_blocking, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email delivery failed",
                extra={"extra_data": {"to": message.to, "subject": message.subject, "error": str(e)}}
            )
            raise EmailDeliveryError(str(e)) from e

        logger.info(
            "Email sent",
            extra={"extra_data": {"to": message.to, "subject": message.subject}}
        )
