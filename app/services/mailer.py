"""
Outbound email for payslips.

SMTP credentials come from the settings store at send time, so an admin can
change them without a restart.
"""
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.exceptions import DeliveryFailure
from app.schemas.settings import SmtpSettings
from app.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    maintype: str = "application"
    subtype: str = "pdf"


@dataclass(frozen=True)
class OutgoingMail:
    to: str
    subject: str
    html: str
    attachments: List[Attachment]


class Mailer(Protocol):
    def send(self, mail: OutgoingMail) -> None:
        ...


def build_message(smtp: SmtpSettings, mail: OutgoingMail) -> EmailMessage:
    message = EmailMessage()
    message["From"] = f'"{smtp.sender_name}" <{smtp.from_address}>'
    message["To"] = mail.to
    message["Subject"] = mail.subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(mail.html, subtype="html")
    for attachment in mail.attachments:
        message.add_attachment(
            attachment.content,
            maintype=attachment.maintype,
            subtype=attachment.subtype,
            filename=attachment.filename,
        )
    return message


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=8),
    retry=retry_if_exception_type((smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, ConnectionError)),
    reraise=True,
)
def _deliver(smtp: SmtpSettings, message: EmailMessage) -> None:
    if smtp.secure:
        client = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=SMTP_TIMEOUT_SECONDS, context=ssl.create_default_context())
    else:
        client = smtplib.SMTP(smtp.host, smtp.port, timeout=SMTP_TIMEOUT_SECONDS)
    with client:
        # Plain connections upgrade only when the relay offers STARTTLS
        if not smtp.secure:
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls(context=ssl.create_default_context())
            else:
                logger.warning(f"{smtp.host}:{smtp.port} does not offer STARTTLS; sending in plain text")
        if smtp.username:
            client.login(smtp.username, smtp.password)
        client.send_message(message)


class SmtpMailer:
    def __init__(self, store: SettingsStore):
        self.store = store

    def send(self, mail: OutgoingMail) -> None:
        smtp = self.store.load().smtp
        message = build_message(smtp, mail)
        logger.info(f"Sending mail to {mail.to} via {smtp.host}:{smtp.port}")
        try:
            _deliver(smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Mail delivery to {mail.to} failed: {e}")
            raise DeliveryFailure() from e

