"""
Email delivery of reviewed documents.

Messages are HTML rendered from ``app/templates/emails`` with the PDF (and
optionally Word) renderings attached. Without SMTP credentials the notifier
runs in development mode: the message is logged and reported as delivered.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

import jinja2

from app.config import Settings, settings
from app.metrics import DOCUMENT_DELIVERIES
from app.models.strategy import GeneratedDocument
from app.services.document_store import StoredFile

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "templates" / "emails"

template_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(searchpath=str(TEMPLATES_PATH)),
    autoescape=True,
)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    dev_mode: bool = False
    error: str | None = None


class SmtpTransport:
    def __init__(self, host: str, port: int, user: str, password: str, timeout: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def send(self, message: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.user, self.password)
            server.send_message(message)


class DeliveryNotifier:
    def __init__(
        self,
        transport: SmtpTransport | None,
        from_email: str,
        brand_name: str = "RESOLVE",
        environment: jinja2.Environment = template_env,
    ):
        self.transport = transport
        self.from_email = from_email
        self.brand_name = brand_name
        self.environment = environment

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DeliveryNotifier":
        transport = None
        if config.smtp_host and config.smtp_user and config.smtp_pass:
            transport = SmtpTransport(
                config.smtp_host,
                config.smtp_port,
                config.smtp_user,
                config.smtp_pass,
                timeout=config.smtp_timeout,
            )
        return cls(transport, config.email_from, brand_name=config.brand_name)

    @property
    def dev_mode(self) -> bool:
        return self.transport is None

    def build_message(
        self,
        document: GeneratedDocument,
        recipient: str,
        subject: str,
        body: str,
        attachments: list[StoredFile],
        download_url: str | None = None,
    ) -> MIMEMultipart:
        html = self.environment.get_template("document_delivery.html").render(
            brand_name=self.brand_name,
            title=document.title,
            paragraphs=[p for p in body.split("\n") if p.strip()],
            attachment_names=[a.file_name for a in attachments],
            download_url=download_url,
        )
        text = body
        if download_url:
            text = f"{body}\n\nDownload your document: {download_url}"

        message = MIMEMultipart("mixed")
        message["Subject"] = subject
        message["From"] = self.from_email
        message["To"] = recipient
        alternative = MIMEMultipart("alternative")
        alternative.attach(MIMEText(text, "plain"))
        alternative.attach(MIMEText(html, "html"))
        message.attach(alternative)
        for attachment in attachments:
            _, subtype = attachment.mime_type.split("/", 1)
            part = MIMEApplication(attachment.data, _subtype=subtype)
            part.add_header(
                "Content-Disposition", "attachment", filename=attachment.file_name
            )
            message.attach(part)
        return message

    def send(
        self,
        document: GeneratedDocument,
        recipient: str,
        subject: str,
        body: str,
        attachments: list[StoredFile],
        download_url: str | None = None,
    ) -> DeliveryResult:
        message = self.build_message(
            document, recipient, subject, body, attachments, download_url
        )
        if self.transport is None:
            logger.info("DEV MODE - Would send document %s to %s", document.id, recipient)
            logger.info("Subject: %s", subject)
            logger.debug(
                "Attachments: %s", ", ".join(a.file_name for a in attachments) or "none"
            )
            DOCUMENT_DELIVERIES.labels(outcome="dev").inc()
            return DeliveryResult(success=True, dev_mode=True)

        try:
            self.transport.send(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send document %s to %s: %s", document.id, recipient, e)
            DOCUMENT_DELIVERIES.labels(outcome="failure").inc()
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        logger.info("Sent document %s to %s", document.id, recipient)
        DOCUMENT_DELIVERIES.labels(outcome="success").inc()
        return DeliveryResult(success=True)
