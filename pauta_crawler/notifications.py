"""
Email notification of a finished run.

Sends one plain-text summary with the spreadsheet attached over SMTP.
"""

import logging
import re
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import NotificationConfigError
from .models import BatchRun
from .utils import with_retry

logger = logging.getLogger(__name__)

XLSX_SUBTYPE = 'vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def parse_recipients(value: Any) -> List[str]:
    """Split a ';' or ',' separated address list (or pass a list through)."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = re.split(r'[;,]', str(value))
    return [item.strip() for item in items if item and item.strip()]


@dataclass
class SmtpConfig:
    host: Optional[str]
    port: int
    sender: Optional[str]
    username: Optional[str]
    password: Optional[str]
    use_tls: bool = True
    use_ssl: bool = False
    recipients: List[str] = field(default_factory=list)
    subject_prefix: str = "Pauta"

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SmtpConfig":
        username = config.get('username')
        return cls(
            host=config.get('host'),
            port=int(config.get('port', 587)),
            sender=config.get('sender') or username,
            username=username,
            password=config.get('password'),
            use_tls=bool(config.get('use_tls', True)),
            use_ssl=bool(config.get('use_ssl', False)),
            recipients=parse_recipients(config.get('recipients')),
            subject_prefix=config.get('subject_prefix', 'Pauta'),
        )

    def validate(self) -> None:
        missing = [
            name for name, value in (
                ('host', self.host),
                ('username', self.username),
                ('password', self.password),
                ('sender', self.sender),
                ('recipients', self.recipients),
            ) if not value
        ]
        if missing:
            raise NotificationConfigError(
                f"Incomplete SMTP configuration: missing {', '.join(missing)}",
                {'missing': missing}
            )


def build_summary_text(batch: BatchRun) -> str:
    summary = batch.summary()
    lines = [
        "Hello,",
        "",
        "Attached is the spreadsheet with the extracted hearing agenda.",
        "",
        f"Total rows: {summary['records']}",
        f"Generated at: {summary['generated_at']}",
        f"Units: {summary['units']} | Dates: {summary['dates']}",
        f"Cells extracted: {summary['cells_extracted']} | Cells skipped: {summary['cells_skipped']}",
    ]
    if summary['failed']:
        lines += ["", f"The run ended early and the data is partial: {batch.fatal_error}"]
    return "\n".join(lines)


class EmailNotifier:
    """
    SMTP notifier for run summaries.
    """

    def __init__(self, config: SmtpConfig):
        self.config = config

    def build_message(self, batch: BatchRun, attachment: Path) -> EmailMessage:
        message = EmailMessage()
        stamp = batch.generated_at.strftime('%d/%m/%Y %H:%M')
        message["Subject"] = f"{self.config.subject_prefix} - {stamp}"
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message.set_content(build_summary_text(batch))
        message.add_attachment(
            attachment.read_bytes(),
            maintype="application",
            subtype=XLSX_SUBTYPE,
            filename=attachment.name,
        )
        return message

    def send_summary(self, batch: BatchRun, attachment: Path) -> None:
        """
        Send the run summary.

        Raises:
            NotificationConfigError: If SMTP settings are incomplete
            smtplib.SMTPException / OSError: If delivery keeps failing
        """
        self.config.validate()
        message = self.build_message(batch, attachment)
        self._deliver(message)
        logger.info(f"Summary email sent to {', '.join(self.config.recipients)}")

    @with_retry(max_attempts=2, initial_delay=5.0, exceptions=(smtplib.SMTPException, OSError))
    def _deliver(self, message: EmailMessage) -> None:
        config = self.config
        if config.use_ssl:
            client = smtplib.SMTP_SSL(config.host, config.port, timeout=30)
        else:
            client = smtplib.SMTP(config.host, config.port, timeout=30)
        with client:
            if config.use_tls and not config.use_ssl:
                client.starttls()
            if config.username and config.password:
                client.login(config.username, config.password)
            client.send_message(message, to_addrs=config.recipients)
