"""Email delivery of rendered reports over SMTP."""

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr

from schedule_sentinel.config import MonitorConfig
from schedule_sentinel.errors import DeliveryError
from schedule_sentinel.logging import get_logger

log = get_logger(__name__)


class EmailSink:
    """Sends HTML reports to a fixed set of recipients.

    deliver() never raises: a failed delivery is logged and reported as False
    so it cannot affect polling.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        *,
        receivers: list[str],
        cc: list[str] | None = None,
        sender_name: str = "Schedule Sentinel",
        use_ssl: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.receivers = list(receivers)
        self.cc = list(cc or [])
        self.sender_name = sender_name
        self.use_ssl = use_ssl
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "EmailSink":
        return cls(
            config.smtp_host,
            config.smtp_port,
            config.smtp_user,
            config.smtp_pass,
            receivers=config.report_receivers,
            cc=config.report_cc,
            sender_name=config.report_sender_name,
            use_ssl=config.smtp_ssl,
        )

    def build_message(self, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.sender_name, self.user))
        message["To"] = ", ".join(self.receivers)
        if self.cc:
            message["Cc"] = ", ".join(self.cc)
        message["Subject"] = subject
        message.set_content("This report is only available as HTML.")
        message.add_alternative(html, subtype="html")
        return message

    def _send(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.use_ssl:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context) as smtp:
                smtp.login(self.user, self.password)
                smtp.send_message(message)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls(context=context)
                smtp.login(self.user, self.password)
                smtp.send_message(message)

    def deliver(self, subject: str, html: str) -> bool:
        """Send one HTML document.

        Returns:
            True if the SMTP server accepted the message.
        """
        if not self.host or not self.user or not self.receivers:
            log.error(
                "email_not_configured",
                host=self.host,
                user=self.user,
                receivers=self.receivers,
            )
            return False

        message = self.build_message(subject, html)
        log.debug("email_sending", subject=subject, to=self.receivers, cc=self.cc)

        try:
            self._send(message)
        except smtplib.SMTPAuthenticationError as e:
            err = DeliveryError(f"SMTP authentication failed for {self.user}: {e}")
            log.error("email_failed", reason="auth", error=str(err))
            return False
        except (smtplib.SMTPException, OSError) as e:
            err = DeliveryError(f"failed to send email to {self.receivers}: {e}")
            log.error("email_failed", reason="smtp", error=str(err))
            return False

        log.info("email_sent", subject=subject, to=self.receivers)
        return True

    def send_test_email(self) -> bool:
        """Send a short message to check the SMTP settings."""
        log.info("test_email_started", to=self.receivers)
        result = self.deliver("Schedule Sentinel test", "<strong>test</strong>")
        log.info("test_email_finished", result=result)
        return result
