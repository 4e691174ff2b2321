import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from docflow.logging.logger import Log
from docflow.notification.base import BaseNotifier
from docflow.notification.exceptions import NotificationError


class SmtpNotifier(BaseNotifier):
    """Sends HTML e-mail through an SMTP relay.

    Disabled (logs and returns) when no credentials are configured.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        sender_name: str,
        use_tls: bool = True,
        timeout_seconds: int = 30,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender_name = sender_name
        self._use_tls = use_tls
        self._timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self._host and self._username and self._password)

    def notify(self, address: str, subject: str, body: str) -> None:
        if not self.enabled:
            Log.info("Email notifications disabled: SMTP host or credentials not set")
            return
        try:
            self._send(address, subject, body)
        except NotificationError as exc:
            Log.error(f"Failed to send email to {address}: {exc}")
            return
        Log.info(f"Notification email sent to {address}")

    def _send(self, address: str, subject: str, body: str) -> None:
        try:
            message = self._build(address, subject, body)
        except ValueError as exc:
            raise NotificationError(f"Invalid message: {exc}") from exc
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds) as smtp:
                if self._use_tls:
                    smtp.starttls()
                smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(str(exc)) from exc

    def _build(self, address: str, subject: str, body: str) -> EmailMessage:
        """Raises ValueError for header values containing line breaks."""
        message = EmailMessage()
        message["From"] = formataddr((self._sender_name, self._username))
        message["To"] = address
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body, subtype="html")
        return message
