"""Outbound mail for activation and password reset secrets."""

import logging
import smtplib
from email.message import EmailMessage

from app.config import get_settings
from app.exceptions import EmailDispatchFailure

logger = logging.getLogger("account_service")


class EmailDispatcher:
    """Base mail collaborator. Subclasses implement ``send``."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        """Deliver one message. Raises EmailDispatchFailure on rejection or transport error."""
        raise NotImplementedError

    def send_activation(self, email: str, token: str) -> None:
        self.send(
            email,
            "Account Activation",
            f"<div><b>Please click below link to activate your account</b></div>"
            f"<div><a href='http://localhost:8080/#/login?token={token}'>Activate</a></div>"
            f"<div>Token is {token}</div>",
        )

    def send_password_reset(self, email: str, token: str) -> None:
        self.send(
            email,
            "Password Reset",
            f"<div><b>Please click below link to reset your password</b></div>"
            f"<div><a href='http://localhost:8080/#/password-reset?reset={token}'>Reset</a></div>"
            f"<div>Reset token is {token}</div>",
        )


class SmtpEmailDispatcher(EmailDispatcher):
    """Sends mail over SMTP with a bounded socket timeout."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content(body, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Mail to %s failed (%s): %s", to_address, subject, e)
            raise EmailDispatchFailure() from e

        logger.info("Mail sent to %s: %s", to_address, subject)


_email_dispatcher: EmailDispatcher | None = None


def get_email_dispatcher() -> EmailDispatcher:
    """Get singleton mail dispatcher. Overridden in tests."""
    global _email_dispatcher
    if _email_dispatcher is None:
        settings = get_settings()
        _email_dispatcher = SmtpEmailDispatcher(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.MAIL_FROM,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
    return _email_dispatcher
