"""
Outbound mail over SMTP.

``smtplib`` is blocking, so every send is pushed to Starlette's threadpool.
The message body is plain text; there is no templating.
"""
import logging
import smtplib
import ssl
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from blog_api.config import settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code"


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        password: str = "",
        use_tls: bool = True,
        timeout: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls(context=ssl.create_default_context())
            if self.password:
                smtp.login(self.sender, self.password)
            smtp.send_message(message)

    def build_verification_message(self, recipient: str, code: str, ttl_minutes: int) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = VERIFICATION_SUBJECT
        message["From"] = self.sender
        message["To"] = recipient
        message.set_content(
            f"Your verification code is {code}.\n\n"
            f"It expires in {ttl_minutes} minutes. "
            "If you did not request it, you can ignore this message.\n"
        )
        return message

    async def send_verification_code(self, recipient: str, code: str) -> None:
        ttl_minutes = max(settings.VERIFICATION_CODE_TTL // 60, 1)
        message = self.build_verification_message(recipient, code, ttl_minutes)
        await run_in_threadpool(self._send, message)
        logger.info("Verification code sent to %s", recipient)


mailer = Mailer(
    host=settings.SMTP_HOST,
    port=settings.SMTP_PORT,
    sender=settings.SMTP_FROM,
    password=settings.SMTP_PASSWORD,
    use_tls=settings.SMTP_USE_TLS,
    timeout=settings.SMTP_TIMEOUT,
)
