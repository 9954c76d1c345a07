import logging
import smtplib
from email.message import EmailMessage

from ..config import Settings
from ..utils.error_handlers import NotificationError

logger = logging.getLogger(__name__)


class SmtpMailer:
    """
    Sends plain-text mail over SMTP (Gmail App Password recommended).

    Settings: SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM, SMTP_TLS
    """

    def __init__(self, *, host: str, port: int, user: str, password: str, mail_from: str, use_tls: bool = True):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.mail_from = mail_from or user
        self.use_tls = use_tls

    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.mail_from
        msg["To"] = to_address
        msg.set_content(body)

        try:
            logger.debug("Connecting to %s:%s (TLS=%s)", self.host, self.port, self.use_tls)
            with smtplib.SMTP(self.host, self.port, timeout=15) as smtp:
                smtp.ehlo()
                if self.use_tls:
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s: %s", to_address, type(e).__name__, e)
            raise NotificationError(f"Failed to send email: {type(e).__name__}") from e
        logger.info("Email sent successfully to %s", to_address)


class DisabledMailer:
    """Used when SMTP is not configured; logs instead of sending."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.info("SMTP not configured; skipping email to %s (%s)", to_address, subject)


def build_mailer(settings: Settings):
    if not settings.mail_enabled:
        return DisabledMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_pass,
        mail_from=settings.smtp_from,
        use_tls=settings.smtp_tls,
    )


def application_received_email(
    *,
    candidate_name: str | None,
    job_title: str | None,
    company_name: str | None,
) -> tuple[str, str]:
    cand = (candidate_name or "Candidate").strip()
    jt = (job_title or "the role").strip()
    company = (company_name or "the hiring team").strip()

    lines: list[str] = []
    lines.append(f"Hi {cand},")
    lines.append("")
    lines.append(f"Thanks for applying to {jt} at {company}. We have received your application.")
    lines.append("")
    lines.append("The hiring team will review it and get back to you about next steps.")
    lines.append("")
    lines.append("Best regards,")
    lines.append(company)

    return f"Application received: {jt}", "\n".join(lines)
