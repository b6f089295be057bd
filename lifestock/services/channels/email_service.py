import asyncio
import json
from typing import Any, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from lifestock.config.settings import settings
from lifestock.services.channels.base import ChannelResult
from lifestock.utils.logging import get_logger

logger = get_logger()


def _sendgrid_error_details(body: Any) -> Optional[str]:
    """Return a readable description of a SendGrid error payload."""
    if body in (None, ""):
        return None
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(body) if isinstance(body, str) else body
    except json.JSONDecodeError:
        return str(body).strip() or None

    if isinstance(parsed, dict) and isinstance(parsed.get("errors"), list):
        messages = [
            str(item["message"])
            for item in parsed["errors"]
            if isinstance(item, dict) and item.get("message")
        ]
        if messages:
            return "; ".join(messages)
    return str(parsed)


class EmailService:
    """Transactional email over SendGrid.

    ``send_email`` never raises: failures come back as a failed
    ``ChannelResult``, missing configuration or address as a skipped one.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        client: Optional[SendGridAPIClient] = None,
    ):
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.sender = sender or settings.SENDGRID_SENDER
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._client is not None or (self.api_key and self.sender))

    def _get_client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(self.api_key)
        return self._client

    def _send(self, to_address: str, subject: str, html_body: str) -> ChannelResult:
        message = Mail(
            from_email=self.sender,
            to_emails=to_address,
            subject=subject,
            html_content=html_body,
        )
        try:
            response = self._get_client().send(message)
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            details = _sendgrid_error_details(getattr(e, "body", None)) or str(e)
            if status_code:
                details = f"SendGrid status {status_code}: {details}"
            return ChannelResult.failed(details)

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            details = _sendgrid_error_details(getattr(response, "body", None))
            return ChannelResult.failed(
                f"SendGrid status {status_code}" + (f": {details}" if details else "")
            )
        return ChannelResult.ok()

    async def send_email(
        self, to_address: str, subject: str, html_body: str
    ) -> ChannelResult:
        if not self.configured:
            logger.info("SendGrid configuration incomplete; skipping email delivery")
            return ChannelResult.skip("Email channel not configured")
        if not to_address:
            return ChannelResult.skip("Missing recipient address")

        result = await asyncio.to_thread(self._send, to_address, subject, html_body)
        if result.success:
            logger.info(f"Email sent to {to_address}: {subject}")
        else:
            logger.error(f"Failed to send email to {to_address}: {result.error}")
        return result
