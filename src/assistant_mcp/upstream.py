"""HTTP clients for the upstream services behind the tools.

- Resend transactional email API (``POST /emails``)
- Email search service (``GET /search``)
- Appointment service (``POST /book``)

Each function opens a short-lived ``httpx.AsyncClient`` and issues exactly
one request. Non-2xx responses raise ``UpstreamError``; Resend error objects
raise ``EmailProviderError``. Nothing here retries.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger("assistant-mcp")

RESEND_BASE_URL = "https://api.resend.com"


class UpstreamError(RuntimeError):
    """An upstream service answered with a non-2xx status."""

    def __init__(self, service: str, status_code: int):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} responded with status {status_code}")


class EmailProviderError(RuntimeError):
    """The email provider returned a structured error object."""

    def __init__(self, message: str, name: Optional[str] = None, status_code: Optional[int] = None):
        self.name = name
        self.status_code = status_code
        super().__init__(message)


class UpstreamClient:
    """Factory for the short-lived ``httpx.AsyncClient`` used per call.

    ``transport`` is passed straight to httpx, so tests can inject an
    ``httpx.MockTransport``.
    """

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)


def _raise_for_status(resp: httpx.Response, service: str) -> None:
    if not resp.is_success:
        logger.warning(f"{service} returned HTTP {resp.status_code}: {resp.text[:200]}")
        raise UpstreamError(service, resp.status_code)


# =============================================================================
# Email search service
# =============================================================================

async def search_archive(http: UpstreamClient, base_url: str, query: str) -> list[dict]:
    """Search the email archive.

    Returns:
        List of ``{"subject": ..., "from": ...}`` records.
    """
    async with http.client() as client:
        resp = await client.get(f"{base_url}/search", params={"q": query})
        _raise_for_status(resp, "Search service")
        results = resp.json()

    if not isinstance(results, list):
        raise ValueError(f"Search service returned {type(results).__name__}, expected a list")
    return results


# =============================================================================
# Appointment service
# =============================================================================

async def book_appointment(http: UpstreamClient, base_url: str, doctor_id: str, date: str, time: str) -> dict:
    """Book an appointment slot.

    Returns:
        Dict with ``appointment_id`` and ``status``.
    """
    payload = {"doctor_id": doctor_id, "date": date, "time": time}

    async with http.client() as client:
        resp = await client.post(f"{base_url}/book", json=payload)
        _raise_for_status(resp, "Appointment service")
        return resp.json()


# =============================================================================
# Resend email API
# =============================================================================

def _resend_error(resp: httpx.Response) -> EmailProviderError:
    """Turn a Resend error body into an EmailProviderError."""
    try:
        data: Any = resp.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error") if isinstance(data.get("error"), dict) else data
        message = error.get("message")
        if message:
            return EmailProviderError(message, name=error.get("name"), status_code=resp.status_code)

    return EmailProviderError(
        f"Email provider responded with status {resp.status_code}",
        status_code=resp.status_code,
    )


async def send_email(
    http: UpstreamClient,
    api_key: str,
    sender: str,
    to: str,
    subject: str,
    html: str,
    base_url: str = RESEND_BASE_URL,
) -> str:
    """Send an email through Resend.

    Returns:
        Provider-assigned message ID.

    Raises:
        EmailProviderError: Resend rejected the message.
    """
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = {"from": sender, "to": [to], "subject": subject, "html": html}

    async with http.client() as client:
        resp = await client.post(f"{base_url}/emails", headers=headers, json=payload)

    if not resp.is_success:
        raise _resend_error(resp)

    data = resp.json()
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        raise _resend_error(resp)
    return data.get("id")
