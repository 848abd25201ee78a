"""Email tools: send an email through Resend, search the email archive."""

import logging

from mcp.types import TextContent

from . import ToolRegistry
from .helpers import error_message, text_response
from .schemas import SEARCH_EMAILS, SEND_EMAIL, SearchEmailsInput, SendEmailInput
from .. import upstream
from ..config import Settings
from ..upstream import UpstreamClient

logger = logging.getLogger("assistant-mcp")

NO_RESULTS = "No emails found matching that query."


def format_search_results(results: list[dict]) -> str:
    """Render search hits as a short bulleted list."""
    if not results:
        return NO_RESULTS
    lines = [f"- {r.get('subject')} (from: {r.get('from')})" for r in results]
    return f"Search found {len(results)} results:\n" + "\n".join(lines)


def register(registry: ToolRegistry, settings: Settings, http: UpstreamClient) -> None:

    async def search_emails(params: SearchEmailsInput) -> list[TextContent]:
        logger.info(f"Tool 'search_emails' called with query: {params.query}")

        if not settings.search_api_url:
            return text_response("Error: The EMAIL_SEARCH_API_URL is not configured.")

        try:
            results = await upstream.search_archive(http, settings.search_api_url, params.query)
            return text_response(format_search_results(results))
        except Exception as e:
            logger.exception(f"search_emails failed: {e}")
            return text_response(f"Error searching emails: {error_message(e)}")

    async def send_email(params: SendEmailInput) -> list[TextContent]:
        logger.info(f"Tool 'send_email' called to: {params.to}")

        if not settings.resend_api_key:
            return text_response("Error: RESEND_API_KEY is not configured.")

        try:
            message_id = await upstream.send_email(
                http,
                api_key=settings.resend_api_key,
                sender=settings.email_from,
                to=params.to,
                subject=params.subject,
                html=params.body,
            )
            return text_response(f"Email sent successfully. ID: {message_id}")
        except Exception as e:
            logger.exception(f"send_email failed: {e}")
            return text_response(f"Error sending email: {error_message(e)}")

    registry.register_once(SEARCH_EMAILS, search_emails, SearchEmailsInput)
    registry.register_once(SEND_EMAIL, send_email, SendEmailInput)
