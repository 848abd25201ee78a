"""Appointment tools: book a slot with the appointment service."""

import logging

from mcp.types import TextContent

from . import ToolRegistry
from .helpers import error_message, text_response
from .schemas import CREATE_APPOINTMENT, CreateAppointmentInput
from .. import upstream
from ..config import Settings
from ..upstream import UpstreamClient

logger = logging.getLogger("assistant-mcp")


def register(registry: ToolRegistry, settings: Settings, http: UpstreamClient) -> None:

    async def create_appointment(params: CreateAppointmentInput) -> list[TextContent]:
        logger.info(
            f"Tool 'create_appointment' called for {params.attendee_email} at {params.date_time} "
            f"({params.duration_in_minutes} min)"
        )

        if not settings.appointment_service_url:
            return text_response("Error: The APPOINTMENT_SERVICE_URL is not configured.")

        # The booking API takes only doctor/date/time; attendee and duration stay local.
        date, time = params.split()

        try:
            booking = await upstream.book_appointment(
                http,
                settings.appointment_service_url,
                doctor_id=settings.doctor_id,
                date=date,
                time=time,
            )
            return text_response(
                f"Success! Appointment {booking.get('appointment_id')} is {booking.get('status')}."
            )
        except Exception as e:
            logger.exception(f"create_appointment failed: {e}")
            return text_response(f"An unexpected error occurred: {error_message(e)}")

    registry.register_once(CREATE_APPOINTMENT, create_appointment, CreateAppointmentInput)
