"""Input models and MCP tool definitions.

The JSON schema advertised in ``tools/list`` is generated from the pydantic
models, so the schema a client sees and the validation the registry applies
cannot drift apart.
"""

from datetime import datetime

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

# local@domain.tld, no whitespace
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_DATETIME = TypeAdapter(datetime)


class SearchEmailsInput(BaseModel):
    query: str = Field(min_length=1, description="The text to search for in the email archive.")


class CreateAppointmentInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_time: str = Field(
        alias="dateTime",
        description="The appointment start time (ISO-8601, e.g. 2024-01-01T10:00:00Z).",
        json_schema_extra={"format": "date-time"},
    )
    attendee_email: str = Field(
        alias="attendeeEmail",
        pattern=EMAIL_PATTERN,
        description="The email of the person to invite.",
        json_schema_extra={"format": "email"},
    )
    duration_in_minutes: int = Field(
        alias="durationInMinutes",
        gt=0,
        strict=True,
        description="The duration in minutes.",
    )

    @field_validator("date_time")
    @classmethod
    def _check_iso_datetime(cls, value: str) -> str:
        if "T" not in value:
            raise ValueError("dateTime must be an ISO-8601 datetime with a 'T' separator")
        try:
            _DATETIME.validate_python(value)
        except ValidationError:
            raise ValueError(f"dateTime is not a valid ISO-8601 datetime: {value!r}") from None
        return value

    def split(self) -> tuple[str, str]:
        """Split ``date_time`` into (date, time) on the first 'T'."""
        date, _, time = self.date_time.partition("T")
        return date, time


class SendEmailInput(BaseModel):
    to: str = Field(
        pattern=EMAIL_PATTERN,
        description="The recipient's email address.",
        json_schema_extra={"format": "email"},
    )
    subject: str = Field(min_length=1, description="The subject line of the email.")
    body: str = Field(min_length=1, description="The content of the email (HTML allowed).")


def tool_definition(name: str, title: str, description: str, model: type[BaseModel]) -> Tool:
    """Build an MCP ``Tool`` whose input schema is generated from ``model``."""
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    return Tool(name=name, title=title, description=description, inputSchema=schema)


SEARCH_EMAILS = tool_definition(
    "search_emails",
    "Search Email Archive",
    "Searches the static email archive for a query.",
    SearchEmailsInput,
)

CREATE_APPOINTMENT = tool_definition(
    "create_appointment",
    "Create Appointment",
    "Books a new appointment with the doctor.",
    CreateAppointmentInput,
)

SEND_EMAIL = tool_definition(
    "send_email",
    "Send Email",
    "Sends an email to a recipient.",
    SendEmailInput,
)
