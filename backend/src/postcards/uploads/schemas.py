"""Upload API request/response schemas"""

from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from ..domain.entries.models import DEFAULT_ROLE, EntryFields


Faculty = Literal[
    "Informatik/Mathematik",
    "Wirtschaftswissenschaften",
    "Maschinenbau/Verfahrenstechnik",
    "Elektrotechnik",
    "Design",
    "Andere",
]

FACULTIES = get_args(Faculty)


class UploadForm(BaseModel):
    """Text fields of the multipart submission form"""
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field("", alias="fullName", max_length=200, validate_default=True)
    email: EmailStr
    faculty: Optional[Faculty] = None
    location: Optional[str] = Field(None, max_length=200)
    term: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = Field(None, max_length=1000)
    agree: Literal["true"]

    @field_validator("full_name", mode="before")
    @classmethod
    def require_full_name(cls, value: Optional[str]) -> str:
        if value is None:
            value = ""
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("Full name is required.")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("faculty", "location", "term", "message", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def to_entry_fields(self) -> EntryFields:
        return EntryFields(
            full_name=self.full_name,
            email=str(self.email).lower(),
            faculty=self.faculty,
            role=DEFAULT_ROLE,
            location=self.location,
            term=self.term,
            message=self.message,
        )


FORM_ERROR_MESSAGES = {
    "email": "Please provide a valid email address.",
    "faculty": "Invalid faculty.",
    "agree": "Consent is required.",
}


def first_form_error(exc: ValidationError) -> str:
    """Human-readable message for the first failed form field"""
    issue = exc.errors()[0]
    field = str(issue["loc"][0]) if issue.get("loc") else ""
    if field in FORM_ERROR_MESSAGES:
        return FORM_ERROR_MESSAGES[field]

    message = issue.get("msg", "Invalid input.")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    return f"{field}: {message}" if field else message


class UploadResponse(BaseModel):
    """Response for a stored submission"""
    ok: bool = True
    ref: str = Field(..., description="Reference of the new entry")
    files: dict = Field(..., description="Stored file names (postcard, images)")


class ErrorResponse(BaseModel):
    """Error body shared by all endpoints"""
    ok: bool = False
    message: str
    details: Optional[List[dict]] = None
