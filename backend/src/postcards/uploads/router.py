"""Upload API endpoint for postcard submissions

Provides POST /upload for the public submission form. The request is
multipart/form-data with the text fields of UploadForm, exactly one
"postcard" file part and up to MAX_IMAGES "images" file parts.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile

from ..dependencies import get_submission_service
from ..domain.entries.errors import ValidationFailure
from ..domain.entries.models import UploadedFile
from .schemas import ErrorResponse, UploadForm, UploadResponse, first_form_error
from .service import SubmissionService, record_form_rejection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Uploads"])

FORM_TEXT_FIELDS = ("fullName", "email", "faculty", "location", "term", "message", "agree")


def _text_fields(form: FormData) -> dict:
    values = {}
    for name in FORM_TEXT_FIELDS:
        value = form.get(name)
        if isinstance(value, str):
            values[name] = value
    return values


def _file_parts(form: FormData, name: str) -> List[UploadFile]:
    # Browsers send an empty, unnamed part when no file was picked
    return [
        part for part in form.getlist(name)
        if isinstance(part, UploadFile) and (part.filename or part.size)
    ]


async def _read_upload(part: UploadFile) -> UploadedFile:
    content = await part.read()
    return UploadedFile(
        original_name=part.filename or "",
        content=content,
        mime_type=(part.content_type or "").lower(),
    )


@router.post(
    "",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 415: {"model": ErrorResponse}},
)
async def upload_postcard(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
):
    """Accept one postcard submission.

    Validation order: text fields, postcard (type, size, content), images
    (count, type, size, content), total size. Nothing is stored unless
    every check passes.

    Returns:
        UploadResponse: The new reference and the stored file names

    Example:
        curl -X POST http://localhost:8000/api/upload \\
             -F fullName="Ada Lovelace" -F email=ada@example.org -F agree=true \\
             -F "postcard=@karte.pdf;type=application/pdf" \\
             -F "images=@foto.jpg;type=image/jpeg"
    """
    form = await request.form()
    try:
        try:
            upload_form = UploadForm.model_validate(_text_fields(form))
        except ValidationError as e:
            record_form_rejection()
            raise ValidationFailure(first_form_error(e))

        postcard_parts = _file_parts(form, "postcard")
        if len(postcard_parts) > 1:
            record_form_rejection()
            raise ValidationFailure("Exactly one PDF file is required.")

        postcard: Optional[UploadedFile] = None
        if postcard_parts:
            postcard = await _read_upload(postcard_parts[0])
        images = [await _read_upload(part) for part in _file_parts(form, "images")]

        entry = await service.submit(upload_form.to_entry_fields(), postcard, images)
    finally:
        await form.close()

    logger.info("Submission stored", extra={"ref": entry.ref})
    return UploadResponse(
        ok=True,
        ref=entry.ref,
        files=entry.files.model_dump(),
    )
