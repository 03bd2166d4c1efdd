# services/forms.py
"""
Form parsing and validation shared by the admin back-office and the
public contact form.

Validation failures are collected per field and raised as a single
``FormValidationError`` carrying every non-file value that was submitted.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from services.exceptions import FormValidationError
from services.storage import file_extension

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

Errors = Dict[str, List[str]]
Files = Dict[str, List[UploadFile]]

IMAGE_TYPES = ("jpeg", "png", "jpg", "gif")
VIDEO_TYPES = ("mp4", "mov", "avi", "wmv", "flv")
MATERIAL_TYPES = ("pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "txt", "zip", "rar")

THUMBNAIL_MAX_KB = 2048
VIDEO_MAX_KB = 512000
MATERIAL_MAX_KB = 51200


async def read_form(request: Request) -> Tuple[Dict[str, Any], Files]:
    """Split a request body into plain values and uploaded files.

    JSON bodies are accepted as well; they never carry files. Keys ending
    in ``[]`` (``materials[]``, ``tags[]``) are collected into lists;
    any other repeated key keeps its last value. File inputs always map
    to a list.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        return (body if isinstance(body, dict) else {}), {}

    form = await request.form()
    values: Dict[str, Any] = {}
    files: Files = {}
    for key, value in form.multi_items():
        is_list = key.endswith("[]")
        name = key[:-2] if is_list else key
        if isinstance(value, UploadFile):
            # browsers submit an empty part for untouched file inputs
            if value.filename:
                files.setdefault(name, []).append(value)
        elif is_list:
            values.setdefault(name, []).append(value)
        else:
            values[name] = value
    return values, files


def _label(field: str) -> str:
    return field.replace("_", " ")


def _message(field: str, err: Dict[str, Any], raw: Any) -> str:
    kind = err.get("type")
    if kind == "missing" or raw == "" or (kind == "string_too_short" and err.get("ctx", {}).get("min_length") == 1):
        return f"The {_label(field)} field is required."
    return f"The {_label(field)} field is invalid: {err['msg']}."


def validate_form(model: Type[M], values: Dict[str, Any], errors: Optional[Errors] = None) -> M:
    """Validate ``values`` against ``model``, merging in ``errors`` found elsewhere (files, uniqueness)."""
    errors = {k: list(v) for k, v in (errors or {}).items()}

    # blank optional inputs fall back to the model default
    optional = {name for name, field in model.model_fields.items() if not field.is_required()}
    data = {k: v for k, v in values.items() if not (k in optional and (v == "" or v is None))}

    form = None
    try:
        form = model(**data)
    except ValidationError as e:
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else "form"
            errors.setdefault(field, []).append(_message(field, err, data.get(field)))

    if errors:
        raise FormValidationError(errors, old_input=values)
    return form


def upload_size(upload: UploadFile) -> int:
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def check_upload(field: str, upload: UploadFile, *, extensions: Tuple[str, ...], max_kb: int, image: bool = False) -> Optional[str]:
    """Return an error message for ``upload`` or None when it is acceptable."""
    label = _label(field)
    if image and not (upload.content_type or "").startswith("image/"):
        return f"The {label} must be an image."
    if file_extension(upload.filename or "") not in extensions:
        return f"The {label} must be a file of type: {', '.join(extensions)}."
    if upload_size(upload) > max_kb * 1024:
        return f"The {label} may not be greater than {max_kb} kilobytes."
    return None


def check_uploads(files: Files, rules: Dict[str, Dict[str, Any]]) -> Errors:
    errors: Errors = {}
    for field, rule in rules.items():
        for upload in files.get(field, []):
            message = check_upload(field, upload, **rule)
            if message:
                logger.info(f"Rejected upload {upload.filename!r} for {field}: {message}")
                errors.setdefault(field, []).append(message)
    return errors
