"""
Ecol Backend: Points Route Handlers
===================================

What:  GET /points, GET /points/{id}, POST /points.
Who:   Called by the web client's map (list/detail) and registration form (create).

POST /points accepts two encodings:
    application/json      {"name": ..., "items": [1, 2]}
    multipart/form-data   name=...&items=1,2 plus an optional `image` file
Both are validated by the same PointCreate schema.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from ecol.database import get_db_session
from ecol.exceptions import ValidationError
from ecol.schemas.common import ErrorResponse
from ecol.schemas.point import (
    PointCreate,
    PointDetailResponse,
    PointFilter,
    PointResponse,
    parse_item_ids,
)
from ecol.services.point_service import point_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Points"])

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

CREATE_POINT_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {"schema": PointCreate.model_json_schema()},
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["name", "email", "whatsapp", "latitude", "longitude", "city", "state", "items"],
                    "properties": {
                        "name": {"type": "string"},
                        "email": {"type": "string"},
                        "whatsapp": {"type": "string"},
                        "latitude": {"type": "number"},
                        "longitude": {"type": "number"},
                        "city": {"type": "string"},
                        "state": {"type": "string"},
                        "items": {"type": "string", "description": "Comma-separated item ids"},
                        "image": {"type": "string", "format": "binary"},
                    },
                }
            },
        },
    }
}


def validate_point_body(data: Any) -> PointCreate:
    """Validate a decoded body, reporting pydantic errors as a 400 ValidationError."""
    try:
        return PointCreate.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]) or "body", "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(message="Invalid point data", context={"errors": errors})


@router.get(
    "/points",
    response_model=List[PointResponse],
    responses={400: {"description": "Malformed items filter", "model": ErrorResponse}},
    summary="List collection points",
)
async def list_points(
    city: Optional[str] = Query(default=None, description="Exact city name"),
    state: Optional[str] = Query(default=None, description="Exact state name"),
    items: Optional[str] = Query(
        default=None,
        description="Comma-separated item ids; a point matches if it accepts any of them",
        examples=["1,2,6"],
    ),
    db: AsyncSession = Depends(get_db_session),
) -> List[PointResponse]:
    try:
        item_ids = parse_item_ids(items)
    except ValueError as e:
        raise ValidationError(message=str(e), field="items", context={"items": items})

    filters = PointFilter(city=city or None, state=state or None, item_ids=item_ids)
    return await point_service.list_points(db, filters)


@router.get(
    "/points/{point_id}",
    response_model=PointDetailResponse,
    responses={400: {"description": "Point not found", "model": ErrorResponse}},
    summary="Get a point and the items it accepts",
)
async def show_point(
    point_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> PointDetailResponse:
    return await point_service.get_point(db, point_id)


@router.post(
    "/points",
    status_code=201,
    response_model=PointResponse,
    responses={
        201: {"description": "Point registered", "model": PointResponse},
        400: {"description": "Invalid body, unknown items or bad image", "model": ErrorResponse},
    },
    summary="Register a collection point",
    openapi_extra=CREATE_POINT_BODY,
)
async def create_point(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> PointResponse:
    """
    Register a point and the items it accepts.

    The body is read from the raw request so one endpoint can serve both
    the JSON API and the browser form upload.
    """
    content_type = request.headers.get("content-type", "")
    image: Optional[UploadFile] = None

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data: Dict[str, Any] = {
            key: value for key, value in form.items() if not isinstance(value, UploadFile)
        }
        if "items" in form:
            data["items"] = [v for v in form.getlist("items") if isinstance(v, str)]
        upload = form.get("image")
        # Browsers send an empty part when no file was chosen
        if isinstance(upload, UploadFile) and upload.filename:
            image = upload
    else:
        try:
            data = await request.json()
        except ValueError:
            raise ValidationError(message="Request body must be valid JSON", field="body")

    if image is None:
        return await point_service.create_point(db, validate_point_body(data))

    try:
        payload = validate_point_body(data)
        content = await image.read()
        logger.info(
            "Received point image: filename=%s, size=%d bytes",
            image.filename,
            len(content),
        )
        return await point_service.create_point(
            db,
            payload,
            image_filename=image.filename,
            image_content=content,
            image_size=image.size,
        )
    finally:
        await image.close()
