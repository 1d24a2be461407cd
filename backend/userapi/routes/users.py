"""
User Directory API: User Route Handlers
==========================================

What:  The five user routes.
How:   Each handler receives a session and the shared UserService through
       dependencies, makes one service call and wraps the result in the
       response envelope. Errors are raised as exceptions and rendered by
       the global handlers in main.py.

Route Table:
    GET    /users          → list_users   (200)
    GET    /user/{user_id} → get_user     (200)
    POST   /user           → create_user  (201)
    PUT    /user/{user_id} → edit_user    (200)
    DELETE /user/{user_id} → delete_user  (200)

`user_id` is taken as a plain string so that malformed identifiers reach
the service and are reported as store errors, not as FastAPI 422s.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from userapi.database import get_db_session
from userapi.schemas.user import Envelope, UserRequest, envelope
from userapi.services.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])

_ERRORS = {
    500: {"description": "Store error", "model": Envelope},
}


@router.get(
    "/users",
    response_model=Envelope,
    responses=_ERRORS,
    summary="List every user",
)
async def list_users(
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    users = await service.list_users(db)
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(200, users))


@router.get(
    "/user/{user_id}",
    response_model=Envelope,
    responses=_ERRORS,
    summary="Get a single user by ID",
    description="Unknown or malformed IDs are reported as store errors (500).",
)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    user = await service.get_user(db, user_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(200, user))


@router.post(
    "/user",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Missing or empty field", "model": Envelope}, **_ERRORS},
    summary="Create a user",
)
async def create_user(
    body: UserRequest,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    """Stamps createdAt, inserts, and returns the generated ID."""
    user_id = await service.create_user(db, body)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=envelope(201, {"InsertedID": user_id}),
    )


@router.put(
    "/user/{user_id}",
    response_model=Envelope,
    responses={
        400: {"description": "Missing or empty field", "model": Envelope},
        404: {"description": "No user with this ID", "model": Envelope},
        **_ERRORS,
    },
    summary="Replace a user's fields",
)
async def edit_user(
    user_id: str,
    body: UserRequest,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    """All four fields are required; createdAt is left as it was."""
    user = await service.edit_user(db, user_id, body)
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(200, user))


@router.delete(
    "/user/{user_id}",
    response_model=Envelope,
    responses={404: {"description": "No user with this ID", "model": Envelope}, **_ERRORS},
    summary="Delete a user",
)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    confirmation = await service.delete_user(db, user_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(200, confirmation))
