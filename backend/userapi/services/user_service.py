"""
User Directory API: User Service (CRUD Logic)
================================================

What:  The five user operations: create, get one, edit, delete, list all.
How:   Each method is a straight line: interpret the identifier → one store
       call under the operation budget → shape the result. Request bodies
       arrive already validated as `UserRequest` by FastAPI.
Who:   Called by the route handlers in routes/users.py.

Error Translation:
    - Malformed identifier token     → InvalidIdentifierError (500)
    - Budget expired                 → StoreTimeoutError (500)
    - Any other store exception      → StoreError carrying its text (500)
    - Lookup miss on get_user        → StoreError (500)
    - Zero rows on edit_user/delete  → NotFoundError (404)

Design Decision:
    UserService holds no per-request state. It receives the session for
    each call and only keeps the operation timeout, so one instance is
    built by the app factory and shared by all requests.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, TypeVar

from fastapi import Request
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from userapi.database import run_with_timeout
from userapi.exceptions import (
    InvalidIdentifierError,
    NotFoundError,
    StoreError,
    UserAPIError,
)
from userapi.models.user import EDITABLE_FIELDS, User
from userapi.schemas.user import UserRecord, UserRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

DELETED_MESSAGE = "User successfully deleted!"


def parse_user_id(token: str) -> uuid.UUID:
    """
    Interpret a path token as a store identifier.

    Raises:
        InvalidIdentifierError: the token is not a UUID
    """
    try:
        return uuid.UUID(token)
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifierError(token)


class UserService:
    """
    Business logic layer for user operations.

    Responsibilities:
        - create_user(): insert with server-stamped created_at
        - get_user(): single record by identifier
        - edit_user(): replace business fields, return the re-read record
        - delete_user(): remove by identifier
        - list_users(): every record, fully materialised
    """

    def __init__(self, operation_timeout: float = 10.0):
        self.operation_timeout = operation_timeout

    async def _run(self, awaitable: Awaitable[T], operation: str, **context: Any) -> T:
        """
        Await one store call under the operation budget.

        Application errors pass through; anything else the driver raises
        becomes a StoreError whose message is the driver's error text.
        """
        try:
            return await run_with_timeout(awaitable, operation, self.operation_timeout)
        except UserAPIError:
            raise
        except Exception as e:
            logger.error("Store error during %s: %s", operation, str(e), exc_info=True)
            context["error_type"] = type(e).__name__
            raise StoreError(message=str(e), context={"operation": operation, **context})

    @staticmethod
    async def _execute_and_commit(db: AsyncSession, statement: Any) -> Any:
        result = await db.execute(statement)
        await db.commit()
        return result

    @staticmethod
    async def _flush_and_commit(db: AsyncSession) -> None:
        await db.flush()
        await db.commit()

    async def create_user(self, db: AsyncSession, payload: UserRequest) -> str:
        """
        Insert a new user and return its store-assigned identifier.

        created_at is stamped here, once; no other operation writes it.

        Raises:
            StoreError: insert failed or timed out
        """
        user = User(
            **payload.model_dump(include=set(EDITABLE_FIELDS)),
            created_at=datetime.now(timezone.utc),
        )
        db.add(user)
        await self._run(self._flush_and_commit(db), "insert_one")

        logger.info("User created: %s", user.id)
        return str(user.id)

    async def get_user(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        """
        Retrieve a single user by identifier.

        Returns:
            JSON-ready record with `createdAt`

        Raises:
            InvalidIdentifierError: token is not an identifier (→ 500)
            StoreError: lookup failed or matched nothing (→ 500)
        """
        uid = parse_user_id(user_id)
        result = await self._run(
            db.execute(select(User).where(User.id == uid)),
            "find_one",
            user_id=user_id,
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise StoreError(
                message=f"no user found with ID '{user_id}'",
                context={"operation": "find_one", "user_id": user_id},
            )
        return UserRecord.model_validate(user).to_json()

    async def edit_user(
        self, db: AsyncSession, user_id: str, payload: UserRequest
    ) -> Dict[str, Any]:
        """
        Replace the four business fields of a user and return the result.

        How:
            UPDATE users SET name, dob, address, description WHERE id = :id
            then SELECT the row back. created_at is never in the SET list.

        Raises:
            InvalidIdentifierError: token is not an identifier (→ 500)
            NotFoundError: the identifier matched no record (→ 404)
            StoreError: update or re-read failed (→ 500)
        """
        uid = parse_user_id(user_id)
        values = payload.model_dump(include=set(EDITABLE_FIELDS))

        result = await self._run(
            self._execute_and_commit(
                db,
                update(User)
                .where(User.id == uid)
                .values(**values)
                .execution_options(synchronize_session=False),
            ),
            "update_one",
            user_id=user_id,
        )
        if result.rowcount < 1:
            raise NotFoundError(resource_id=user_id)

        reread = await self._run(
            db.execute(
                select(User)
                .where(User.id == uid)
                .execution_options(populate_existing=True)
            ),
            "find_one",
            user_id=user_id,
        )
        user = reread.scalar_one_or_none()
        if user is None:
            # Deleted between the update and the re-read
            raise NotFoundError(resource_id=user_id)

        logger.info("User updated: %s", user_id)
        return UserRecord.model_validate(user).to_json()

    async def delete_user(self, db: AsyncSession, user_id: str) -> str:
        """
        Remove a user by identifier.

        Returns:
            Confirmation text

        Raises:
            InvalidIdentifierError: token is not an identifier (→ 500)
            NotFoundError: nothing was deleted (→ 404)
            StoreError: delete failed (→ 500)
        """
        uid = parse_user_id(user_id)
        result = await self._run(
            self._execute_and_commit(
                db,
                delete(User)
                .where(User.id == uid)
                .execution_options(synchronize_session=False),
            ),
            "delete_one",
            user_id=user_id,
        )
        if result.rowcount < 1:
            raise NotFoundError(resource_id=user_id)

        logger.info("User deleted: %s", user_id)
        return DELETED_MESSAGE

    async def list_users(self, db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Return every user, oldest first.

        The whole result set is loaded before returning; there is no
        pagination or streaming.
        """
        result = await self._run(
            db.execute(select(User).order_by(User.created_at, User.id)),
            "find_all",
        )
        users = result.scalars().all()
        return [UserRecord.model_validate(user).to_json() for user in users]


# ── Dependency ────────────────────────────────────────────────────────────
def get_user_service(request: Request) -> UserService:
    """FastAPI dependency returning the UserService built by the app factory."""
    return request.app.state.user_service
