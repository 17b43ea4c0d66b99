"""
Shared FastAPI dependencies.

- Admin API key check for operational endpoints
- Access to the reminder service and scheduler created at startup
"""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from careflow.config import get_settings
from careflow.core.reminders import ReminderScheduler, ReminderService

logger = logging.getLogger(__name__)

# API Key header scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_admin_key(api_key: Optional[str] = Security(api_key_header)) -> None:
    """
    Validate the X-API-Key header against ADMIN_API_KEY.

    Raises:
        HTTPException 503: No admin key configured
        HTTPException 401: Missing or invalid key
    """
    expected = get_settings().admin_api_key
    if not expected:
        logger.warning("Admin endpoint called but ADMIN_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is not configured",
        )

    if not api_key or not secrets.compare_digest(api_key, expected):
        logger.warning("Rejected admin request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


def get_reminder_service(request: Request) -> ReminderService:
    """Reminder service created in the application lifespan."""
    service = getattr(request.app.state, "reminder_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminder service not initialized",
        )
    return service


def get_reminder_scheduler(request: Request) -> Optional[ReminderScheduler]:
    """Reminder scheduler created in the application lifespan (may be absent)."""
    return getattr(request.app.state, "reminder_scheduler", None)
