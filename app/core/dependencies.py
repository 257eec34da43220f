# =============================================================================
# app/core/dependencies.py
# =============================================================================
from fastapi import HTTPException, Request, status
from app.services.dispatcher import NotificationDispatcher
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Process-wide dispatcher created during application startup"""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        logger.error("Dispatcher requested before application startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notifier is not ready"
        )
    return dispatcher
