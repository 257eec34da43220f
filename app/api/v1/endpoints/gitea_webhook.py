# =============================================================================
# app/api/v1/endpoints/gitea_webhook.py
# =============================================================================
from typing import Any
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from app.core.config import settings
from app.core.dependencies import get_dispatcher
from app.services.dispatcher import NotificationDispatcher
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

router = APIRouter()

async def process_webhook_background(dispatcher: NotificationDispatcher, payload: Any):
    """Run dispatch after the response; nothing here may reach the webhook caller"""
    try:
        result = await dispatcher.dispatch(payload)
        if result.dropped:
            logger.warning(f"Webhook dropped at '{result.failed_at.value}': {result.error}")
        else:
            logger.info(f"Webhook processed: {result.state.value} ({result.pull_request_url})")
    except Exception as e:
        logger.error(f"💥 Unexpected error processing Gitea webhook: {str(e)}", exc_info=True)

async def accept_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher,
) -> dict:
    try:
        payload = await request.json()
    except ValueError as e:
        logger.error(f"Error decoding webhook body as JSON: {str(e)}")
        return {"status": "accepted"}

    background_tasks.add_task(process_webhook_background, dispatcher, payload)
    return {"status": "accepted"}

@router.post("/gitea", status_code=status.HTTP_200_OK)
async def receive_gitea_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Accept a Gitea pull request webhook.
    Always answers 200; decoding, delivery and failures are handled in the background.
    """
    return await accept_webhook(request, background_tasks, dispatcher)

@router.get("/health", status_code=status.HTTP_200_OK)
async def webhook_health_check(dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """Health check endpoint for webhook service"""
    return {
        "status": "healthy",
        "service": "gitea_webhook",
        "channel": dispatcher.channel,
        "known_threads": len(dispatcher.cache),
        "configuration": {
            "gitea_token": bool(settings.GITEA_API_TOKEN),
            "slack_token": bool(settings.SLACK_BOT_TOKEN),
            "durable_store": dispatcher.cache.store is not None,
            "serialize_root_posts": dispatcher.serialize_root_posts,
        },
    }
