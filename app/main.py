# =============================================================================
# app/main.py
# =============================================================================
from fastapi import BackgroundTasks, Depends, FastAPI, Request, status
from contextlib import asynccontextmanager
from datetime import datetime
from app.core.config import settings
from app.core.dependencies import get_dispatcher
from app.api.v1.api import api_router
from app.api.v1.endpoints.gitea_webhook import accept_webhook
from app.db.init_db import init_db
from app.services.dispatcher import NotificationDispatcher, build_dispatcher
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage FastAPI application lifespan with proper startup/shutdown
    """
    # =============================================================================
    # STARTUP SEQUENCE
    # =============================================================================
    logger.info("🚀 Starting Gitea Slack notifier...")

    try:
        # 1. Initialize the thread store
        if settings.DATABASE_URL:
            logger.info("📦 Initializing thread store...")
            init_db()
            logger.info("✅ Thread store initialized successfully")
        else:
            logger.warning("⚠️ DATABASE_URL is empty, threads are kept in memory only")

        # 2. Wire the dispatcher
        app.state.dispatcher = build_dispatcher()

        # 3. Log application configuration
        logger.info("🔧 Application configuration:")
        logger.info(f"   Environment: {settings.ENVIRONMENT}")
        logger.info(f"   Project: {settings.PROJECT_NAME} v{settings.VERSION}")
        logger.info(f"   Gitea API: {settings.GITEA_API_URL}")
        logger.info(f"   Gitea token: {'✅ Configured' if settings.GITEA_API_TOKEN else '❌ Not configured'}")
        logger.info(f"   Slack token: {'✅ Configured' if settings.SLACK_BOT_TOKEN else '❌ Not configured'}")
        logger.info(f"   Slack channel: {settings.SLACK_CHANNEL}")
        logger.info(f"   Serialize root posts: {settings.SERIALIZE_ROOT_POSTS}")

        logger.info("🎉 Application startup completed successfully!")

    except Exception as e:
        logger.error(f"❌ Error during startup: {str(e)}")
        raise

    yield

    logger.info("👋 Gitea Slack notifier shut down")

def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application with all routes
    """
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    application.debug = settings.DEBUG

    application.include_router(api_router, prefix=settings.API_V1_STR)

    # Gitea is configured to deliver to the bare root URL
    @application.post("/", status_code=status.HTTP_200_OK)
    async def root_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    ):
        return await accept_webhook(request, background_tasks, dispatcher)

    @application.get("/health")
    async def health_check():
        """Liveness check with configuration flags"""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.utcnow().isoformat(),
            "configuration": {
                "gitea_token": bool(settings.GITEA_API_TOKEN),
                "slack_token": bool(settings.SLACK_BOT_TOKEN),
                "durable_store": bool(settings.DATABASE_URL),
                "debug_mode": settings.DEBUG,
            },
        }

    if settings.DEBUG:
        @application.get("/debug/config")
        async def debug_configuration():
            """Debug endpoint to check configuration (only in development)"""
            return {
                "environment": settings.ENVIRONMENT,
                "gitea_api_url": settings.GITEA_API_URL,
                "slack_channel": settings.SLACK_CHANNEL,
                "database_url": settings.DATABASE_URL[:30] + "..." if len(settings.DATABASE_URL) > 30 else settings.DATABASE_URL,
                "log_dir": settings.LOG_DIR,
                "api_prefix": settings.API_V1_STR,
            }

    logger.info("📋 Registered routes:")
    logger.info("   📨 POST / - Gitea pull request webhook")
    logger.info(f"   📨 POST {settings.API_V1_STR}/webhook/gitea - Gitea pull request webhook")
    logger.info("   ❤️ GET /health - Health check")

    return application

# Create the application instance
app = create_application()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
