# =============================================================================
# app/api/v1/api.py
# =============================================================================
from fastapi import APIRouter
from app.api.v1.endpoints import gitea_webhook

api_router = APIRouter()

api_router.include_router(gitea_webhook.router, prefix="/webhook", tags=["Gitea Webhook"])
