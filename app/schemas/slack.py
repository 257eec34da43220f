# =============================================================================
# app/schemas/slack.py
# =============================================================================
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

class SlackIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"

class SlackMessageContent(BaseModel):
    """Rendered notification: fallback text plus Block Kit blocks"""
    model_config = ConfigDict(frozen=True)

    text: str
    blocks: List[Dict[str, Any]] = []

class SlackPostResult(BaseModel):
    channel: str
    ts: str
    thread_ts: Optional[str] = None
