# =============================================================================
# app/models/slack_thread.py
# =============================================================================
from sqlalchemy import Column, String
from app.db.base import BaseModel

class SlackThread(BaseModel):
    """Root Slack message of a pull request's conversation; written once, never updated"""
    __tablename__ = "threads"

    url = Column(String, primary_key=True)
    ts = Column(String, nullable=False)

    def __repr__(self):
        return f"<SlackThread {self.url} -> {self.ts}>"
