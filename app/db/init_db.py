# =============================================================================
# app/db/init_db.py
# =============================================================================
from typing import Optional
from sqlalchemy.engine import Engine
from app.db.base import Base
from app.db.session import engine as default_engine
from app.models.slack_thread import SlackThread  # noqa: F401

def init_db(engine: Optional[Engine] = None):
    """Initialize database tables"""
    engine = engine or default_engine
    if engine is not None:
        Base.metadata.create_all(bind=engine)
