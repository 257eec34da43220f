# =============================================================================
# app/services/thread_store.py
# =============================================================================
from typing import Callable, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.exceptions import StoreError
from app.models.slack_thread import SlackThread
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

class ThreadStore:
    """Durable pull request URL -> thread ts mapping. Select by key, insert if absent."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_thread_ts(self, url: str) -> Optional[str]:
        """
        Raises:
            StoreError: the database could not be read
        """
        db = self.session_factory()
        try:
            thread = db.query(SlackThread).filter(SlackThread.url == url).first()
            return thread.ts if thread else None
        except SQLAlchemyError as e:
            raise StoreError(f"Error reading thread for {url}: {str(e)}") from e
        finally:
            db.close()

    def insert_if_absent(self, url: str, ts: str) -> bool:
        """
        Insert a mapping; False when a row for `url` already exists

        Raises:
            StoreError: the database could not be written
        """
        db = self.session_factory()
        try:
            db.add(SlackThread(url=url, ts=ts))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            logger.warning(f"Thread for {url} already stored, keeping existing row")
            return False
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Error storing thread for {url}: {str(e)}") from e
        finally:
            db.close()
