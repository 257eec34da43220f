# =============================================================================
# app/services/dispatcher.py
# =============================================================================
"""
Relays one webhook delivery into Slack.

Each event walks the states below in order and stops at the first failure:

    RECEIVED -> DECODED -> IDENTITIES_RESOLVED -> THREAD_LOOKUP -> RENDERED
             -> POSTED -> CACHE_RECORDED | CACHE_SKIPPED

The first event seen for a pull request becomes the root of its Slack
thread; every later event is posted as a reply to it. Failed posts are
not retried and leave the thread cache untouched.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional
from app.core.config import settings
from app.core.exceptions import DecodeError, PostError, ResolutionError, UnknownAction
from app.schemas.slack import SlackMessageContent
from app.schemas.webhook import decode_webhook
from app.services.gitea_client import GiteaClient
from app.services.identity_service import IdentityResolver
from app.services.message_renderer import MessageRenderer
from app.services.slack_client import SlackClient
from app.services.thread_cache import ThreadCache
from app.services.thread_store import ThreadStore
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

class DispatchState(str, Enum):
    RECEIVED = "received"
    DECODED = "decoded"
    IDENTITIES_RESOLVED = "identities_resolved"
    THREAD_LOOKUP = "thread_lookup"
    RENDERED = "rendered"
    POSTED = "posted"
    CACHE_RECORDED = "cache_recorded"
    CACHE_SKIPPED = "cache_skipped"

@dataclass(frozen=True)
class DispatchResult:
    """
    Where an event ended up. `failed_at` names the state that could not be
    reached when the event was dropped.
    """
    state: DispatchState
    failed_at: Optional[DispatchState] = None
    pull_request_url: Optional[str] = None
    thread_ts: Optional[str] = None
    message_ts: Optional[str] = None
    error: Optional[str] = None

    @property
    def dropped(self) -> bool:
        return self.failed_at is not None

class KeyedLock:
    """One asyncio.Lock per key, discarded once nobody holds or waits on it"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

class NotificationDispatcher:

    def __init__(
        self,
        resolver: IdentityResolver,
        cache: ThreadCache,
        slack: SlackClient,
        channel: str,
        serialize_root_posts: bool = True,
    ):
        self.resolver = resolver
        self.cache = cache
        self.slack = slack
        self.channel = channel
        self.serialize_root_posts = serialize_root_posts
        self._root_locks = KeyedLock()

    async def dispatch(self, payload: Any) -> DispatchResult:
        """Process one inbound payload; failures are logged and returned, never raised"""
        logger.debug(f"Received payload: {payload}")

        try:
            webhook = decode_webhook(payload)
        except UnknownAction as e:
            logger.error(f"Dropping webhook with unsupported action: {str(e)}")
            return DispatchResult(state=DispatchState.RECEIVED, failed_at=DispatchState.DECODED, error=str(e))
        except DecodeError as e:
            logger.error(f"Error decoding JSON payload into Webhook \"{str(e)}\"")
            return DispatchResult(state=DispatchState.RECEIVED, failed_at=DispatchState.DECODED, error=str(e))

        url = webhook.pull_request.url
        logger.info(f"Decoded '{webhook.action.kind}' event for {url} from {webhook.sender.username}")

        try:
            identities = await self.resolver.resolve(webhook)
        except ResolutionError as e:
            logger.error(f"Dropping '{webhook.action.kind}' event for {url}: {str(e)}")
            return DispatchResult(
                state=DispatchState.DECODED,
                failed_at=DispatchState.IDENTITIES_RESOLVED,
                pull_request_url=url,
                error=str(e),
            )

        thread_ts = self.cache.lookup(url)
        content = MessageRenderer.render(identities.webhook, identities.mention)

        if thread_ts is not None or not self.serialize_root_posts:
            return await self._post(url, content, thread_ts)

        # Only one root post per pull request at a time; a waiter replies to the winner's thread
        async with self._root_locks.hold(url):
            thread_ts = self.cache.lookup(url)
            return await self._post(url, content, thread_ts)

    async def _post(
        self,
        url: str,
        content: SlackMessageContent,
        thread_ts: Optional[str],
    ) -> DispatchResult:
        try:
            posted = await self.slack.post_message(self.channel, content, thread_ts)
        except PostError as e:
            logger.error(
                f"Slack notification for {url} was NOT delivered and will not be retried: {str(e)}"
            )
            return DispatchResult(
                state=DispatchState.RENDERED,
                failed_at=DispatchState.POSTED,
                pull_request_url=url,
                thread_ts=thread_ts,
                error=str(e),
            )

        if thread_ts is not None:
            logger.info(f"Posted reply {posted.ts} in thread {thread_ts} for {url}")
            return DispatchResult(
                state=DispatchState.CACHE_SKIPPED,
                pull_request_url=url,
                thread_ts=thread_ts,
                message_ts=posted.ts,
            )

        if self.cache.record_if_absent(url, posted.ts):
            logger.info(f"Top level Slack Thread created for {url}: {posted.ts}")
            return DispatchResult(
                state=DispatchState.CACHE_RECORDED,
                pull_request_url=url,
                thread_ts=posted.ts,
                message_ts=posted.ts,
            )

        logger.warning(
            f"Another event already created the thread for {url}; root post {posted.ts} is a duplicate thread"
        )
        return DispatchResult(
            state=DispatchState.CACHE_SKIPPED,
            pull_request_url=url,
            thread_ts=self.cache.lookup(url),
            message_ts=posted.ts,
        )

def build_dispatcher(session_factory=None) -> NotificationDispatcher:
    """Wire the dispatcher and its collaborators from settings"""
    store = None
    if session_factory is not None:
        store = ThreadStore(session_factory)
    elif settings.DATABASE_URL:
        from app.db.session import SessionLocal
        store = ThreadStore(SessionLocal)

    slack = SlackClient()
    return NotificationDispatcher(
        resolver=IdentityResolver(directory=GiteaClient(), slack=slack),
        cache=ThreadCache(store=store),
        slack=slack,
        channel=settings.SLACK_CHANNEL,
        serialize_root_posts=settings.SERIALIZE_ROOT_POSTS,
    )
