# =============================================================================
# app/services/slack_client.py
# =============================================================================
from typing import Any, Dict, Optional
import httpx
from app.core.config import settings
from app.core.exceptions import ChatIdentityMiss, PostError
from app.schemas.slack import SlackIdentity, SlackMessageContent, SlackPostResult
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

class SlackClient:
    """Thin wrapper over the Slack Web API methods this service needs"""

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.SLACK_BOT_TOKEN
        self.api_base = (api_base or settings.SLACK_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json; charset=utf-8",
        }

    async def _call(self, method: str, http_method: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_base}/{method}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(http_method, url, headers=self._headers(), **kwargs)
        response.raise_for_status()
        response_data = response.json()
        if not isinstance(response_data, dict):
            raise ValueError(f"Slack {method} returned {type(response_data).__name__}, expected an object")
        return response_data

    async def lookup_user_by_email(self, email: str) -> SlackIdentity:
        """
        Find the Slack account registered with an email

        Raises:
            ChatIdentityMiss: no such user, or Slack could not be asked
        """
        if not self.token:
            raise ChatIdentityMiss("SLACK_BOT_TOKEN is not configured")

        try:
            response_data = await self._call("users.lookupByEmail", "GET", params={"email": email})
        except (httpx.HTTPError, ValueError) as e:
            raise ChatIdentityMiss(f"Slack lookup for {email} failed: {str(e)}") from e

        if not response_data.get("ok"):
            raise ChatIdentityMiss(
                f"No Slack user for {email}: {response_data.get('error', 'Unknown error')}"
            )

        user = response_data.get("user")
        if not isinstance(user, dict) or not isinstance(user.get("id"), str) or not user["id"]:
            raise ChatIdentityMiss(f"Slack returned no user id for {email}")

        name = user.get("name")
        return SlackIdentity(id=user["id"], name=name if isinstance(name, str) else None)

    async def post_message(
        self,
        channel: str,
        content: SlackMessageContent,
        thread_ts: Optional[str] = None,
    ) -> SlackPostResult:
        """
        Post a message, as a reply when `thread_ts` is given

        Returns the posted message; its `ts` identifies the thread for root posts.

        Raises:
            PostError: Slack rejected the message or could not be reached
        """
        if not self.token:
            raise PostError("SLACK_BOT_TOKEN is not configured")

        payload: Dict[str, Any] = {
            "channel": channel,
            "text": content.text,
            "unfurl_links": False,
            "unfurl_media": False,
        }
        if content.blocks:
            payload["blocks"] = content.blocks
        if thread_ts:
            payload["thread_ts"] = thread_ts

        try:
            response_data = await self._call("chat.postMessage", "POST", json=payload)
        except httpx.TimeoutException as e:
            raise PostError("Slack API timeout") from e
        except (httpx.HTTPError, ValueError) as e:
            raise PostError(f"Request failed: {str(e)}") from e

        if not response_data.get("ok"):
            raise PostError(f"Slack API error: {response_data.get('error', 'Unknown Slack API error')}")

        ts = response_data.get("ts")
        if not isinstance(ts, str) or not ts:
            raise PostError("Slack API response did not include a message ts")

        return SlackPostResult(
            channel=response_data["channel"] if isinstance(response_data.get("channel"), str) else channel,
            ts=ts,
            thread_ts=thread_ts,
        )
