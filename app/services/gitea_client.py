# =============================================================================
# app/services/gitea_client.py
# =============================================================================
from typing import Optional
from urllib.parse import quote
import httpx
from pydantic import ValidationError
from app.core.config import settings
from app.core.exceptions import ResolutionError
from app.schemas.webhook import User
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

class GiteaClient:
    """Gitea user directory, used to replace anonymised emails with real ones"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.GITEA_API_URL).rstrip("/")
        self.token = token if token is not None else settings.GITEA_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    async def lookup_email(self, username: str) -> User:
        """
        Fetch the directory record for a username

        Raises:
            ResolutionError: missing token, unknown user, HTTP or transport failure
        """
        if not self.token:
            raise ResolutionError(username, "GITEA_API_TOKEN is not configured")

        url = f"{self.base_url}/users/{quote(username, safe='')}"
        headers = {"Authorization": f"token {self.token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise ResolutionError(username, "Gitea API timeout") from e
        except httpx.HTTPError as e:
            raise ResolutionError(username, f"Request failed: {str(e)}") from e

        if response.status_code == 404:
            raise ResolutionError(username, "user not found")
        if response.status_code != 200:
            raise ResolutionError(username, f"Gitea API returned HTTP {response.status_code}")

        try:
            user = User.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ResolutionError(username, f"Malformed directory response: {str(e)}") from e

        logger.debug(f"Resolved Gitea user {username} -> {user.email}")
        return user
