# =============================================================================
# app/services/identity_service.py
# =============================================================================
from dataclasses import dataclass
from typing import Dict, List, Optional
from app.core.exceptions import ChatIdentityMiss
from app.schemas.slack import SlackIdentity
from app.schemas.webhook import Reviewed, ReviewRequested, User, Webhook
from app.services.gitea_client import GiteaClient
from app.services.slack_client import SlackClient
from app.core.logger import get_module_logger

logger = get_module_logger(__name__)

@dataclass(frozen=True)
class ResolvedIdentities:
    """
    Outcome of identity resolution for one event

    `webhook` carries directory emails for every actor. `mention` is the
    Slack account of the addressed user, or None when there is nobody to
    address or no Slack match (plain usernames are rendered instead).
    """
    webhook: Webhook
    mention: Optional[SlackIdentity] = None

class IdentityResolver:
    """Deanonymises actor emails and finds Slack accounts to mention"""

    def __init__(self, directory: GiteaClient, slack: SlackClient):
        self.directory = directory
        self.slack = slack

    async def resolve_actor(self, actor: User) -> User:
        """
        Replace an actor's email with the directory's authoritative one

        Raises:
            ResolutionError: the directory lookup failed
        """
        record = await self.directory.lookup_email(actor.username)
        return actor.model_copy(update={"email": record.email})

    async def deanonymise(self, webhook: Webhook) -> Webhook:
        """Resolve every actor on the event; one directory call per distinct username"""
        emails: Dict[str, str] = {}
        for actor in self._actors(webhook):
            if actor.username in emails:
                continue
            resolved = await self.resolve_actor(actor)
            emails[actor.username] = resolved.email
        return webhook.replace_emails(emails)

    async def find_chat_identity(self, webhook: Webhook) -> Optional[SlackIdentity]:
        """Slack account of the user addressed by a review event, if any"""
        addressee = self.addressee(webhook)
        if addressee is None:
            return None

        try:
            identity = await self.slack.lookup_user_by_email(addressee.email)
        except ChatIdentityMiss as e:
            logger.info(f"No Slack mention for {addressee.username}, using plain username: {str(e)}")
            return None

        logger.info(f"Resolved Slack user {identity.id} for {addressee.username}")
        return identity

    async def resolve(self, webhook: Webhook) -> ResolvedIdentities:
        """
        Deanonymise the event, then look up the Slack account to mention

        Raises:
            ResolutionError: a directory lookup failed; the event must be dropped
        """
        webhook = await self.deanonymise(webhook)
        mention = await self.find_chat_identity(webhook)
        return ResolvedIdentities(webhook=webhook, mention=mention)

    @staticmethod
    def addressee(webhook: Webhook) -> Optional[User]:
        action = webhook.action
        if isinstance(action, ReviewRequested):
            return action.requested_reviewer
        if isinstance(action, Reviewed):
            return webhook.pull_request.user
        return None

    @staticmethod
    def _actors(webhook: Webhook) -> List[User]:
        actors = [webhook.sender, webhook.pull_request.user]
        if isinstance(webhook.action, ReviewRequested):
            actors.append(webhook.action.requested_reviewer)
        return actors
