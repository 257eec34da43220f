# =============================================================================
# app/services/message_renderer.py
# =============================================================================
from typing import Dict, List, Optional
from app.schemas.slack import SlackIdentity, SlackMessageContent
from app.schemas.webhook import (
    Opened,
    PullRequest,
    Review,
    Reviewed,
    ReviewRequested,
    User,
    Webhook,
)

class MessageRenderer:
    """
    Builds Slack content for a pull request event.

    Rendering is pure: the same event and mention always give the same
    content, and nothing here touches the network.
    """

    @staticmethod
    def render(webhook: Webhook, mention: Optional[SlackIdentity] = None) -> SlackMessageContent:
        action = webhook.action
        if isinstance(action, Opened):
            return MessageRenderer._render_pr_opened(webhook)
        if isinstance(action, Reviewed):
            return MessageRenderer._render_reviewed(webhook, action.review, mention)
        if isinstance(action, ReviewRequested):
            return MessageRenderer._render_review_requested(webhook, action.requested_reviewer, mention)
        return MessageRenderer._render_basic_action(webhook)

    @staticmethod
    def format_pull_request_link(pull_request: PullRequest) -> str:
        return f"<{pull_request.url}|{MessageRenderer._escape(pull_request.title)}>"

    @staticmethod
    def split_repository_name(full_name: str) -> List[str]:
        """owner/name -> [owner, name]; names without an owner stay whole"""
        return full_name.split("/", 1)

    @staticmethod
    def _section(text: str) -> Dict:
        return {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": text
            }
        }

    @staticmethod
    def _escape(text: str) -> str:
        # Control characters of Slack mrkdwn; keeps <!channel> and broken links out of user text
        return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    @staticmethod
    def _quote(text: str) -> str:
        return "\n".join(f">{MessageRenderer._escape(line)}" for line in text.splitlines())

    @staticmethod
    def _address(user: User, mention: Optional[SlackIdentity]) -> str:
        return mention.mention if mention else MessageRenderer._escape(user.username)

    @staticmethod
    def _render_basic_action(webhook: Webhook) -> SlackMessageContent:
        text = f"{MessageRenderer.format_pull_request_link(webhook.pull_request)} was {webhook.action.kind}"
        return SlackMessageContent(text=text, blocks=[MessageRenderer._section(text)])

    @staticmethod
    def _render_reviewed(
        webhook: Webhook,
        review: Review,
        mention: Optional[SlackIdentity]
    ) -> SlackMessageContent:
        addressee = MessageRenderer._address(webhook.pull_request.user, mention)
        text = f"{addressee}, {MessageRenderer._escape(webhook.sender.username)} has {review.verb} your PR"
        return SlackMessageContent(text=text, blocks=[MessageRenderer._section(text)])

    @staticmethod
    def _render_review_requested(
        webhook: Webhook,
        reviewer: User,
        mention: Optional[SlackIdentity]
    ) -> SlackMessageContent:
        addressee = MessageRenderer._address(reviewer, mention)
        text = (
            f"{addressee}, {MessageRenderer._escape(webhook.sender.username)} has requested you review "
            f"{MessageRenderer.format_pull_request_link(webhook.pull_request)}"
        )
        return SlackMessageContent(text=text, blocks=[MessageRenderer._section(text)])

    @staticmethod
    def _render_pr_opened(webhook: Webhook) -> SlackMessageContent:
        header = " | ".join(MessageRenderer.split_repository_name(webhook.repository_full_name))
        text = (
            f"Pull request {MessageRenderer.format_pull_request_link(webhook.pull_request)} "
            f"opened by {MessageRenderer._escape(webhook.sender.username)}"
        )

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": header
                }
            },
            MessageRenderer._section(text),
        ]

        # Slack rejects empty section text
        if webhook.pull_request.body.strip():
            blocks.append(MessageRenderer._section(MessageRenderer._quote(webhook.pull_request.body)))

        return SlackMessageContent(text=text, blocks=blocks)

