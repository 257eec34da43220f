"""Unit tests for decoding Gitea pull request webhooks."""

import pytest
from pydantic import ValidationError

from app.core.exceptions import DecodeError, UnknownAction
from app.schemas.webhook import (
    ApprovedReview,
    Closed,
    CommentReview,
    Merged,
    Opened,
    PullRequestState,
    RejectedReview,
    Reviewed,
    ReviewRequested,
    decode_webhook,
)
from conftest import make_payload, make_user


class TestDecodeActions:
    """Tests for selecting the action variant from the discriminator."""

    def test_decode_opened(self, opened_payload):
        """Test a plain opened event."""
        webhook = decode_webhook(opened_payload)

        assert isinstance(webhook.action, Opened)
        assert webhook.pull_request.url == "repo/pr/1"
        assert webhook.pull_request.state == PullRequestState.OPEN
        assert webhook.pull_request.author.username == "alice"
        assert webhook.sender.username == "bob"
        assert webhook.repository_full_name == "acme/widgets"

    @pytest.mark.parametrize("action,variant", [("closed", Closed), ("merged", Merged)])
    def test_decode_payloadless_actions(self, action, variant):
        """Test actions that carry no payload of their own."""
        webhook = decode_webhook(make_payload(action))
        assert isinstance(webhook.action, variant)
        assert webhook.action.kind == action

    @pytest.mark.parametrize("review_type,variant,verb", [
        ("pull_request_review_approved", ApprovedReview, "approved"),
        ("pull_request_review_rejected", RejectedReview, "rejected"),
        ("pull_request_review_comment", CommentReview, "commented on"),
    ])
    def test_decode_reviewed(self, review_type, variant, verb):
        """Test the review variant is chosen by its type tag."""
        payload = make_payload("reviewed", review={"type": review_type, "content": "notes"})

        webhook = decode_webhook(payload)

        assert isinstance(webhook.action, Reviewed)
        assert isinstance(webhook.action.review, variant)
        assert webhook.action.review.content == "notes"
        assert webhook.action.review.verb == verb

    def test_decode_review_requested(self, review_requested_payload):
        """Test the requested reviewer is carried by the action."""
        webhook = decode_webhook(review_requested_payload)

        assert isinstance(webhook.action, ReviewRequested)
        assert webhook.action.requested_reviewer.username == "carol"

    def test_unknown_top_level_fields_ignored(self):
        """Test that extra fields do not break decoding."""
        webhook = decode_webhook(make_payload(commit_id="abc123", installation={"id": 5}))
        assert isinstance(webhook.action, Opened)

    def test_payload_fields_of_other_actions_ignored(self):
        """Test that an opened event with a stray review is still just opened."""
        payload = make_payload("opened", review={"type": "pull_request_review_approved", "content": ""})
        webhook = decode_webhook(payload)
        assert webhook.action == Opened(kind="opened")


class TestDecodeFailures:
    """Tests for malformed payloads."""

    def test_missing_pull_request_url(self):
        """Test that a missing url fails instead of defaulting."""
        payload = make_payload()
        del payload["pull_request"]["url"]

        with pytest.raises(DecodeError) as exc_info:
            decode_webhook(payload)

        assert not isinstance(exc_info.value, UnknownAction)
        assert exc_info.value.field == "pull_request.url"

    def test_unsupported_action(self):
        """Test that an unknown discriminator is rejected."""
        with pytest.raises(UnknownAction) as exc_info:
            decode_webhook(make_payload("unsupported_kind"))

        assert exc_info.value.action == "unsupported_kind"
        assert exc_info.value.field == "action"

    def test_missing_action(self):
        """Test that a payload without a discriminator fails."""
        payload = make_payload()
        del payload["action"]

        with pytest.raises(DecodeError) as exc_info:
            decode_webhook(payload)
        assert exc_info.value.field == "action"

    def test_reviewed_without_review(self):
        """Test that a variant missing its payload fails."""
        with pytest.raises(DecodeError) as exc_info:
            decode_webhook(make_payload("reviewed"))
        assert exc_info.value.field == "review"

    def test_unknown_review_type(self):
        """Test that an unknown review tag fails."""
        payload = make_payload("reviewed", review={"type": "pull_request_review_shrug", "content": ""})
        with pytest.raises(DecodeError):
            decode_webhook(payload)

    def test_mistyped_field(self):
        """Test that a wrongly typed field is named."""
        payload = make_payload()
        payload["pull_request"]["comments"] = -1

        with pytest.raises(DecodeError) as exc_info:
            decode_webhook(payload)
        assert exc_info.value.field == "pull_request.comments"

    def test_unknown_state(self):
        """Test that only open and closed states are accepted."""
        payload = make_payload()
        payload["pull_request"]["state"] = "draft"
        with pytest.raises(DecodeError):
            decode_webhook(payload)

    def test_not_an_object(self):
        """Test that non-object JSON is rejected."""
        with pytest.raises(DecodeError):
            decode_webhook(["opened"])


class TestWebhookImmutability:
    """Tests for the immutable event model."""

    def test_assignment_rejected(self, opened_payload):
        """Test that decoded events cannot be mutated."""
        webhook = decode_webhook(opened_payload)
        with pytest.raises(ValidationError):
            webhook.sender = webhook.pull_request.user

    def test_replace_emails_returns_copy(self, review_requested_payload):
        """Test that email replacement leaves the original untouched."""
        webhook = decode_webhook(review_requested_payload)

        resolved = webhook.replace_emails({
            "alice": "alice@example.com",
            "bob": "bob@example.com",
            "carol": "carol@example.com",
        })

        assert resolved.pull_request.user.email == "alice@example.com"
        assert resolved.sender.email == "bob@example.com"
        assert resolved.action.requested_reviewer.email == "carol@example.com"
        assert webhook.sender.email == make_user("bob")["email"]
        assert resolved.pull_request.title == webhook.pull_request.title
