# =============================================================================
# app/schemas/webhook.py
# =============================================================================
"""
Typed model of a Gitea pull request webhook.

The payload carries its action as a flat `action` string next to the
action-specific fields (`review`, `requested_reviewer`). Decoding nests
those into a tagged `Action` union so every variant holds exactly the
data it needs to render itself.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError, model_validator

from app.core.exceptions import DecodeError, UnknownAction


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class User(FrozenModel):
    email: str
    username: str


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Repository(FrozenModel):
    full_name: str


class PullRequest(FrozenModel):
    id: NonNegativeInt
    url: str
    title: str
    body: str
    comments: NonNegativeInt
    state: PullRequestState
    user: User

    @property
    def author(self) -> User:
        return self.user


# -----------------------------------------------------------------------------
# Reviews, tagged by `type`
# -----------------------------------------------------------------------------

class ApprovedReview(FrozenModel):
    type: Literal["pull_request_review_approved"]
    content: str

    @property
    def verb(self) -> str:
        return "approved"


class RejectedReview(FrozenModel):
    type: Literal["pull_request_review_rejected"]
    content: str

    @property
    def verb(self) -> str:
        return "rejected"


class CommentReview(FrozenModel):
    type: Literal["pull_request_review_comment"]
    content: str

    @property
    def verb(self) -> str:
        return "commented on"


Review = Annotated[
    Union[ApprovedReview, RejectedReview, CommentReview],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# Actions, tagged by `kind` once nested
# -----------------------------------------------------------------------------

class Opened(FrozenModel):
    kind: Literal["opened"]


class Closed(FrozenModel):
    kind: Literal["closed"]


class Reopened(FrozenModel):
    kind: Literal["reopened"]


class Edited(FrozenModel):
    kind: Literal["edited"]


class Merged(FrozenModel):
    kind: Literal["merged"]


class Reviewed(FrozenModel):
    kind: Literal["reviewed"]
    review: Review


class ReviewRequested(FrozenModel):
    kind: Literal["review_requested"]
    requested_reviewer: User


Action = Annotated[
    Union[Opened, Closed, Reopened, Edited, Merged, Reviewed, ReviewRequested],
    Field(discriminator="kind"),
]

# Top-level payload fields that belong to each action variant
ACTION_FIELDS: Dict[str, tuple] = {
    "opened": (),
    "closed": (),
    "reopened": (),
    "edited": (),
    "merged": (),
    "reviewed": ("review",),
    "review_requested": ("requested_reviewer",),
}


class Webhook(FrozenModel):
    """A decoded pull request event; unknown top-level fields are ignored"""

    action: Action
    pull_request: PullRequest
    sender: User
    repository: Repository

    @model_validator(mode="before")
    @classmethod
    def nest_action(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or not isinstance(data.get("action"), str):
            return data
        data = dict(data)
        kind = data["action"]
        action = {"kind": kind}
        for field in ACTION_FIELDS.get(kind, ()):
            if field in data:
                action[field] = data.pop(field)
        data["action"] = action
        return data

    @property
    def repository_full_name(self) -> str:
        return self.repository.full_name

    def replace_emails(self, emails: Mapping[str, str]) -> "Webhook":
        """Copy of this event with each actor's email swapped by username"""

        def swap(user: User) -> User:
            email = emails.get(user.username)
            return user.model_copy(update={"email": email}) if email else user

        action = self.action
        if isinstance(action, ReviewRequested):
            action = action.model_copy(update={"requested_reviewer": swap(action.requested_reviewer)})

        pull_request = self.pull_request.model_copy(update={"user": swap(self.pull_request.user)})
        return self.model_copy(update={
            "action": action,
            "pull_request": pull_request,
            "sender": swap(self.sender),
        })


def _format_location(loc: tuple) -> str:
    # Nested action fields live at the top level of the raw payload
    parts = [str(p) for p in loc]
    if parts and parts[0] == "action" and len(parts) > 2:
        parts = parts[2:]
    return ".".join(parts)


def decode_webhook(payload: Any) -> Webhook:
    """
    Decode a raw JSON object into a Webhook.

    Raises:
        UnknownAction: the `action` discriminator is not a supported kind
        DecodeError: any other missing or mistyped field
    """
    if not isinstance(payload, Mapping):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    if "action" not in payload:
        raise DecodeError("Missing required field 'action'", field="action")

    action = payload["action"]
    if not isinstance(action, str) or action not in ACTION_FIELDS:
        raise UnknownAction(action)

    try:
        return Webhook.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        field = _format_location(first["loc"])
        raise DecodeError(f"Invalid field '{field}': {first['msg']}", field=field) from e
