from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from forum.models import BannerPosition, PrivateMessageStatus
from forum.validation import validate_poll


# --- User ---

class UserRegister(BaseModel):
    username: str = Field(min_length=1, max_length=25)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=4, max_length=50)
    language: str = Field("en", max_length=10)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    signature: str | None = None
    location: str | None = None
    language: str
    page_size: int
    enabled: bool
    registration_date: datetime
    last_login: datetime | None = None
    mentioning_notifications_enabled: bool = True
    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    signature: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=30)
    language: str = Field("en", max_length=10)
    page_size: int = Field(20, ge=1, le=100)
    mentioning_notifications_enabled: bool = True
    new_password: str | None = Field(None, min_length=4, max_length=50)


class PasswordRestore(BaseModel):
    email: str


class LoginRequest(BaseModel):
    username: str
    password: str


# --- Private messages ---

class PrivateMessageCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1)
    recipient: str


class DraftSave(BaseModel):
    title: str = Field("", max_length=255)
    body: str = ""
    recipient: str | None = None


class PrivateMessageResponse(BaseModel):
    id: int
    title: str
    body: str
    read: bool
    status: PrivateMessageStatus
    creation_date: datetime
    author: str
    recipient: str | None = None


class MessageDelete(BaseModel):
    ids: list[int] = Field(min_length=1)


class MessageDeleteResponse(BaseModel):
    mailbox: str


class NewMessageCount(BaseModel):
    count: int


# --- Polls ---

class PollItemResponse(BaseModel):
    id: int
    name: str
    votes_count: int
    model_config = ConfigDict(from_attributes=True)


class PollResponse(BaseModel):
    id: int
    title: str
    ending_date: datetime | None = None
    active: bool
    items: list[PollItemResponse] = []


class VoteRequest(BaseModel):
    item_ids: list[int] = Field(min_length=1)


# --- Topics / posts ---

class TopicCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    body: str = Field(min_length=1)
    poll_title: str | None = Field(None, max_length=120)
    poll_items: str | None = None
    poll_ending_date: str | None = None

    @model_validator(mode="after")
    def check_poll(self) -> "TopicCreate":
        violations = validate_poll(self.poll_title, self.poll_items, self.poll_ending_date)
        if violations:
            raise ValueError("; ".join(f"{v.field}: {v.message}" for v in violations))
        return self

    @property
    def has_poll(self) -> bool:
        return bool(self.poll_title and self.poll_title.strip())


class PostCreate(BaseModel):
    body: str = Field(min_length=1)


class PostResponse(BaseModel):
    id: int
    topic_id: int
    author: str
    body: str
    created_at: datetime
    updated_at: datetime | None = None


class TopicResponse(BaseModel):
    id: int
    title: str
    author: str
    created_at: datetime
    poll: PollResponse | None = None


# --- Banners ---

class BannerUpload(BaseModel):
    position: BannerPosition
    content: str = Field(min_length=1)


class BannerResponse(BaseModel):
    uuid: str
    position: BannerPosition
    content: str
    model_config = ConfigDict(from_attributes=True)


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    pages: int
