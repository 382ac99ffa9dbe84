from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Fault(CamelModel):
    """A non-fatal upstream failure that was absorbed into a partial result."""

    stage: str
    code: str
    detail: str
    context: dict[str, Any] = Field(default_factory=dict)


class ChannelCandidate(CamelModel):
    id: str
    title: str = ""
    description: str = ""
    custom_url: str | None = None
    thumbnails: dict[str, Any] = Field(default_factory=dict)
    subscriber_count: int | None = None
    video_count: int | None = None
    view_count: int | None = None
    hidden_subscriber_count: bool = False
    relevance_score: int = 0
    match_type: str = "Possible Match"


class ChannelSearchResult(CamelModel):
    candidates: list[ChannelCandidate] = Field(default_factory=list)
    direct_match: bool = False
    original_query: str = ""
    strategies: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    faults: list[Fault] = Field(default_factory=list)


class ResolvedChannel(CamelModel):
    channel_id: str
    uploads_playlist_id: str | None = None


class VideoRecord(CamelModel):
    id: str
    title: str | None = None
    description: str | None = None
    published_at: str | None = None
    thumbnails: dict[str, Any] = Field(default_factory=dict)
    channel_title: str | None = None
    tags: list[str] = Field(default_factory=list)
    category_id: str | None = None
    default_language: str | None = None
    default_audio_language: str | None = None
    live_broadcast_content: str | None = None
    view_count: int = 0
    like_count: int = 0
    dislike_count: int = 0
    favorite_count: int = 0
    comment_count: int = 0
    duration: str = "Unknown"
    raw_duration: str | None = None
    definition: str | None = None
    caption: str | None = None
    licensed_content: bool | None = None
    projection: str | None = None
    upload_status: str | None = None
    privacy_status: str | None = None
    license: str | None = None
    embeddable: bool | None = None
    public_stats_viewable: bool | None = None
    made_for_kids: bool | None = None
    self_declared_made_for_kids: bool | None = None


class VideoCollection(CamelModel):
    items: list[VideoRecord] = Field(default_factory=list)
    faults: list[Fault] = Field(default_factory=list)
    requested_ids: int = 0
    pages_fetched: int = 0
    truncated: bool = False


class ChannelDataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(default="", alias="channelId")
    options: list[str] = Field(default_factory=list)
