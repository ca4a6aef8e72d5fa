"""Evidence types handed to the engine by its collaborators.

Posts, profiles and price bars are immutable: an invocation fetches them,
reads them, and attaches them to its result. Nothing here is persisted.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    display_name: str = ""
    verified: bool = False
    follower_count: int = Field(default=0, ge=0)
    following_count: int = Field(default=0, ge=0)
    post_count: int = Field(default=0, ge=0)
    created_at: datetime
    bio: str | None = None
    location: str | None = None
    url: str | None = None
    profile_image_url: str | None = None


class EngagementMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    likes: int = Field(default=0, ge=0)
    retweets: int = Field(default=0, ge=0)
    replies: int = Field(default=0, ge=0)
    quotes: int = Field(default=0, ge=0)
    impressions: int | None = None
    bookmarks: int | None = None


class Post(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    author: UserProfile
    created_at: datetime
    engagement: EngagementMetrics = Field(default_factory=EngagementMetrics)
    language: str | None = None
    is_retweet: bool = False
    is_quote: bool = False
    in_reply_to_id: str | None = None
    quoted_id: str | None = None
    retweeted_id: str | None = None
    hashtags: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    urls: tuple[str, ...] = ()
    cashtags: tuple[str, ...] = ()


class PriceBar(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float = Field(gt=0)
    high: float = Field(gt=0)
    low: float = Field(gt=0)
    close: float = Field(gt=0)
    volume: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "PriceBar":
        if self.high < max(self.open, self.close):
            raise ValueError("high must be >= max(open, close)")
        if self.low > min(self.open, self.close):
            raise ValueError("low must be <= min(open, close)")
        return self


class SearchParams(BaseModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=100, ge=1, le=100)
    start_time: datetime | None = None
    end_time: datetime | None = None
