from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from podcastsearch.app.rankings.contracts import RankingsItem


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ResponseStatus(str, Enum):
    OK = "ok"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"


class ErrorDetail(ApiModel):
    code: str
    message: str


class ExternalUrl(ApiModel):
    apple_podcasts: str


class ShowInfo(ApiModel):
    show_id: str | None = None
    title: str | None = None
    publisher: str | None = None
    image_url: str | None = None
    external_url: ExternalUrl | None = None


class AudioInfo(ApiModel):
    url: str | None = None
    type: str | None = None
    length_bytes: int | None = None


class ShowSearchItem(ApiModel):
    show_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    language: str | None = None
    publisher: str | None = None
    image_url: str | None = None
    episode_count: int | None = None
    highlights: dict[str, list[str]] = Field(default_factory=dict)
    external_ids: dict[str, str] = Field(default_factory=dict)
    external_urls: dict[str, str] = Field(default_factory=dict)


class EpisodeSearchItem(ApiModel):
    episode_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    highlights: dict[str, list[str]] = Field(default_factory=dict)
    published_at: str | None = None
    duration_sec: int | None = None
    image_url: str | None = None
    language: str | None = None
    audio: AudioInfo | None = None
    show: ShowInfo | None = None


ItemT = TypeVar("ItemT", bound=BaseModel)
DataT = TypeVar("DataT", bound=BaseModel)


class SearchResponseData(ApiModel, Generic[ItemT]):
    page: int
    size: int
    total: int
    items: list[ItemT]


class RankingsResponseData(ApiModel):
    region: str
    ranking_type: str = Field(alias="type")
    items: list[RankingsItem]
    updated_at: datetime


class ResponseEnvelope(ApiModel, Generic[DataT]):
    """Exactly one of ``data`` and ``error`` is set; ``warning`` only on partial_success."""

    status: ResponseStatus
    data: DataT | None = None
    warning: str | None = None
    error: ErrorDetail | None = None

    @model_validator(mode="after")
    def _check_envelope(self) -> "ResponseEnvelope[DataT]":
        if self.status == ResponseStatus.ERROR:
            if self.error is None or self.data is not None:
                raise ValueError("error envelopes carry an error and no data")
        elif self.data is None or self.error is not None:
            raise ValueError("non-error envelopes carry data and no error")
        if (self.status == ResponseStatus.PARTIAL_SUCCESS) != bool(self.warning):
            raise ValueError("warning is required for, and only for, partial_success")
        return self

    @classmethod
    def ok(cls, data: DataT):
        return cls(status=ResponseStatus.OK, data=data)

    @classmethod
    def partial(cls, data: DataT, warning: str):
        return cls(status=ResponseStatus.PARTIAL_SUCCESS, data=data, warning=warning)

    @classmethod
    def failure(cls, code: str, message: str):
        return cls(
            status=ResponseStatus.ERROR,
            error=ErrorDetail(code=code, message=message),
        )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        for optional_key in ("data", "warning", "error"):
            if payload.get(optional_key) is None:
                payload.pop(optional_key, None)
        return payload


ShowSearchResponse = ResponseEnvelope[SearchResponseData[ShowSearchItem]]
EpisodeSearchResponse = ResponseEnvelope[SearchResponseData[EpisodeSearchItem]]
RankingsResponse = ResponseEnvelope[RankingsResponseData]
