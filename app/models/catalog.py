"""
Catalog Models
Pydantic models for movies, play sources and paginated listings
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Literal, Optional


class EpisodeStream(BaseModel):
    """One playable URL (direct file or HLS manifest) with its display name"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    url: str = ""

    @field_validator("name", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PlaySourceGroup(BaseModel):
    """A named line with per-episode streams, index-aligned with the episode list"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    streams: List[EpisodeStream] = Field(default_factory=list, alias="source_list")

    @field_validator("name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("streams", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []

    def stream_at(self, index: int) -> Optional[EpisodeStream]:
        if 0 <= index < len(self.streams):
            return self.streams[index]
        return None


class Movie(BaseModel):
    """Movie detail as consumed by the resolver; immutable for a detail view"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    title: str = ""
    score: Optional[str] = None
    year: Optional[str] = None
    category: Optional[str] = Field(None, alias="cate")
    description: Optional[str] = None
    other_names: List[str] = Field(default_factory=list, alias="others_name")
    image: Optional[str] = None
    play_sources: List[PlaySourceGroup] = Field(default_factory=list, alias="source_list_source")
    episodes: List[EpisodeStream] = Field(default_factory=list, alias="episode_list")
    priority_source: Optional[PlaySourceGroup] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("score", "year", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("other_names", mode="before")
    @classmethod
    def _flatten_names(cls, value: Any) -> List[str]:
        # upstream sends [{"value": "..."}]
        if not value:
            return []
        names = []
        for entry in value:
            if isinstance(entry, dict):
                if entry.get("value"):
                    names.append(str(entry["value"]))
            elif entry:
                names.append(str(entry))
        return names

    @field_validator("play_sources", "episodes", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []


class StreamCandidate(BaseModel):
    """One (name, URL) pair considered for playback of a specific episode"""
    name: str
    url: str
    quality: Literal["premium", "high", "standard"] = "standard"
    line: Optional[str] = None


class Pagination(BaseModel):
    """Server-declared pagination metadata"""
    page: int = 1
    page_size: int = 20
    total: int = 0
    hasNext: bool = False
    hasPrev: bool = False


class SearchPage(Pagination):
    """One page of search results with the echoed query"""
    query: str
    list: List[dict] = Field(default_factory=list)
