from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class EpisodeStatus(str, Enum):
    UNWATCHED = "unwatched"
    WATCHED = "watched"
    SKIPPED = "skipped"


class EpisodeStatusUpdate(BaseModel):
    watch_status: Optional[EpisodeStatus] = None
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating (1-5)")

    model_config = ConfigDict(use_enum_values=True)


class EpisodeResponse(BaseModel):
    id: int
    user_id: int
    tmdb_id: int
    season_number: int
    episode_number: int
    episode_title: str
    air_date: Optional[str] = None
    overview: Optional[str] = None
    runtime: int
    still_path: Optional[str] = None
    watch_status: str
    watched_at: Optional[datetime] = None
    rating: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SeasonFetchResult(BaseModel):
    season: int
    episode_count: int


class ShowEpisodes(BaseModel):
    episodes_by_season: Dict[int, List[EpisodeResponse]]
    total_episodes: int
    watched_episodes: int
