from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from cinetime.schemas.validation import SafeStringMixin


# ============================================
# Enums
# ============================================

class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


class WatchStatus(str, Enum):
    PLANNED = "planned"
    WATCHING = "watching"
    COMPLETED = "completed"


class TimeWindow(str, Enum):
    """Time window for trending content"""
    DAY = "day"
    WEEK = "week"


class ReportPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


# ============================================
# Catalog (TMDB) responses
# ============================================

class CatalogItem(BaseModel):
    """One normalized movie or TV show from the catalog"""
    id: int
    type: MediaType
    title: str
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: str = ""
    vote_average: float = 0.0
    vote_count: int = 0
    genre_ids: List[int] = []

    model_config = ConfigDict(use_enum_values=True)


class Pagination(BaseModel):
    page: int
    total_pages: int
    total_results: int


class CatalogPage(BaseModel):
    results: List[CatalogItem]
    pagination: Pagination


class CatalogDetails(CatalogItem):
    """Details keep every extra TMDB field (genres, seasons, credits...)"""
    runtime: int
    watch_time_minutes: int

    model_config = ConfigDict(use_enum_values=True, extra="allow")


# ============================================
# Watchlist requests
# ============================================

class MediaAdd(BaseModel, SafeStringMixin):
    """Schema for adding a movie or TV show to the watchlist"""
    tmdb_id: int = Field(..., gt=0, description="TMDB id of the movie or show")
    title: str = Field(..., min_length=1, max_length=500)
    type: MediaType
    poster_path: Optional[str] = Field(None, max_length=200)
    backdrop_path: Optional[str] = Field(None, max_length=200)
    release_date: Optional[str] = Field(None, max_length=20)
    season_count: Optional[int] = Field(None, ge=0, description="TV only")
    episode_count: Optional[int] = Field(None, ge=0, description="TV only")

    model_config = ConfigDict(use_enum_values=True)

    @field_validator('title')
    @classmethod
    def clean_title(cls, v):
        v = cls.validate_no_script(v)
        return cls.sanitize_html(v)


class MediaStatusUpdate(BaseModel):
    """Schema for updating watch status and/or rating"""
    watch_status: Optional[WatchStatus] = None
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating (1-5)")

    model_config = ConfigDict(use_enum_values=True)


# ============================================
# Watchlist responses
# ============================================

class MediaResponse(BaseModel):
    id: int
    user_id: int
    tmdb_id: int
    title: str
    type: str
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    watch_status: str
    rating: Optional[int] = None
    watch_time_minutes: int
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    overview: Optional[str] = None
    season_count: Optional[int] = None
    episode_count: Optional[int] = None
    total_episodes_watched: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WatchlistTotals(BaseModel):
    total_watch_time: int
    total_items: int


class WatchlistPagination(BaseModel):
    page: int
    total_pages: int
    total: int


class WatchlistPage(BaseModel):
    items: List[MediaResponse]
    stats: WatchlistTotals
    pagination: WatchlistPagination


# ============================================
# Stats
# ============================================

class TypeStats(BaseModel):
    total: int = 0
    completed: int = 0
    watch_time: int = 0
    watch_time_formatted: str = "0h 0m"


class StatusCount(BaseModel):
    status: str
    count: int
    time: int


class TypeCount(BaseModel):
    type: str
    count: int


class EpisodeCounts(BaseModel):
    total: int = 0
    watched: int = 0
    skipped: int = 0
    watch_time: int = 0


class WatchlistStats(BaseModel):
    total_items: int
    total_watch_time: int
    total_watch_time_formatted: str
    movie_stats: TypeStats
    tv_stats: TypeStats
    by_status: List[StatusCount]
    by_type: List[TypeCount]
    planned_count: int
    watching_count: int
    completed_count: int
    episode_stats: EpisodeCounts


class ShowSeasons(BaseModel):
    """Season structure returned before any episodes are stored"""
    seasons: List[Dict[str, Any]]
    episodes: List[Any] = []
