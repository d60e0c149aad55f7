from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional, Union
import time

from cinetime.database import get_db
from cinetime.models.user import User
from cinetime.schemas.auth import MessageResponse
from cinetime.schemas.episode import (
    EpisodeResponse,
    EpisodeStatusUpdate,
    SeasonFetchResult,
    ShowEpisodes,
)
from cinetime.schemas.media import (
    CatalogDetails,
    CatalogPage,
    MediaAdd,
    MediaResponse,
    MediaStatusUpdate,
    ReportPeriod,
    ShowSeasons,
    TimeWindow,
    WatchlistPage,
    WatchlistStats,
    WatchStatus,
)
from cinetime.schemas.validation import SearchQuerySchema
from cinetime.services.episode_service import EpisodeService
from cinetime.services.report_service import ReportService
from cinetime.services.stats_service import StatsService
from cinetime.services.tmdb_service import TMDBClient
from cinetime.services.watchlist_service import WatchlistService
from cinetime.utils.dependencies import get_catalog, get_current_user

router = APIRouter(prefix="/api/v1/media", tags=["Media"])


def get_user_id(user: User) -> int:
    """Helper to extract user_id as int for type safety"""
    return int(user.id)  # type: ignore


def _catalog_page(data: dict) -> dict:
    return {
        "results": data["results"],
        "pagination": {
            "page": data["page"],
            "total_pages": data["total_pages"],
            "total_results": data["total_results"],
        },
    }


# ============================================
# Catalog
# ============================================

@router.get("/search", response_model=CatalogPage)
def search_media(
    query: str = Query(..., description="Search query"),
    page: int = Query(1, description="Page number"),
    catalog: TMDBClient = Depends(get_catalog)
):
    """
    Search movies and TV shows together

    Used for: the main search bar
    """
    try:
        params = SearchQuerySchema(query=query, page=page)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors()[0]["msg"]
        )
    return _catalog_page(catalog.search(params.query, params.page))


@router.get("/details/{media_type}/{tmdb_id}", response_model=CatalogDetails)
def get_media_details(
    media_type: str,
    tmdb_id: int,
    catalog: TMDBClient = Depends(get_catalog)
):
    """Full catalog details plus the watch time the item would add"""
    try:
        details = catalog.get_details(media_type, tmdb_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    # Per-episode runtime for shows
    details["watch_time_minutes"] = details["runtime"]
    return details


@router.get("/trending", response_model=CatalogPage)
def get_trending(
    time_window: TimeWindow = Query(TimeWindow.WEEK, description="day or week"),
    page: int = Query(1, ge=1, le=500),
    catalog: TMDBClient = Depends(get_catalog)
):
    return _catalog_page(catalog.get_trending(time_window.value, page))


@router.get("/popular", response_model=CatalogPage)
def get_popular(
    page: int = Query(1, ge=1, le=500),
    catalog: TMDBClient = Depends(get_catalog)
):
    return _catalog_page(catalog.get_popular_movies(page))


# ============================================
# Watchlist
# ============================================

@router.post("/watchlist", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
def add_to_watchlist(
    data: MediaAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: TMDBClient = Depends(get_catalog)
):
    """
    Add a movie or TV show to the watchlist

    - **tmdb_id**: TMDB id (required)
    - **type**: movie or tv (required)
    - **title**: display title (required)
    """
    return WatchlistService.add_to_watchlist(db, get_user_id(current_user), data, catalog)


@router.post("/watchlist/tv", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
def add_tv_show(
    data: MediaAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: TMDBClient = Depends(get_catalog)
):
    """Add a TV show, optionally overriding season and episode counts"""
    if data.type != "tv":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type must be 'tv'")
    return WatchlistService.add_to_watchlist(db, get_user_id(current_user), data, catalog)


@router.get("/watchlist", response_model=WatchlistPage)
def get_watchlist(
    watch_status: Optional[WatchStatus] = Query(None, alias="status", description="Filter by watch status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get user's watchlist, newest first

    - **status**: planned, watching or completed (optional)
    - **page** / **limit**: pagination, limit capped at 100
    """
    status_value = watch_status.value if watch_status else None
    return WatchlistService.get_watchlist(db, get_user_id(current_user), status_value, page, limit)


@router.get("/watchlist/stats", response_model=WatchlistStats)
def get_watchlist_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get watchlist statistics

    Returns:
    - Totals and completed watch time
    - Breakdown per type and per status
    - Episode counts
    """
    return StatsService.get_watchlist_stats(db, get_user_id(current_user))


@router.get("/watchlist/{media_id}", response_model=MediaResponse)
def get_watchlist_item(
    media_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WatchlistService.get_watchlist_item(db, get_user_id(current_user), media_id)


@router.put("/watchlist/{media_id}/status", response_model=MediaResponse)
def update_watch_status(
    media_id: int,
    update_data: MediaStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update watch status and/or rating (1-5)"""
    return WatchlistService.update_watch_status(db, get_user_id(current_user), media_id, update_data)


@router.delete("/watchlist/{media_id}", response_model=MessageResponse)
def remove_from_watchlist(
    media_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    WatchlistService.remove_from_watchlist(db, get_user_id(current_user), media_id)
    return {"message": "Removed from watchlist"}


# ============================================
# Episodes
# ============================================

@router.get("/tv/{tmdb_id}/episodes", response_model=Union[ShowEpisodes, ShowSeasons])
def get_show_episodes(
    tmdb_id: int,
    season: Optional[int] = Query(None, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: TMDBClient = Depends(get_catalog)
):
    """
    Tracked episodes grouped by season

    Before any season has been fetched this returns the show's season
    layout from the catalog instead.
    """
    return EpisodeService.list_episodes(db, get_user_id(current_user), tmdb_id, catalog, season)


@router.post("/tv/{tmdb_id}/season/{season_number}/fetch", response_model=SeasonFetchResult)
def fetch_season(
    tmdb_id: int,
    season_number: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: TMDBClient = Depends(get_catalog)
):
    return EpisodeService.fetch_season(db, get_user_id(current_user), tmdb_id, season_number, catalog)


@router.put("/episodes/{episode_id}/status", response_model=EpisodeResponse)
def update_episode_status(
    episode_id: int,
    update_data: EpisodeStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark an episode watched, unwatched or skipped; the show's progress follows"""
    return EpisodeService.update_episode_status(db, get_user_id(current_user), episode_id, update_data)


# ============================================
# Report
# ============================================

@router.get("/report")
def download_report(
    period: ReportPeriod = Query(ReportPeriod.ALL),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Download a PDF summary of the user's activity"""
    data = ReportService.build_report_data(db, current_user, period.value)
    pdf = ReportService.render_report_pdf(current_user, data)
    filename = f"Cinetime_Report_{int(time.time() * 1000)}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
