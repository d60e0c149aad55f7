from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from typing import List, Optional, Tuple
import logging
import math

from cinetime.models.media import Media
from cinetime.schemas.media import MediaAdd, MediaStatusUpdate
from cinetime.schemas.validation import validate_pagination
from cinetime.services.tmdb_service import (
    TMDBClient,
    CatalogUnavailableError,
    DEFAULT_MOVIE_RUNTIME,
    DEFAULT_EPISODE_RUNTIME,
)

logger = logging.getLogger(__name__)


class WatchlistService:
    """Service for watchlist operations"""

    @staticmethod
    def _catalog_snapshot(catalog: TMDBClient, data: MediaAdd) -> Tuple[dict, int]:
        """
        Fetch catalog metadata and the initial watch time estimate.

        Movies use their runtime; shows use episodes x per-episode runtime.
        The show estimate is replaced by the reconciler once episodes are tracked.
        """
        if data.type == "movie":
            details = catalog.get_movie_details(data.tmdb_id)
            return details, details["runtime"]

        details = catalog.get_tv_details(data.tmdb_id)
        episode_count = data.episode_count or details.get("number_of_episodes") or 1
        return details, episode_count * details["runtime"]

    @staticmethod
    def add_to_watchlist(db: Session, user_id: int, data: MediaAdd, catalog: TMDBClient) -> Media:
        """Add a movie or TV show to user's watchlist"""
        existing = db.query(Media).filter(
            Media.user_id == user_id,
            Media.tmdb_id == data.tmdb_id,
            Media.type == data.type,
        ).first()

        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Already in your watchlist"
            )

        try:
            details, watch_time = WatchlistService._catalog_snapshot(catalog, data)
        except CatalogUnavailableError as e:
            logger.warning(f"Catalog lookup failed for {data.type} {data.tmdb_id}, using fallback runtime: {str(e)}")
            details = {}
            watch_time = DEFAULT_MOVIE_RUNTIME if data.type == "movie" else DEFAULT_EPISODE_RUNTIME

        media = Media(
            user_id=user_id,
            tmdb_id=data.tmdb_id,
            title=data.title,
            type=data.type,
            poster_path=data.poster_path or details.get("poster_path") or "",
            backdrop_path=data.backdrop_path or details.get("backdrop_path") or "",
            release_date=data.release_date or details.get("release_date") or "",
            watch_status="planned",
            watch_time_minutes=watch_time,
            vote_average=details.get("vote_average"),
            vote_count=details.get("vote_count"),
            overview=details.get("overview"),
        )
        if data.type == "tv":
            media.season_count = data.season_count or details.get("number_of_seasons") or 1
            media.episode_count = data.episode_count or details.get("number_of_episodes") or 1

        db.add(media)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against a concurrent add of the same item
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Already in your watchlist"
            )
        db.refresh(media)
        return media

    @staticmethod
    def get_watchlist(
        db: Session,
        user_id: int,
        watch_status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """
        Get a page of the user's watchlist.

        The watch time total covers every row matching the filter, not just
        the returned page.
        """
        page, limit = validate_pagination(page, limit)
        filters = [Media.user_id == user_id]
        if watch_status:
            filters.append(Media.watch_status == watch_status)

        items: List[Media] = (
            db.query(Media)
            .filter(*filters)
            .order_by(Media.created_at.desc(), Media.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        total = db.query(func.count(Media.id)).filter(*filters).scalar() or 0
        total_watch_time = db.query(
            func.coalesce(func.sum(Media.watch_time_minutes), 0)
        ).filter(*filters).scalar()

        return {
            "items": items,
            "stats": {
                "total_watch_time": int(total_watch_time or 0),
                "total_items": total,
            },
            "pagination": {
                "page": page,
                "total_pages": math.ceil(total / limit),
                "total": total,
            },
        }

    @staticmethod
    def get_watchlist_item(db: Session, user_id: int, media_id: int) -> Media:
        """Owner-scoped lookup; other users' rows are reported as missing"""
        media = db.query(Media).filter(
            Media.id == media_id,
            Media.user_id == user_id
        ).first()

        if not media:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Media not found in your watchlist"
            )
        return media

    @staticmethod
    def update_watch_status(
        db: Session,
        user_id: int,
        media_id: int,
        update_data: MediaStatusUpdate
    ) -> Media:
        media = WatchlistService.get_watchlist_item(db, user_id, media_id)

        if update_data.watch_status is not None:
            logger.info(f"Media {media.id} status {media.watch_status} -> {update_data.watch_status}")
            media.watch_status = update_data.watch_status
        if update_data.rating is not None:
            media.rating = update_data.rating

        db.commit()
        db.refresh(media)
        return media

    @staticmethod
    def remove_from_watchlist(db: Session, user_id: int, media_id: int) -> None:
        media = WatchlistService.get_watchlist_item(db, user_id, media_id)
        db.delete(media)
        db.commit()
