"""
Episode tracking and TV show status reconciliation.

A show's Media row carries three derived fields: watch_status,
watch_time_minutes and total_episodes_watched. They are recomputed from
the user's Episode rows after every episode status change:

    watched == 0 (or no episodes) -> planned
    watched == total              -> completed
    otherwise                     -> watching

Reconciliation is synchronous and takes no locks; with concurrent updates
to the same show the last writer's result stands.
"""
from dataclasses import dataclass
from collections import defaultdict
from typing import Iterable, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from cinetime.models.episode import Episode, DEFAULT_EPISODE_RUNTIME
from cinetime.models.media import Media
from cinetime.schemas.episode import EpisodeStatusUpdate
from cinetime.services.tmdb_service import TMDBClient
from cinetime.utils.security import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShowProgress:
    watch_status: str
    watch_time_minutes: int
    watched_episodes: int
    total_episodes: int


def derive_show_progress(episodes: Iterable[Episode]) -> ShowProgress:
    episodes = list(episodes)
    watched = [e for e in episodes if e.watch_status == "watched"]
    watch_time = sum(e.runtime or DEFAULT_EPISODE_RUNTIME for e in watched)

    # An empty show is planned, never vacuously completed
    if not watched:
        show_status = "planned"
    elif len(watched) == len(episodes):
        show_status = "completed"
    else:
        show_status = "watching"

    return ShowProgress(
        watch_status=show_status,
        watch_time_minutes=watch_time,
        watched_episodes=len(watched),
        total_episodes=len(episodes),
    )


class EpisodeService:

    @staticmethod
    def reconcile_show(db: Session, user_id: int, tmdb_id: int) -> Optional[Media]:
        """Write derived progress onto the user's TV Media row, if there is one."""
        episodes = db.query(Episode).filter(
            Episode.user_id == user_id,
            Episode.tmdb_id == tmdb_id,
        ).all()
        progress = derive_show_progress(episodes)

        show = db.query(Media).filter(
            Media.user_id == user_id,
            Media.tmdb_id == tmdb_id,
            Media.type == "tv",
        ).first()
        if show is None:
            logger.debug(f"No watchlist entry for show {tmdb_id}; nothing to reconcile")
            db.commit()
            return None

        show.watch_status = progress.watch_status
        show.watch_time_minutes = progress.watch_time_minutes
        show.total_episodes_watched = progress.watched_episodes
        db.commit()
        db.refresh(show)
        return show

    @staticmethod
    def fetch_season(
        db: Session,
        user_id: int,
        tmdb_id: int,
        season_number: int,
        catalog: TMDBClient
    ) -> dict:
        """
        Pull a season from the catalog and upsert the user's episode rows.

        Catalog fields are refreshed on existing rows; watch state and
        rating are left alone so repeated fetches are harmless.
        """
        season = catalog.get_season_details(tmdb_id, season_number)
        fetched = season["episodes"]

        existing = {
            e.episode_number: e
            for e in db.query(Episode).filter(
                Episode.user_id == user_id,
                Episode.tmdb_id == tmdb_id,
                Episode.season_number == season_number,
            ).all()
        }

        for item in fetched:
            number = item.get("episode_number")
            if number is None:
                continue
            fields = {
                "episode_title": item.get("name") or f"Episode {number}",
                "air_date": item.get("air_date"),
                "overview": item.get("overview"),
                "runtime": item.get("runtime") or DEFAULT_EPISODE_RUNTIME,
                "still_path": item.get("still_path"),
            }
            episode = existing.get(number)
            if episode is None:
                episode = Episode(
                    user_id=user_id,
                    tmdb_id=tmdb_id,
                    season_number=season_number,
                    episode_number=number,
                    watch_status="unwatched",
                )
                db.add(episode)
                existing[number] = episode
            for key, value in fields.items():
                setattr(episode, key, value)

        db.commit()
        logger.info(f"Stored {len(fetched)} episodes for show {tmdb_id} season {season_number} (user {user_id})")
        return {"season": season_number, "episode_count": len(fetched)}

    @staticmethod
    def list_episodes(
        db: Session,
        user_id: int,
        tmdb_id: int,
        catalog: TMDBClient,
        season_number: Optional[int] = None
    ) -> dict:
        query = db.query(Episode).filter(
            Episode.user_id == user_id,
            Episode.tmdb_id == tmdb_id,
        )
        if season_number is not None:
            query = query.filter(Episode.season_number == season_number)
        episodes = query.order_by(Episode.season_number, Episode.episode_number).all()

        # Nothing tracked yet: hand back the season layout so the client can fetch
        if not episodes and season_number is None:
            details = catalog.get_tv_details(tmdb_id)
            return {"seasons": details.get("seasons", []), "episodes": []}

        by_season = defaultdict(list)
        for episode in episodes:
            by_season[episode.season_number].append(episode)

        return {
            "episodes_by_season": dict(by_season),
            "total_episodes": len(episodes),
            "watched_episodes": sum(1 for e in episodes if e.watch_status == "watched"),
        }

    @staticmethod
    def update_episode_status(
        db: Session,
        user_id: int,
        episode_id: int,
        update_data: EpisodeStatusUpdate
    ) -> Episode:
        episode = db.query(Episode).filter(
            Episode.id == episode_id,
            Episode.user_id == user_id,
        ).first()
        if not episode:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")

        if update_data.watch_status is not None:
            episode.watch_status = update_data.watch_status
            if update_data.watch_status == "watched":
                episode.watched_at = utcnow()
            else:
                episode.watched_at = None
        if update_data.rating is not None:
            episode.rating = update_data.rating

        # Episode and show progress land in one commit
        db.flush()
        EpisodeService.reconcile_show(db, user_id, episode.tmdb_id)
        db.refresh(episode)
        return episode
