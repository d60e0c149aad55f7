from sqlalchemy.orm import Session
from typing import Dict
import logging

from cinetime.models.episode import Episode, DEFAULT_EPISODE_RUNTIME
from cinetime.models.media import Media

logger = logging.getLogger(__name__)

STATUSES = ("planned", "watching", "completed")
TYPES = ("movie", "tv")


def format_watch_time(minutes: int) -> str:
    """120 -> '2h 0m'"""
    minutes = int(minutes or 0)
    return f"{minutes // 60}h {minutes % 60}m"


class StatsService:
    """Read-only aggregation over a user's watchlist and episodes"""

    @staticmethod
    def get_watchlist_stats(db: Session, user_id: int) -> Dict:
        items = db.query(
            Media.type, Media.watch_status, Media.watch_time_minutes
        ).filter(Media.user_id == user_id).all()

        status_counts = {s: {"count": 0, "time": 0} for s in STATUSES}
        type_counts = {t: 0 for t in TYPES}
        per_type = {t: {"total": 0, "completed": 0, "watch_time": 0} for t in TYPES}
        total_watch_time = 0

        for media_type, watch_status, minutes in items:
            watch_status = watch_status or "planned"
            type_counts[media_type] = type_counts.get(media_type, 0) + 1
            status_counts[watch_status]["count"] += 1
            per_type[media_type]["total"] += 1

            # Only finished items count towards watch time
            if watch_status == "completed":
                minutes = minutes or 0
                status_counts["completed"]["time"] += minutes
                per_type[media_type]["completed"] += 1
                per_type[media_type]["watch_time"] += minutes
                total_watch_time += minutes

        episodes = db.query(Episode.watch_status, Episode.runtime).filter(
            Episode.user_id == user_id
        ).all()
        watched = [runtime for ep_status, runtime in episodes if ep_status == "watched"]

        stats = {
            "total_items": len(items),
            "total_watch_time": total_watch_time,
            "total_watch_time_formatted": format_watch_time(total_watch_time),
            "movie_stats": {
                **per_type["movie"],
                "watch_time_formatted": format_watch_time(per_type["movie"]["watch_time"]),
            },
            "tv_stats": {
                **per_type["tv"],
                "watch_time_formatted": format_watch_time(per_type["tv"]["watch_time"]),
            },
            "by_status": [
                {"status": s, "count": data["count"], "time": data["time"]}
                for s, data in status_counts.items() if data["count"] > 0
            ],
            "by_type": [
                {"type": t, "count": count}
                for t, count in type_counts.items() if count > 0
            ],
            "planned_count": status_counts["planned"]["count"],
            "watching_count": status_counts["watching"]["count"],
            "completed_count": status_counts["completed"]["count"],
            "episode_stats": {
                "total": len(episodes),
                "watched": len(watched),
                "skipped": sum(1 for ep_status, _ in episodes if ep_status == "skipped"),
                "watch_time": sum(r or DEFAULT_EPISODE_RUNTIME for r in watched),
            },
        }
        logger.debug(f"Stats for user {user_id}: {stats['total_items']} items, {total_watch_time} min")
        return stats
