from cinetime.models.episode import Episode
from cinetime.models.media import Media
from cinetime.services.stats_service import StatsService, format_watch_time


def add_media(session, user_id, tmdb_id, media_type="movie", status="planned", minutes=120):
    media = Media(
        user_id=user_id,
        tmdb_id=tmdb_id,
        title=f"Item {tmdb_id}",
        type=media_type,
        watch_status=status,
        watch_time_minutes=minutes,
    )
    session.add(media)
    session.commit()
    return media


def test_format_watch_time():
    assert format_watch_time(0) == "0h 0m"
    assert format_watch_time(135) == "2h 15m"
    assert format_watch_time(None) == "0h 0m"


def test_empty_watchlist_has_zeroes(client, auth_headers):
    response = client.get("/api/v1/media/watchlist/stats", headers=auth_headers)

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_items"] == 0
    assert stats["total_watch_time"] == 0
    assert stats["total_watch_time_formatted"] == "0h 0m"
    assert stats["by_status"] == []
    assert stats["by_type"] == []
    assert stats["movie_stats"]["total"] == 0
    assert stats["episode_stats"] == {"total": 0, "watched": 0, "skipped": 0, "watch_time": 0}


def test_only_completed_items_count_towards_watch_time(db_session, user):
    add_media(db_session, user.id, 1, status="completed", minutes=100)
    add_media(db_session, user.id, 2, status="planned", minutes=90)
    add_media(db_session, user.id, 3, media_type="tv", status="completed", minutes=300)
    add_media(db_session, user.id, 4, media_type="tv", status="watching", minutes=45)

    stats = StatsService.get_watchlist_stats(db_session, user.id)

    assert stats["total_items"] == 4
    assert stats["total_watch_time"] == 400
    assert stats["total_watch_time_formatted"] == "6h 40m"
    assert stats["movie_stats"]["total"] == 2
    assert stats["movie_stats"]["completed"] == 1
    assert stats["movie_stats"]["watch_time"] == 100
    assert stats["tv_stats"]["watch_time"] == 300
    assert stats["planned_count"] == 1
    assert stats["watching_count"] == 1
    assert stats["completed_count"] == 2
    by_type = {row["type"]: row["count"] for row in stats["by_type"]}
    assert by_type == {"movie": 2, "tv": 2}


def test_episode_counts(db_session, user):
    for number, status in enumerate(["watched", "watched", "skipped", "unwatched"], start=1):
        db_session.add(Episode(
            user_id=user.id, tmdb_id=10, season_number=1, episode_number=number,
            episode_title=f"Episode {number}", runtime=30, watch_status=status,
        ))
    db_session.commit()

    stats = StatsService.get_watchlist_stats(db_session, user.id)

    assert stats["episode_stats"] == {"total": 4, "watched": 2, "skipped": 1, "watch_time": 60}


def test_stats_are_scoped_to_the_user(db_session, user):
    from conftest import create_user

    other = create_user(db_session, email="other@example.com")
    add_media(db_session, other.id, 1, status="completed")

    assert StatsService.get_watchlist_stats(db_session, user.id)["total_items"] == 0
