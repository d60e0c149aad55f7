from datetime import timedelta

import pytest
from fastapi import HTTPException

from cinetime.models.episode import Episode
from cinetime.models.media import Media
from cinetime.services.report_service import ReportService, format_duration, period_start
from cinetime.utils.security import utcnow


def seed(session, user_id, old=False):
    created = utcnow() - timedelta(days=60) if old else utcnow()
    offset = 1000 if old else 0
    session.add_all([
        Media(user_id=user_id, tmdb_id=offset + 1, title="Finished Movie", type="movie",
              release_date="2010-07-16", watch_status="completed", watch_time_minutes=148,
              rating=5, created_at=created),
        Media(user_id=user_id, tmdb_id=offset + 2, title="Queued Movie", type="movie",
              watch_status="planned", watch_time_minutes=100, created_at=created),
        Media(user_id=user_id, tmdb_id=offset + 3, title="Done Show", type="tv",
              watch_status="completed", watch_time_minutes=90, created_at=created),
        Media(user_id=user_id, tmdb_id=offset + 4, title="Current Show", type="tv",
              watch_status="watching", watch_time_minutes=45, created_at=created),
    ])
    for number in (1, 2):
        session.add(Episode(user_id=user_id, tmdb_id=offset + 3, season_number=1, episode_number=number,
                            episode_title=f"Done {number}", runtime=45, watch_status="watched",
                            watched_at=created, rating=4, created_at=created))
    session.add(Episode(user_id=user_id, tmdb_id=offset + 4, season_number=1, episode_number=1,
                        episode_title="Current 1", runtime=45, watch_status="watched", created_at=created))
    session.add(Episode(user_id=user_id, tmdb_id=offset + 4, season_number=1, episode_number=2,
                        episode_title="Current 2", runtime=45, watch_status="skipped", created_at=created))
    session.commit()


def test_format_duration():
    assert format_duration(45) == "45m"
    assert format_duration(125) == "2h 5m"
    assert format_duration(1563) == "1d 2h 3m"
    assert format_duration(0) == "0m"


def test_unknown_period_is_rejected():
    with pytest.raises(HTTPException) as exc:
        period_start("decade")
    assert exc.value.status_code == 400


def test_report_data_aggregates(db_session, user):
    seed(db_session, user.id)

    data = ReportService.build_report_data(db_session, user, "all")

    assert data["totals"] == {"movies": 2, "tv_shows": 2, "episodes": 4, "total_watch_time": 148 + 90}
    assert data["by_status"]["completed"] == {"movies": 1, "tv_shows": 1, "time": 148 + 90}
    assert data["by_status"]["watching"] == {"movies": 0, "tv_shows": 1, "time": 45}
    assert data["episode_stats"]["watched"] == 3
    assert data["episode_stats"]["skipped"] == 1
    assert data["episode_stats"]["average_rating"] == 4.0
    assert data["episode_stats"]["total_watch_time"] == 135
    assert [s["status"] for s in data["tv_show_episodes"]] == ["watching", "completed"]
    assert data["completed_movies"][0]["release_year"] == 2010


def test_period_filters_old_rows(db_session, user):
    seed(db_session, user.id, old=True)
    seed(db_session, user.id)

    week = ReportService.build_report_data(db_session, user, "week")
    everything = ReportService.build_report_data(db_session, user, "all")

    assert week["totals"]["movies"] == 2
    assert week["totals"]["episodes"] == 4
    assert everything["totals"]["movies"] == 4
    assert everything["totals"]["episodes"] == 8


def test_render_produces_pdf(db_session, user):
    seed(db_session, user.id)
    data = ReportService.build_report_data(db_session, user, "month")

    pdf = ReportService.render_report_pdf(user, data)

    assert pdf.startswith(b"%PDF")


def test_render_empty_report(db_session, user):
    data = ReportService.build_report_data(db_session, user, "all")
    assert ReportService.render_report_pdf(user, data).startswith(b"%PDF")


def test_report_download(client, db_session, user, auth_headers):
    seed(db_session, user.id)

    response = client.get("/api/v1/media/report?period=year", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="Cinetime_Report_')
    assert disposition.endswith('.pdf"')
    assert response.content.startswith(b"%PDF")


def test_report_download_bad_period(client, auth_headers):
    response = client.get("/api/v1/media/report?period=decade", headers=auth_headers)
    assert response.status_code == 400
