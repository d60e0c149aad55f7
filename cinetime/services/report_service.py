"""
PDF activity report.

``build_report_data`` gathers and aggregates the user's media and episodes
for a period; ``render_report_pdf`` lays the result out on A4 pages with
reportlab. The two are separate so the numbers can be tested without
parsing a PDF.
"""
from collections import defaultdict
from datetime import datetime, timedelta
from io import BytesIO
from typing import Dict, List, Optional
import logging

from fastapi import HTTPException, status
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from cinetime.models.episode import Episode, DEFAULT_EPISODE_RUNTIME
from cinetime.models.media import Media
from cinetime.models.user import User
from cinetime.utils.security import utcnow

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}
STATUSES = ("planned", "watching", "completed")

ROSE = colors.HexColor("#dc2626")
GREEN = colors.HexColor("#059669")
AMBER = colors.HexColor("#f59e0b")
SLATE_900 = colors.HexColor("#111827")
SLATE_800 = colors.HexColor("#1f2937")
SLATE_700 = colors.HexColor("#374151")
SLATE_600 = colors.HexColor("#4b5563")
GREY = colors.HexColor("#6b7280")


def format_duration(minutes: int) -> str:
    """1563 -> '1d 2h 3m', 125 -> '2h 5m', 45 -> '45m'"""
    minutes = int(minutes or 0)
    hours, mins = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days > 0:
        return f"{days}d {hours}h {mins}m"
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_date(value: Optional[datetime]) -> str:
    if not value:
        return "Unknown"
    return value.strftime("%b %d, %Y")


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    if period == "all":
        return None
    if period not in PERIOD_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid period. Use 'week', 'month', 'year' or 'all'",
        )
    return (now or utcnow()) - timedelta(days=PERIOD_DAYS[period])


def _release_year(release_date: Optional[str]):
    if release_date and release_date[:4].isdigit():
        return int(release_date[:4])
    return "Unknown"


def _episode_line(episode: Episode) -> Dict:
    return {
        "season": episode.season_number,
        "episode": episode.episode_number,
        "title": episode.episode_title,
        "date": episode.watched_at or episode.created_at,
        "runtime": episode.runtime or DEFAULT_EPISODE_RUNTIME,
    }


class ReportService:

    @staticmethod
    def build_report_data(db: Session, user: User, period: str = "all") -> Dict:
        start = period_start(period)

        media_query = db.query(Media).filter(Media.user_id == user.id)
        episode_query = db.query(Episode).filter(Episode.user_id == user.id)
        if start is not None:
            media_query = media_query.filter(Media.created_at >= start)
            episode_query = episode_query.filter(Episode.created_at >= start)

        media_items: List[Media] = media_query.order_by(Media.created_at.desc(), Media.id.desc()).all()
        episodes: List[Episode] = episode_query.order_by(
            Episode.tmdb_id, Episode.season_number, Episode.episode_number
        ).all()

        episodes_by_show = defaultdict(list)
        for episode in episodes:
            episodes_by_show[episode.tmdb_id].append(episode)

        totals = {"movies": 0, "tv_shows": 0, "episodes": len(episodes), "total_watch_time": 0}
        by_status = {s: {"movies": 0, "tv_shows": 0, "time": 0} for s in STATUSES}

        for item in media_items:
            bucket = by_status[item.watch_status]
            if item.type == "movie":
                totals["movies"] += 1
                bucket["movies"] += 1
                minutes = item.watch_time_minutes or 0
            else:
                totals["tv_shows"] += 1
                bucket["tv_shows"] += 1
                # Shows are measured by what was actually watched
                minutes = sum(
                    e.runtime or DEFAULT_EPISODE_RUNTIME
                    for e in episodes_by_show.get(item.tmdb_id, [])
                    if e.watch_status == "watched"
                )
            bucket["time"] += minutes
            if item.watch_status == "completed":
                totals["total_watch_time"] += minutes

        watched = [e for e in episodes if e.watch_status == "watched"]
        rated = [e.rating for e in watched if e.rating]
        episode_stats = {
            "total": len(episodes),
            "watched": len(watched),
            "skipped": sum(1 for e in episodes if e.watch_status == "skipped"),
            "average_rating": sum(rated) / len(rated) if rated else 0.0,
            "total_watch_time": sum(e.runtime or DEFAULT_EPISODE_RUNTIME for e in watched),
        }

        tv_show_episodes = []
        for show_status in ("watching", "completed"):
            for show in media_items:
                if show.type != "tv" or show.watch_status != show_status:
                    continue
                show_episodes = episodes_by_show.get(show.tmdb_id, [])
                show_watched = [e for e in show_episodes if e.watch_status == "watched"]
                tv_show_episodes.append({
                    "show_id": show.tmdb_id,
                    "show_title": show.title,
                    "status": show_status,
                    "watched_episodes": [_episode_line(e) for e in show_watched],
                    "total_watched": len(show_watched),
                    "total_episodes": len(show_episodes),
                })

        completed_movies = [
            {
                "title": movie.title,
                "release_year": _release_year(movie.release_date),
                "watch_time": movie.watch_time_minutes or 120,
                "rating": movie.rating,
                "completed_date": movie.updated_at or movie.created_at,
            }
            for movie in media_items
            if movie.type == "movie" and movie.watch_status == "completed"
        ]

        return {
            "period": period,
            "generated_at": utcnow(),
            "totals": totals,
            "by_status": by_status,
            "episode_stats": episode_stats,
            "tv_show_episodes": tv_show_episodes,
            "completed_movies": completed_movies,
        }

    @staticmethod
    def render_report_pdf(user: User, data: Dict) -> bytes:
        buffer = BytesIO()
        writer = _ReportWriter(buffer, generated_at=data["generated_at"])
        writer.write(user, data)
        logger.info(f"Rendered report for user {user.id} ({data['period']}, {writer.page_count} pages)")
        return buffer.getvalue()


class _NumberedCanvas(canvas.Canvas):
    """Defers page output until save() so each footer can show the page total."""

    def __init__(self, *args, footer_text: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self._footer_text = footer_text
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self.setFont("Helvetica", 8)
            self.setFillColor(GREY)
            self.drawCentredString(
                A4[0] / 2, 30,
                f"Page {number} of {total} - Cinetime Media Report - {self._footer_text}",
            )
            super().showPage()
        super().save()


class _ReportWriter:
    MARGIN = 50
    BOTTOM = 70
    MAX_TITLE = 70

    def __init__(self, buffer: BytesIO, generated_at: datetime):
        self.width, self.height = A4
        self.canvas = _NumberedCanvas(
            buffer, pagesize=A4, footer_text=f"Generated on {format_date(generated_at)}"
        )
        self.canvas.setTitle("Cinetime Media Report")
        self.y = self.height - self.MARGIN
        self.page_count = 1

    # Layout primitives

    def new_page(self):
        self.canvas.showPage()
        self.page_count += 1
        self.y = self.height - self.MARGIN

    def ensure_space(self, needed: float):
        if self.y - needed < self.BOTTOM:
            self.new_page()

    def text(self, x: float, value: str, font="Helvetica", size=11, color=SLATE_700, y=None):
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self.y if y is None else y, value)

    def heading(self, value: str, size=14):
        self.ensure_space(40)
        self.text(self.MARGIN, value, "Helvetica-Bold", size, SLATE_800)
        self.y -= size + 10

    def row(self, label: str, value: str, value_color=SLATE_900, value_x=200):
        self.ensure_space(20)
        self.text(self.MARGIN, label)
        self.text(value_x, value, color=value_color)
        self.y -= 20

    def clip(self, value: str) -> str:
        value = value or ""
        return value if len(value) <= self.MAX_TITLE else value[: self.MAX_TITLE - 3] + "..."

    # Sections

    def write(self, user: User, data: Dict):
        self._header(user, data)
        self._summary(data)
        if data["episode_stats"]["total"] > 0:
            self.new_page()
            self._episode_section(data)
        if data["completed_movies"]:
            self.new_page()
            self._movies_section(data["completed_movies"])
        self.canvas.save()

    def _header(self, user: User, data: Dict):
        period = data["period"]
        period_text = "All Time" if period == "all" else f"Last {period.capitalize()}"
        self.text(self.MARGIN, "CINETIME", "Helvetica-Bold", 24, ROSE)
        self.y -= 30
        self.text(self.MARGIN, "Media Activity Report", "Helvetica-Bold", 16, SLATE_700)
        self.y -= 24
        self.text(
            self.MARGIN,
            f"User: {user.email}  |  Period: {period_text}  |  Generated: {format_date(data['generated_at'])}",
            size=10, color=SLATE_600,
        )
        self.y -= 36

    def _summary(self, data: Dict):
        totals = data["totals"]
        self.heading("Summary Statistics")
        top = self.y
        self.row("Total Items:", str(totals["movies"] + totals["tv_shows"]), value_x=170)
        self.row("Movies:", str(totals["movies"]), value_x=170)
        self.row("TV Shows:", str(totals["tv_shows"]), value_x=170)
        self.row("Episodes:", str(totals["episodes"]), value_x=170)
        self.row("Total Watch Time:", format_duration(totals["total_watch_time"]), ROSE, value_x=170)
        bottom = self.y

        # Status breakdown in a right-hand column
        self.y = top
        self.text(300, "Status Breakdown:")
        for s in STATUSES:
            self.y -= 20
            bucket = data["by_status"][s]
            self.text(300, f"{s.capitalize()}:", size=10, color=GREY)
            self.text(
                370,
                f"Movies: {bucket['movies']}, TV: {bucket['tv_shows']}, Time: {format_duration(bucket['time'])}",
                size=10, color=SLATE_900,
            )
        self.y = min(bottom, self.y - 20) - 20

    def _episode_section(self, data: Dict):
        stats = data["episode_stats"]
        self.heading("Episode Statistics")
        self.row("Total Episodes:", str(stats["total"]))
        percent = stats["watched"] / stats["total"] * 100
        self.row("Watched Episodes:", f"{stats['watched']} ({percent:.1f}%)")
        self.row("Skipped Episodes:", str(stats["skipped"]))
        if stats["average_rating"] > 0:
            self.row("Average Episode Rating:", f"{stats['average_rating']:.1f}/5")
        self.row("Total Episode Watch Time:", format_duration(stats["total_watch_time"]), ROSE)
        self.y -= 20

        shows = data["tv_show_episodes"]
        watching = [s for s in shows if s["status"] == "watching"]
        completed = [s for s in shows if s["status"] == "completed"]
        if watching:
            self.heading("Currently Watching TV Shows")
            for index, show in enumerate(watching, start=1):
                self._show_block(index, show, ROSE, "Watched", show["watched_episodes"])
        if completed:
            self.heading("Completed TV Shows")
            for index, show in enumerate(completed, start=1):
                # Only the tail end of a finished show
                self._show_block(index, show, GREEN, "Completed", show["watched_episodes"][-5:])

    def _show_block(self, index: int, show: Dict, color, verb: str, episodes: List[Dict]):
        self.ensure_space(60)
        self.text(self.MARGIN, f"{index}. {self.clip(show['show_title'])}", "Helvetica-Bold", 12, color)
        self.y -= 16
        self.text(
            self.MARGIN, f"{verb} {show['total_watched']}/{show['total_episodes']} episodes",
            size=10, color=GREY,
        )
        self.y -= 18
        for episode in episodes:
            self.ensure_space(16)
            self.text(
                70, self.clip(f"S{episode['season']}E{episode['episode']}: {episode['title']}"),
                size=9, color=SLATE_700,
            )
            self.text(
                350, f"{episode['runtime']} min | {format_date(episode['date'])}",
                size=9, color=GREY,
            )
            self.y -= 16
        self.y -= 14

    def _movies_section(self, movies: List[Dict]):
        self.heading("Completed Movies")
        for index, movie in enumerate(movies, start=1):
            self.ensure_space(40)
            self.text(
                self.MARGIN, self.clip(f"{index}. {movie['title']} ({movie['release_year']})"),
                "Helvetica-Bold", 12, GREEN,
            )
            self.y -= 18
            self.text(70, f"Watch Time: {format_duration(movie['watch_time'])}", size=10, color=GREY)
            if movie["rating"]:
                self.text(200, f"Rating: {movie['rating']}/5", size=10, color=AMBER)
            self.text(300, f"Completed: {format_date(movie['completed_date'])}", size=10, color=GREY)
            self.y -= 22
