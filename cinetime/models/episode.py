from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cinetime.database import Base

DEFAULT_EPISODE_RUNTIME = 45


class Episode(Base):
    """
    Per-user watch state of a single TV episode.

    tmdb_id is the show's catalog id and correlates with Media.tmdb_id
    (type "tv"); it is deliberately not a foreign key.
    """
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tmdb_id = Column(Integer, nullable=False, index=True)
    season_number = Column(Integer, nullable=False)
    episode_number = Column(Integer, nullable=False)
    episode_title = Column(String(500), nullable=False)
    air_date = Column(String(20), nullable=True)
    overview = Column(Text, nullable=True)
    runtime = Column(Integer, nullable=False, default=DEFAULT_EPISODE_RUNTIME)
    still_path = Column(String(200), nullable=True)

    watch_status = Column(String(20), nullable=False, default="unwatched")
    watched_at = Column(DateTime(timezone=True), nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "tmdb_id", "season_number", "episode_number",
            name="unique_user_episode",
        ),
        Index("ix_episodes_user_status", "user_id", "watch_status"),
    )

    def __repr__(self):
        return f"<Episode(show={self.tmdb_id}, S{self.season_number}E{self.episode_number}, {self.watch_status})>"
