from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cinetime.database import Base


class Media(Base):
    """
    A movie or TV show on a user's watchlist.

    For TV shows, watch_status, watch_time_minutes and total_episodes_watched
    are derived from the user's Episode rows by the reconciler in
    episode_service once episode data exists.
    """
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tmdb_id = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    type = Column(String(10), nullable=False)  # movie | tv
    poster_path = Column(String(200), default="")
    backdrop_path = Column(String(200), default="")
    release_date = Column(String(20), default="")

    watch_status = Column(String(20), nullable=False, default="planned")
    rating = Column(Integer, nullable=True)  # 1-5
    watch_time_minutes = Column(Integer, nullable=False, default=0)

    # Catalog snapshot
    vote_average = Column(Float, nullable=True)
    vote_count = Column(Integer, nullable=True)
    overview = Column(Text, nullable=True)

    # TV show specific
    season_count = Column(Integer, default=1)
    episode_count = Column(Integer, default=1)
    total_episodes_watched = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="media_items")

    # One entry per user per catalog item
    __table_args__ = (
        UniqueConstraint("user_id", "tmdb_id", "type", name="unique_user_media"),
        Index("ix_media_user_type_status", "user_id", "type", "watch_status"),
    )

    def __repr__(self):
        return f"<Media(id={self.id}, tmdb_id={self.tmdb_id}, type={self.type}, status={self.watch_status})>"
