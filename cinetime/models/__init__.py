"""
Import all models to ensure they are registered with SQLAlchemy
"""
from cinetime.models.user import User
from cinetime.models.media import Media
from cinetime.models.episode import Episode

__all__ = [
    "User",
    "Media",
    "Episode",
]
