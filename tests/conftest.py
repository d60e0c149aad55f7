import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cinetime.models  # noqa: F401
from cinetime.database import Base, get_db
from cinetime.main import app
from cinetime.models.user import User
from cinetime.services.tmdb_service import CatalogUnavailableError
from cinetime.utils.dependencies import get_catalog, get_mailer
from cinetime.utils.security import create_access_token, hash_password

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeCatalog:
    """In-memory stand-in for TMDBClient."""

    def __init__(self):
        self.movies = {}
        self.shows = {}
        self.seasons = {}
        self.available = True

    def _check(self):
        if not self.available:
            raise CatalogUnavailableError("connection refused")

    def add_movie(self, tmdb_id, title="Test Movie", runtime=120, **extra):
        self.movies[tmdb_id] = {
            "id": tmdb_id,
            "type": "movie",
            "title": title,
            "overview": extra.get("overview", "A movie"),
            "poster_path": extra.get("poster_path", "/movie.jpg"),
            "backdrop_path": extra.get("backdrop_path", "/movie-bg.jpg"),
            "release_date": extra.get("release_date", "2020-05-01"),
            "vote_average": extra.get("vote_average", 7.5),
            "vote_count": extra.get("vote_count", 1000),
            "genre_ids": [],
            "runtime": runtime,
        }

    def add_show(self, tmdb_id, title="Test Show", seasons=None, runtime=45):
        """``seasons`` maps season number -> list of episode runtimes."""
        seasons = seasons or {1: [runtime, runtime]}
        self.shows[tmdb_id] = {
            "id": tmdb_id,
            "type": "tv",
            "title": title,
            "overview": "A show",
            "poster_path": "/show.jpg",
            "backdrop_path": "/show-bg.jpg",
            "release_date": "2019-01-01",
            "vote_average": 8.0,
            "vote_count": 500,
            "genre_ids": [],
            "runtime": runtime,
            "number_of_seasons": len(seasons),
            "number_of_episodes": sum(len(r) for r in seasons.values()),
            "seasons": [
                {"season_number": number, "episode_count": len(runtimes)}
                for number, runtimes in seasons.items()
            ],
        }
        for number, runtimes in seasons.items():
            self.seasons[(tmdb_id, number)] = {
                "season_number": number,
                "episodes": [
                    {
                        "episode_number": index,
                        "name": f"Episode {index}",
                        "air_date": "2019-01-0%d" % min(index, 9),
                        "overview": "",
                        "runtime": episode_runtime,
                        "still_path": None,
                    }
                    for index, episode_runtime in enumerate(runtimes, start=1)
                ],
            }

    def get_movie_details(self, movie_id):
        self._check()
        return dict(self.movies[movie_id])

    def get_tv_details(self, tv_id):
        self._check()
        return dict(self.shows[tv_id])

    def get_details(self, media_type, tmdb_id):
        if media_type == "movie":
            return self.get_movie_details(tmdb_id)
        if media_type == "tv":
            return self.get_tv_details(tmdb_id)
        raise ValueError("Invalid media type. Use 'movie' or 'tv'")

    def get_season_details(self, tv_id, season_number):
        self._check()
        season = self.seasons[(tv_id, season_number)]
        return {**season, "episodes": [dict(e) for e in season["episodes"]]}

    def _page(self, items):
        return {"results": items, "page": 1, "total_pages": 1, "total_results": len(items)}

    def search(self, query, page=1):
        self._check()
        items = list(self.movies.values()) + list(self.shows.values())
        return self._page([i for i in items if query.lower() in i["title"].lower()])

    def get_trending(self, time_window="week", page=1):
        self._check()
        return self._page(list(self.movies.values()) + list(self.shows.values()))

    def get_popular_movies(self, page=1):
        self._check()
        return self._page(list(self.movies.values()))


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.otps = []
        self.reset_links = []
        self.reset_ttls = []

    def send_otp_email(self, recipient, otp, ttl_minutes=10):
        self.otps.append((recipient, otp))

    def send_password_reset_email(self, recipient, reset_link, ttl_minutes=60):
        self.reset_links.append((recipient, reset_link))
        self.reset_ttls.append(ttl_minutes)


@pytest.fixture
def db_session():
    """Provide a clean database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(db_session, catalog, mailer):
    """FastAPI test client with database, catalog and mailer overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_mailer] = lambda: mailer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def create_user(session, email="user@example.com", password="Password123!", verified=True, **fields):
    user = User(
        firstname=fields.pop("firstname", "Test"),
        lastname=fields.pop("lastname", "User"),
        email=email,
        password_hash=hash_password(password),
        is_email_verified=verified,
        **fields,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers_for(user):
    token = create_access_token(data={"sub": user.email, "user_id": user.id, "roles": list(user.roles or [])})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db_session):
    return create_user(db_session)


@pytest.fixture
def auth_headers(user):
    return auth_headers_for(user)
