import requests
import os
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_MOVIE_RUNTIME = 120
DEFAULT_EPISODE_RUNTIME = 45
MEDIA_TYPES = ("movie", "tv")


class CatalogUnavailableError(Exception):
    """Raised for any failure talking to TMDB (network, HTTP status, config)."""


def normalize_item(item: Dict, media_type: Optional[str] = None) -> Dict:
    """
    Collapse TMDB's movie and TV shapes into one tagged record.

    Movies carry ``title``/``release_date``, shows carry ``name``/``first_air_date``.
    ``media_type`` overrides the item's own tag for endpoints that omit it
    (e.g. /movie/popular).
    """
    kind = media_type or item.get("media_type")
    if kind not in MEDIA_TYPES:
        kind = "movie" if "title" in item else "tv"

    if kind == "movie":
        title = item.get("title") or item.get("name") or "Unknown Movie"
        release_date = item.get("release_date") or item.get("first_air_date") or ""
    else:
        title = item.get("name") or item.get("title") or "Unknown TV Show"
        release_date = item.get("first_air_date") or item.get("release_date") or ""

    return {
        "id": item.get("id"),
        "type": kind,
        "title": title,
        "overview": item.get("overview") or "",
        "poster_path": item.get("poster_path"),
        "backdrop_path": item.get("backdrop_path"),
        "release_date": release_date,
        "vote_average": item.get("vote_average") or 0.0,
        "vote_count": item.get("vote_count") or 0,
        "genre_ids": item.get("genre_ids") or [g.get("id") for g in item.get("genres") or []],
    }


class TMDBClient:
    """
    Client for The Movie Database API.

    One instance is created per process (see main.lifespan) and handed to
    routes through the ``get_catalog`` dependency.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.themoviedb.org/3",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> "TMDBClient":
        return cls(
            api_key=os.getenv("TMDB_API_KEY"),
            base_url=os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3"),
            timeout=float(os.getenv("TMDB_TIMEOUT", "10")),
        )

    def close(self) -> None:
        self.session.close()

    def _make_request(self, endpoint: str, params: Dict = None) -> Dict:
        """
        Make HTTP request to TMDB API.

        Args:
            endpoint: API endpoint (e.g., "/movie/popular")
            params: Query parameters

        Returns:
            JSON response from TMDB

        Raises:
            CatalogUnavailableError: If API key is missing or request fails
        """
        if not self.api_key:
            raise CatalogUnavailableError("TMDB API key not configured")
        params = dict(params or {})
        params["api_key"] = self.api_key
        params.setdefault("language", "en-US")
        url = f"{self.base_url}{endpoint}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            logger.debug(f"TMDB API request successful: {endpoint}")
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"TMDB API error for {endpoint}: {str(e)}")
            raise CatalogUnavailableError(str(e)) from e

    @staticmethod
    def _paged(data: Dict, results: List[Dict]) -> Dict:
        return {
            "results": results,
            "page": data.get("page", 1),
            "total_pages": data.get("total_pages", 0),
            "total_results": data.get("total_results", 0),
        }

    def search(self, query: str, page: int = 1) -> Dict:
        """Search movies and TV shows together; people are dropped."""
        data = self._make_request("/search/multi", {"query": query, "page": page})
        results = [
            normalize_item(item)
            for item in data.get("results", [])
            if item.get("media_type") in MEDIA_TYPES
        ]
        return self._paged(data, results)

    def get_movie_details(self, movie_id: int) -> Dict:
        data = self._make_request(f"/movie/{movie_id}", {"append_to_response": "videos,credits,similar"})
        details = normalize_item(data, "movie")
        details.update({
            "runtime": data.get("runtime") or DEFAULT_MOVIE_RUNTIME,
            "genres": data.get("genres") or [],
            "tagline": data.get("tagline") or "",
            "status": data.get("status") or "Released",
            "imdb_id": data.get("imdb_id") or "",
        })
        return details

    def get_tv_details(self, tv_id: int) -> Dict:
        data = self._make_request(f"/tv/{tv_id}", {"append_to_response": "videos,credits,similar"})
        run_times = data.get("episode_run_time") or []
        details = normalize_item(data, "tv")
        details.update({
            "runtime": run_times[0] if run_times else DEFAULT_EPISODE_RUNTIME,
            "genres": data.get("genres") or [],
            "status": data.get("status") or "",
            "number_of_seasons": data.get("number_of_seasons") or 0,
            "number_of_episodes": data.get("number_of_episodes") or 0,
            "seasons": data.get("seasons") or [],
        })
        return details

    def get_details(self, media_type: str, tmdb_id: int) -> Dict:
        if media_type == "movie":
            return self.get_movie_details(tmdb_id)
        if media_type == "tv":
            return self.get_tv_details(tmdb_id)
        raise ValueError("Invalid media type. Use 'movie' or 'tv'")

    def get_season_details(self, tv_id: int, season_number: int) -> Dict:
        """Raw season payload; ``episodes`` is always a list."""
        data = self._make_request(f"/tv/{tv_id}/season/{season_number}")
        data.setdefault("episodes", [])
        return data

    def get_trending(self, time_window: str = "week", page: int = 1) -> Dict:
        data = self._make_request(f"/trending/all/{time_window}", {"page": page})
        results = [
            normalize_item(item)
            for item in data.get("results", [])
            if item.get("media_type") in MEDIA_TYPES
        ]
        return self._paged(data, results)

    def get_popular_movies(self, page: int = 1) -> Dict:
        data = self._make_request("/movie/popular", {"page": page})
        results = [normalize_item(item, "movie") for item in data.get("results", [])]
        return self._paged(data, results)
