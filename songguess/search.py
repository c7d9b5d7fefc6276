"""Recherche de vidéos musicales via l'API YouTube Data v3.

Retourne une liste de dicts: {videoId, title, thumbnail, url}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from .config import Settings
from .errors import QuotaExceededError, TransportError, ValidationError

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
MUSIC_CATEGORY_ID = "10"


def _format_results(data: Dict[str, Any]) -> List[Dict[str, str]]:
    result: List[Dict[str, str]] = []
    for item in data.get("items", []):
        video_id = item.get("id", {}).get("videoId")
        # On ignore les chaînes et playlists éventuelles
        if not video_id:
            continue
        snippet = item.get("snippet", {})
        result.append(
            {
                "videoId": video_id,
                "title": snippet.get("title", ""),
                "thumbnail": snippet.get("thumbnails", {}).get("default", {}).get("url", ""),
                "url": WATCH_URL.format(video_id=video_id),
            }
        )
    return result


def _api_error(resp: requests.Response) -> TransportError:
    try:
        error = resp.json().get("error") or {}
    except ValueError:
        error = {}
    if any(e.get("reason") == "quotaExceeded" for e in error.get("errors", [])):
        return QuotaExceededError()
    return TransportError(f"YouTube API error: {error.get('message') or 'Unknown error'}")


def search_youtube(term: str, settings: Settings) -> List[Dict[str, str]]:
    """Appel bloquant: à exécuter hors de la boucle asyncio."""
    if not term or not term.strip():
        raise ValidationError('Missing search query parameter "q"')
    if not settings.youtube_api_key:
        logger.error("YOUTUBE_API_KEY is not set in environment variables")
        raise TransportError("Server configuration error: YouTube API key missing")

    params = {
        "part": "snippet",
        "q": term,
        "key": settings.youtube_api_key,
        "type": "video",
        "maxResults": settings.youtube_max_results,
        "videoCategoryId": MUSIC_CATEGORY_ID,
    }
    try:
        resp = requests.get(settings.youtube_search_url, params=params, timeout=settings.youtube_timeout)
    except requests.RequestException as e:
        logger.error("Error searching YouTube: %s", e)
        raise TransportError("Error searching YouTube") from e
    if not resp.ok:
        error = _api_error(resp)
        logger.error("YouTube search failed (%s): %s", resp.status_code, error)
        raise error
    try:
        return _format_results(resp.json())
    except ValueError as e:
        raise TransportError("Error searching YouTube") from e
