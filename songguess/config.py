"""Configuration applicative lue depuis les variables d'environnement."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Mapping, Optional


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Lecture des extraits (secondes)
    snippet_duration: float = 10.0
    end_buffer: float = 40.0
    play_more_margin: float = 0.5
    seek_tolerance: float = 1.5
    seek_settle_delay: float = 0.05
    duration_retry_delay: float = 1.5

    # Recherche YouTube
    youtube_api_key: Optional[str] = None
    youtube_search_url: str = "https://www.googleapis.com/youtube/v3/search"
    youtube_max_results: int = 10
    youtube_timeout: float = 10.0
    search_debounce: float = 0.5
    search_min_length: int = 3

    # Stockage
    store_backend: str = "memory"
    firebase_credentials_json: Optional[str] = None
    firebase_credentials_path: str = "./firebaseServiceAccountKey.json"

    # Sessions
    session_code_attempts: int = 5
    all_played_message: str = "All songs played!"

    # Serveur
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "info"

    @property
    def cors_origins(self) -> str | List[str]:
        return "*" if self.allowed_origins == ["*"] else list(self.allowed_origins)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        origins = env.get("ALLOWED_ORIGINS", "*")
        return cls(
            snippet_duration=_float(env, "SNIPPET_DURATION", defaults.snippet_duration),
            end_buffer=_float(env, "END_BUFFER_SECONDS", defaults.end_buffer),
            play_more_margin=_float(env, "PLAY_MORE_MARGIN", defaults.play_more_margin),
            seek_tolerance=_float(env, "SEEK_TOLERANCE", defaults.seek_tolerance),
            seek_settle_delay=_float(env, "SEEK_SETTLE_DELAY", defaults.seek_settle_delay),
            duration_retry_delay=_float(env, "DURATION_RETRY_DELAY", defaults.duration_retry_delay),
            youtube_api_key=env.get("YOUTUBE_API_KEY") or None,
            youtube_search_url=env.get("YOUTUBE_SEARCH_URL", defaults.youtube_search_url),
            youtube_max_results=_int(env, "YOUTUBE_MAX_RESULTS", defaults.youtube_max_results),
            youtube_timeout=_float(env, "YOUTUBE_TIMEOUT", defaults.youtube_timeout),
            search_debounce=_float(env, "SEARCH_DEBOUNCE", defaults.search_debounce),
            search_min_length=_int(env, "SEARCH_MIN_LENGTH", defaults.search_min_length),
            store_backend=env.get("STORE_BACKEND", defaults.store_backend).lower(),
            firebase_credentials_json=env.get("FIREBASE_SERVICE_ACCOUNT_JSON") or None,
            firebase_credentials_path=env.get(
                "FIREBASE_SERVICE_ACCOUNT_KEY_PATH", defaults.firebase_credentials_path
            ),
            session_code_attempts=_int(env, "SESSION_CODE_ATTEMPTS", defaults.session_code_attempts),
            all_played_message=env.get("ALL_PLAYED_MESSAGE", defaults.all_played_message),
            allowed_origins=[o.strip().rstrip("/") for o in origins.split(",") if o.strip()] or ["*"],
            host=env.get("HOST", defaults.host),
            port=_int(env, "PORT", defaults.port),
            log_level=env.get("LOG_LEVEL", defaults.log_level).lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
