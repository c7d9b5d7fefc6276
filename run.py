#!/usr/bin/env python3
"""
Script de démarrage pour SongGuess
"""
import logging

import uvicorn

from songguess.config import get_settings
from songguess.main import create_app

if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.youtube_api_key:
        logging.getLogger("songguess").error(
            "YOUTUBE_API_KEY not found in environment variables, song search is disabled"
        )
    print("🎵 Démarrage du serveur SongGuess...")
    print(f"🌐 Interface disponible sur: http://localhost:{settings.port}")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
