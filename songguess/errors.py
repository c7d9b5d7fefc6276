"""Exceptions du projet."""

from __future__ import annotations


class SongGuessError(Exception):
    """Erreur de base de SongGuess."""


class ValidationError(SongGuessError):
    """Saisie invalide, affichée près du contrôle fautif et jamais écrite dans l'état partagé."""

    status_code = 400


class DuplicateError(ValidationError):
    status_code = 409


class NotFoundError(ValidationError):
    status_code = 404


class SessionError(SongGuessError):
    """Création ou ouverture de session impossible."""


class SelectionError(SongGuessError):
    """Echec de sélection du morceau suivant."""


class TransportError(SongGuessError):
    """Magasin de documents injoignable ou réponse non-2xx d'un service externe."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class QuotaExceededError(TransportError):
    def __init__(self, message: str = "YouTube API quota exceeded. Please try again later.") -> None:
        super().__init__(message, status_code=429)
