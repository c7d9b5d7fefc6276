"""SongGuess: jeu de devinette musicale (coordination de lecture partagée)."""
