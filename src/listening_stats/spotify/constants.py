"""Spotify API URLs, batch limits and retry defaults."""

# Spotify Auth
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Spotify Web API base
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

# Spotify Web API endpoints
RECENTLY_PLAYED_URL = f"{SPOTIFY_API_BASE}/me/player/recently-played"
ME_URL = f"{SPOTIFY_API_BASE}/me"
TRACKS_URL = f"{SPOTIFY_API_BASE}/tracks"
ALBUMS_URL = f"{SPOTIFY_API_BASE}/albums"
ARTISTS_URL = f"{SPOTIFY_API_BASE}/artists"

# "Get Several ..." endpoint limits
TRACKS_BATCH_SIZE = 50
ALBUMS_BATCH_SIZE = 20
ARTISTS_BATCH_SIZE = 50

# Retry defaults
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds
DEFAULT_BATCH_PAUSE = 0.1  # seconds between successive batches
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
