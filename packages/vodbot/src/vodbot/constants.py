"""
Single place for constants that are used across the package.
"""

from typing import Final

GQL_URL: Final = "https://gql.twitch.tv/gql"
USHER_VOD_URL: Final = "https://usher.ttvnw.net/vod/{video_id}.m3u8"

# Twitch's public web client id, the same one the browser player sends.
DEFAULT_CLIENT_ID: Final = "kimne78kx3ncx6brgo4mv6wki5h1ko"

# Page size for every paginated list query (API maximum).
PAGE_SIZE: Final[int] = 100

# Manifest requests carry a token that expires within minutes.
MANIFEST_TIMEOUT: Final[float] = 10.0

PLAYBACK_PARAMS: Final[dict[str, str]] = {
    "platform": "web",
    "playerBackend": "mediaplayer",
    "playerType": "site",
}

# broadcastType enum value per content kind that is stored as a Video
VIDEO_KINDS: Final[dict[str, str]] = {
    "vods": "ARCHIVE",
    "highlights": "HIGHLIGHT",
    "uploads": "UPLOAD",
    "premieres": "PAST_PREMIERE",
}

MEDIA_EXT: Final = ".mp4"
META_SUFFIX: Final = ".meta.json"
CHAT_SUFFIX: Final = ".chat.json"
LOCAL_MANIFEST: Final = "index.m3u8"

# static pool kept only as *fallback* when fake-useragent cannot load its data
USER_AGENTS_POOL: Final[list[str]] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
]
