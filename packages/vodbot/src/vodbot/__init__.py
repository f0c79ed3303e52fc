"""VodBot - archive a Twitch channel's VODs, clips and chat to local storage."""

__version__ = "0.1.0"
