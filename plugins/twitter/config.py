# plugins/twitter/config.py
"""
Configuration for Twitter plugin
"""

from pydantic_settings import BaseSettings
from functools import lru_cache

class TwitterSettings(BaseSettings):
    """
    Twitter-specific settings

    These settings can be configured via environment variables
    prefixed with TWITTER_, e.g., TWITTER_CLIENT_ID
    """
    # Tweet settings
    MAX_TWEET_LENGTH: int = 280

    # OAuth2 (PKCE) settings
    CLIENT_ID: str = ""
    CLIENT_SECRET: str = ""
    REDIRECT_URI: str = "http://localhost:8000/auth/callback"
    SCOPES: str = "tweet.read tweet.write users.read media.write offline.access"
    AUTHORIZE_URL: str = "https://x.com/i/oauth2/authorize"
    TOKEN_URL: str = "https://api.x.com/2/oauth2/token"

    # API endpoints
    API_BASE_URL: str = "https://api.x.com"
    MEDIA_UPLOAD_URL: str = "https://api.x.com/2/media/upload"

    # Upper bound for every outbound call
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # OAuth1 settings
    CONSUMER_KEY: str = ""
    CONSUMER_SECRET: str = ""
    OAUTH1_CALLBACK_URL: str = "http://localhost:8000/auth/twitter/callback"

    class Config:
        env_prefix = "TWITTER_"
        env_file = ".env"
        extra = "ignore"

    @property
    def scope_list(self):
        return self.SCOPES.split()

@lru_cache()
def get_twitter_settings():
    """
    Get the Twitter settings, cached to avoid reloading
    """
    return TwitterSettings()
