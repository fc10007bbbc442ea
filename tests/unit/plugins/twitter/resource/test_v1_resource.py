"""
Unit tests for the Twitter OAuth1 resource plugin
"""

import pytest
import requests
import tweepy
from unittest.mock import MagicMock, patch

from auth.session_store import AccessCredentials
from errors import MediaUploadFailed, PostCreationFailed, ProfileLookupFailed, RateLimited
from plugins.twitter.resource.v1 import TwitterV1ResourcePlugin

pytestmark = [pytest.mark.unit]

CREDENTIALS = AccessCredentials(access_token="access-token", token_secret="access-secret")


def http_error(error_class, status_code, message):
    response = MagicMock()
    response.status_code = status_code
    response.reason = message
    response.json.return_value = {"errors": [{"code": 88, "message": message}]}
    return error_class(response)


@pytest.fixture
def plugin(twitter_settings):
    return TwitterV1ResourcePlugin(settings=twitter_settings)


class TestTwitterV1ResourcePlugin:
    """Test the TwitterV1ResourcePlugin class"""

    def test_service_name(self, plugin):
        assert plugin.service_name == "twitter_v1"

    def test_get_client_uses_user_credentials(self, plugin, twitter_settings):
        client = plugin.get_client(CREDENTIALS)
        assert client.consumer_key == twitter_settings.CONSUMER_KEY
        assert client.access_token == "access-token"
        assert client.access_token_secret == "access-secret"

    @pytest.mark.asyncio
    async def test_publish_with_image(self, plugin):
        mock_api = MagicMock()
        mock_api.media_upload.return_value = MagicMock(media_id_string="M1")
        mock_client = MagicMock()
        mock_client.create_tweet.return_value = MagicMock(data={"id": "1", "text": "cat"})

        with patch.object(plugin, 'get_api', return_value=mock_api), \
                patch.object(plugin, 'get_client', return_value=mock_client):
            result = await plugin.publish(CREDENTIALS, "cat", "/tmp/cat.png")

        assert result == {"data": {"id": "1", "text": "cat"}}
        mock_api.media_upload.assert_called_once_with(filename="/tmp/cat.png")
        mock_client.create_tweet.assert_called_once_with(text="cat", media_ids=["M1"], user_auth=True)

    @pytest.mark.asyncio
    async def test_create_post_text_only(self, plugin):
        mock_client = MagicMock()
        mock_client.create_tweet.return_value = MagicMock(data={"id": "1", "text": "hello"})

        with patch.object(plugin, 'get_client', return_value=mock_client):
            await plugin.create_post(CREDENTIALS, {"text": "hello"})

        mock_client.create_tweet.assert_called_once_with(text="hello", media_ids=None, user_auth=True)

    @pytest.mark.asyncio
    async def test_upload_failure_skips_post(self, plugin):
        mock_api = MagicMock()
        mock_api.media_upload.side_effect = tweepy.TweepyException("upload broke")
        mock_client = MagicMock()

        with patch.object(plugin, 'get_api', return_value=mock_api), \
                patch.object(plugin, 'get_client', return_value=mock_client):
            with pytest.raises(MediaUploadFailed) as exc_info:
                await plugin.publish(CREDENTIALS, "cat", "/tmp/cat.png")

        assert exc_info.value.upstream_body == "upload broke"
        mock_client.create_tweet.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_post_forbidden(self, plugin):
        mock_client = MagicMock()
        mock_client.create_tweet.side_effect = http_error(tweepy.Forbidden, 403, "Forbidden")

        with patch.object(plugin, 'get_client', return_value=mock_client):
            with pytest.raises(PostCreationFailed) as exc_info:
                await plugin.create_post(CREDENTIALS, {"text": "hello"})

        assert exc_info.value.upstream_status == 403

    @pytest.mark.asyncio
    async def test_get_me(self, plugin):
        mock_client = MagicMock()
        mock_client.get_me.return_value = MagicMock(data=MagicMock(data={"id": "7", "username": "poster"}))

        with patch.object(plugin, 'get_client', return_value=mock_client):
            result = await plugin.get_me(CREDENTIALS)

        assert result == {"data": {"id": "7", "username": "poster"}}

    @pytest.mark.asyncio
    async def test_get_me_rate_limited(self, plugin):
        mock_client = MagicMock()
        mock_client.get_me.side_effect = http_error(tweepy.TooManyRequests, 429, "Too Many Requests")

        with patch.object(plugin, 'get_client', return_value=mock_client):
            with pytest.raises(RateLimited) as exc_info:
                await plugin.get_me(CREDENTIALS)

        assert exc_info.value.upstream_status == 429

    @pytest.mark.asyncio
    async def test_create_post_request_has_timeout(self, plugin, twitter_settings):
        """The tweepy client session passes the configured timeout to requests"""
        with patch("requests.Session.request",
                   side_effect=requests.exceptions.ReadTimeout("timed out")) as mock_request:
            with pytest.raises(PostCreationFailed):
                await plugin.create_post(CREDENTIALS, {"text": "hello"})

        assert mock_request.call_args.kwargs["timeout"] == twitter_settings.HTTP_TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_get_me_request_has_timeout(self, plugin, twitter_settings):
        with patch("requests.Session.request",
                   side_effect=requests.exceptions.ConnectTimeout("timed out")) as mock_request:
            with pytest.raises(ProfileLookupFailed):
                await plugin.get_me(CREDENTIALS)

        assert mock_request.call_args.kwargs["timeout"] == twitter_settings.HTTP_TIMEOUT_SECONDS
