"""
Unit tests for the authenticated poster
"""

import io
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import UploadFile

from auth.session_store import AccessCredentials, TokenRecord
from errors import InvalidPost, MediaUploadFailed, NotAuthenticated
from plugins.twitter.poster import TwitterPoster, stage_upload, temporary_image
from plugins.twitter.resource.api import TwitterApiResourcePlugin

pytestmark = [pytest.mark.unit]

MEDIA_PATH = "/2/media/upload"
TWEETS_PATH = "/2/tweets"


@pytest.fixture
def poster(token_store, twitter_settings, mock_api):
    def resource_factory(service_name, **kwargs):
        assert service_name == "twitter_api"
        return TwitterApiResourcePlugin(transport=mock_api.transport, **kwargs)

    return TwitterPoster(token_store, settings=twitter_settings, resource_factory=resource_factory)


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "upload.png"
    path.write_bytes(b"image-bytes")
    return str(path)


class TestStageUpload:
    """Test staging of uploaded files"""

    def test_copies_content_and_keeps_extension(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"image-bytes"), filename="cat.jpg")
        path = stage_upload(upload, str(tmp_path / "uploads"))
        try:
            assert path.endswith(".jpg")
            assert os.path.dirname(path) == str(tmp_path / "uploads")
            with open(path, "rb") as f:
                assert f.read() == b"image-bytes"
        finally:
            os.remove(path)

    def test_failed_copy_leaves_no_file(self, tmp_path):
        class BrokenStream(io.BytesIO):
            def read(self, *args):
                raise OSError("client went away")

        upload_dir = tmp_path / "uploads"
        upload = UploadFile(file=BrokenStream(b"image-bytes"), filename="cat.jpg")

        with pytest.raises(OSError):
            stage_upload(upload, str(upload_dir))
        assert os.listdir(upload_dir) == []

    def test_temporary_image_removes_file_on_error(self, image_file):
        with pytest.raises(RuntimeError):
            with temporary_image(image_file):
                raise RuntimeError("boom")
        assert not os.path.exists(image_file)


class TestValidate:
    """Test caption validation"""

    def test_strips_caption(self, poster):
        assert poster.validate("  hi  ") == "hi"

    def test_empty_caption_without_image(self, poster):
        with pytest.raises(InvalidPost):
            poster.validate("   ")

    def test_empty_caption_with_image(self, poster):
        assert poster.validate("", has_image=True) == ""

    def test_caption_too_long(self, poster, twitter_settings):
        with pytest.raises(InvalidPost):
            poster.validate("x" * (twitter_settings.MAX_TWEET_LENGTH + 1))


class TestPost:
    """Test posting on behalf of a session"""

    @pytest.mark.asyncio
    async def test_text_post_returns_platform_json(self, poster, token_store, mock_api):
        token_store.put("sid", TokenRecord(access_token="tok1"))
        body = {"data": {"id": "1", "text": "hello"}}
        mock_api.respond("POST", TWEETS_PATH, status_code=201, json=body)

        assert await poster.post("sid", "hello") == body
        assert mock_api.calls("POST", TWEETS_PATH)[0].headers["Authorization"] == "Bearer tok1"

    @pytest.mark.asyncio
    async def test_unauthenticated_makes_no_call(self, poster, mock_api, image_file):
        with pytest.raises(NotAuthenticated):
            await poster.post("sid", "hello", image_file)
        assert mock_api.requests == []
        assert not os.path.exists(image_file)

    @pytest.mark.asyncio
    async def test_image_removed_after_success(self, poster, token_store, mock_api, image_file):
        token_store.put("sid", TokenRecord(access_token="tok1"))
        mock_api.respond("POST", MEDIA_PATH, json={"data": {"id": "M1"}})
        mock_api.respond("POST", TWEETS_PATH, status_code=201, json={"data": {"id": "2"}})

        await poster.post("sid", "cat", image_file)
        assert not os.path.exists(image_file)

    @pytest.mark.asyncio
    async def test_failed_upload_skips_post_and_removes_image(self, poster, token_store, mock_api, image_file):
        token_store.put("sid", TokenRecord(access_token="tok1"))
        mock_api.respond("POST", MEDIA_PATH, status_code=400, json={"errors": [{"message": "bad"}]})

        with pytest.raises(MediaUploadFailed):
            await poster.post("sid", "cat", image_file)

        assert mock_api.calls("POST", TWEETS_PATH) == []
        assert not os.path.exists(image_file)

    @pytest.mark.asyncio
    async def test_invalid_caption_makes_no_call(self, poster, token_store, mock_api):
        token_store.put("sid", TokenRecord(access_token="tok1"))
        with pytest.raises(InvalidPost):
            await poster.post("sid", "")
        assert mock_api.requests == []

    @pytest.mark.asyncio
    async def test_oauth1_credentials_use_v1_plugin(self, token_store, twitter_settings):
        resource = MagicMock()
        resource.service_name = "twitter_v1"
        resource.publish = AsyncMock(return_value={"data": {"id": "3"}})
        factory = MagicMock(return_value=resource)
        poster = TwitterPoster(token_store, settings=twitter_settings, resource_factory=factory)
        token_store.put("sid", TokenRecord(access_token="tok", token_secret="secret"))

        assert await poster.post("sid", "hello") == {"data": {"id": "3"}}
        factory.assert_called_once_with("twitter_v1", settings=twitter_settings)
        resource.publish.assert_awaited_once_with(
            AccessCredentials(access_token="tok", token_secret="secret"), "hello", None
        )

    @pytest.mark.asyncio
    async def test_publish_with_explicit_credentials(self, poster, mock_api):
        mock_api.respond("POST", TWEETS_PATH, status_code=201, json={"data": {"id": "4"}})
        result = await poster.publish(AccessCredentials(access_token="captured"), "later")

        assert result == {"data": {"id": "4"}}
        assert mock_api.requests[0].headers["Authorization"] == "Bearer captured"


class TestGetMe:
    @pytest.mark.asyncio
    async def test_requires_session_token(self, poster, mock_api):
        with pytest.raises(NotAuthenticated):
            await poster.get_me("sid")
        assert mock_api.requests == []
