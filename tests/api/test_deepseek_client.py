"""
Tests for DeepSeekClient.
"""

import pytest

from tunemood.api.deepseek_client import GENRE_SYSTEM_PROMPT, DeepSeekClient, split_genre_list
from tunemood.utils.errors import ProviderRejected, ProviderUnavailable


@pytest.fixture
def client(fast_limiter):
    return DeepSeekClient(api_key="ds-key", rate_limiter=fast_limiter)


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestSplitGenreList:
    """Test completion parsing."""

    def test_comma_separated(self):
        assert split_genre_list("Jazz, Soul, Blues") == ["jazz", "soul", "blues"]

    def test_newlines_bullets_and_punctuation(self):
        assert split_genre_list("- Folk\n- Indie Rock.\n") == ["folk", "indie rock"]

    def test_empty(self):
        assert split_genre_list("  ") == []


class TestDeepSeekClient:
    """Test chat completion requests."""

    @pytest.mark.asyncio
    async def test_classify_genres_request_shape(self, client, fake_session, make_response):
        session = fake_session([make_response(payload=completion("folk, indie"))])
        client.session = session

        genres = await client.classify_genres("Song", "Artist", "some lyrics")

        assert genres == ["folk", "indie"]
        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == "https://api.deepseek.com/v1/chat/completions"
        assert call["headers"]["Authorization"] == "Bearer ds-key"
        body = call["json"]
        assert body["model"] == "deepseek-chat"
        assert body["temperature"] == 0.3
        assert body["max_tokens"] == 100
        assert body["messages"][0] == {"role": "system", "content": GENRE_SYSTEM_PROMPT}
        assert "some lyrics" in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_completion_without_content_is_rejected(self, client, fake_session, make_response):
        client.session = fake_session([make_response(payload={"choices": []})])

        with pytest.raises(ProviderRejected):
            await client.complete("system", "user")

    @pytest.mark.asyncio
    async def test_error_body_is_rejected(self, client, fake_session, make_response):
        client.session = fake_session([make_response(payload={"error": {"message": "bad model"}})])

        with pytest.raises(ProviderRejected):
            await client.complete("system", "user")

    @pytest.mark.asyncio
    async def test_rate_limited_is_unavailable(self, client, fake_session, make_response):
        client.session = fake_session([make_response(status=429)])

        with pytest.raises(ProviderUnavailable):
            await client.complete("system", "user")
