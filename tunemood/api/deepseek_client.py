"""
DeepSeek API Client

Text-completion provider used for lyric-based genre analysis. Speaks the
OpenAI-compatible chat completions protocol.
"""

from typing import Any, Dict, List, Optional

import structlog

from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter
from ..utils.errors import ProviderError, ProviderRejected

logger = structlog.get_logger(__name__)

GENRE_SYSTEM_PROMPT = (
    "You are a music genre analysis expert. Analyze the following song and "
    "return ONLY the main genres that best describe the music. Return the "
    "genres as a comma-separated list."
)


def split_genre_list(content: str) -> List[str]:
    """
    Split a comma-separated completion into genre strings.

    Empty items and surrounding punctuation are dropped; order is kept.
    """
    genres = []
    for item in content.replace("\n", ",").split(","):
        cleaned = item.strip().strip(".-*\"'").strip()
        if cleaned:
            genres.append(cleaned.lower())
    return genres


class DeepSeekClient(BaseAPIClient):
    """
    DeepSeek chat completion client with unified rate limiting.
    """

    BASE_URL = "https://api.deepseek.com/v1"

    def __init__(
        self,
        api_key: str,
        rate_limiter: Optional[UnifiedRateLimiter] = None,
        model: str = "deepseek-chat",
        base_url: Optional[str] = None,
        timeout: int = 30
    ):
        """
        Initialize DeepSeek client.

        Args:
            api_key: DeepSeek API key
            rate_limiter: Rate limiter instance (optional)
            model: Chat model name
            base_url: Override for the API root
            timeout: Request timeout in seconds
        """
        if rate_limiter is None:
            rate_limiter = UnifiedRateLimiter.for_deepseek()

        super().__init__(
            base_url=base_url or self.BASE_URL,
            rate_limiter=rate_limiter,
            timeout=timeout,
            service_name="DeepSeek"
        )
        self.api_key = api_key
        self.model = model

    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[ProviderError]:
        if not isinstance(data, dict):
            return ProviderRejected(self.service_name, "unexpected payload")
        error = data.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            return ProviderRejected(self.service_name, message)
        return None

    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        temperature: float = 0.3,
        max_tokens: int = 100
    ) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: System message
            user_text: User message
            temperature: Sampling temperature
            max_tokens: Completion length cap

        Returns:
            Content of the first choice
        """
        data = await self._make_request(
            "/chat/completions",
            method="POST",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json_body={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )

        try:
            return data["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderRejected(self.service_name, "completion without content") from e

    async def classify_genres(self, track: str, artist: str, lyrics: str) -> List[str]:
        """
        Ask the model for the genres of a song given its lyrics.

        Returns:
            Raw genre strings in the order the model listed them
        """
        user_text = f"Track: {track}\nArtist: {artist}\nLyrics:\n{lyrics}"
        content = await self.complete(GENRE_SYSTEM_PROMPT, user_text)
        genres = split_genre_list(content)
        self.logger.debug("Completion genres", track=track, artist=artist, genres=genres)
        return genres
