"""Rate-limited client for the Transifex translation API."""
import logging
from typing import Dict, List, Optional

import httpx
from aiolimiter import AsyncLimiter

from tent_sync.errors import RemoteError

logger = logging.getLogger(__name__)

TRANSIFEX_API_URL = "https://www.transifex.com/api/2"

# Transifex allows 6000 requests per hour for authenticated users.
DEFAULT_MAX_REQUESTS = 6000
DEFAULT_PERIOD_SECONDS = 3600.0


class TransifexClient:
    """
    Downloads every translation of a resource from a Transifex project.

    All HTTP requests go through one ``AsyncLimiter``. Requests over the
    budget wait until the window admits them; they are never rejected
    locally, so callers need no throttling of their own.
    """

    def __init__(
            self,
            project: str,
            username: Optional[str] = None,
            password: Optional[str] = None,
            base_url: str = TRANSIFEX_API_URL,
            source_language: str = "en",
            timeout: float = 30.0,
            transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.project = project
        self.source_language = source_language
        auth = (username, password) if username and password else None
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"}
        )
        self.rate_limiter = AsyncLimiter(max_rate=DEFAULT_MAX_REQUESTS, time_period=DEFAULT_PERIOD_SECONDS)
        self._languages: Optional[List[str]] = None

    def configure_rate_limit(self, period_seconds: float, max_requests: int) -> None:
        """Allow at most ``max_requests`` requests in any ``period_seconds`` window."""
        if max_requests <= 0 or period_seconds <= 0:
            raise ValueError("Rate limit needs a positive request count and period")
        self.rate_limiter = AsyncLimiter(max_rate=max_requests, time_period=period_seconds)
        logger.info("Transifex rate limit set to %d requests per %.0f seconds", max_requests, period_seconds)

    async def close(self) -> None:
        await self.client.aclose()

    async def _get_json(self, path: str):
        async with self.rate_limiter:
            try:
                response = await self.client.get(path)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                raise RemoteError(f"HTTP {exc.response.status_code} for {path}") from exc
            except httpx.HTTPError as exc:
                raise RemoteError(f"{exc.__class__.__name__} for {path}: {exc}") from exc
            except ValueError as exc:
                raise RemoteError(f"Invalid JSON body for {path}: {exc}") from exc

    async def project_languages(self) -> List[str]:
        """
        Return the language codes of the project, source language first.

        The listing is fetched once per client and reused for every resource.
        """
        if self._languages is None:
            payload = await self._get_json(f"/project/{self.project}/languages/")
            if not isinstance(payload, list):
                raise RemoteError(f"Unexpected language listing for project '{self.project}'")
            languages = [self.source_language]
            for entry in payload:
                code = entry.get("language_code") if isinstance(entry, dict) else None
                if code and code not in languages:
                    languages.append(code)
            self._languages = languages
        return list(self._languages)

    async def download_translations(self, slug: str) -> Dict[str, str]:
        """
        Download the content of ``slug`` in every project language.

        Args:
            slug: The Transifex resource slug.

        Returns:
            A mapping of language code to the raw translated content.

        Raises:
            RemoteError: If any request fails or returns an unexpected body.
        """
        translations: Dict[str, str] = {}
        for language in await self.project_languages():
            payload = await self._get_json(
                f"/project/{self.project}/resource/{slug}/translation/{language}/"
            )
            content = payload.get("content") if isinstance(payload, dict) else None
            if not isinstance(content, str):
                raise RemoteError(f"No content for '{slug}' in '{language}'")
            translations[language] = content
        logger.debug("Downloaded %d translation(s) for '%s'", len(translations), slug)
        return translations
