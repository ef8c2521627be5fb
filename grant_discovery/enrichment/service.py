"""AI enrichment collaborator: Gemini generateContent over HTTP."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import EnrichmentUnavailableError
from ..models import Grant, Profile
from .prompts import build_matching_prompt
from .schema import AIMatchAssessment, extract_json, parse_assessments

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-1.5-flash"

TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class EnrichmentRetryableError(Exception):
    """Transient failure worth another attempt (429, 5xx, unusable output)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EnrichmentService(ABC):
    """Supplies narrative annotations for grants that already passed eligibility."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def enrich(self, grants: List[Grant], profile: Profile) -> Dict[str, AIMatchAssessment]:
        """Assess grants for a profile.

        Returns:
            Assessments keyed by grant id. Grants the service could not assess
            are absent.

        Raises:
            EnrichmentUnavailableError: If nothing could be assessed.
        """
        pass


class GeminiEnrichmentService(EnrichmentService):
    """Batches grants into matching prompts and validates each JSON reply."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        batch_size: int = 30,
        max_attempts: int = 3,
        temperature: float = 0.2,
        max_output_tokens: int = 4096,
        timeout: httpx.Timeout = TIMEOUT,
        retry_wait=None,
    ):
        """Initialize service.

        Args:
            api_key: Gemini API key (from env: GEMINI_API_KEY)
            model: Gemini model name
            batch_size: Max grants per request
            max_attempts: Attempts per batch before giving up
            retry_wait: tenacity wait strategy; exponential backoff by default
        """
        self.api_key = api_key
        self.model = model
        self.batch_size = max(1, batch_size)
        self.max_attempts = max_attempts
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)

    @classmethod
    def from_config(cls, config) -> "GeminiEnrichmentService":
        return cls(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            batch_size=config.enrichment_batch_size,
        )

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/{self.model}:generateContent"

    async def enrich(self, grants: List[Grant], profile: Profile) -> Dict[str, AIMatchAssessment]:
        if not grants:
            return {}
        if not self.api_key:
            raise EnrichmentUnavailableError("Gemini API key not configured")

        assessments: Dict[str, AIMatchAssessment] = {}
        failures: List[str] = []

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for start in range(0, len(grants), self.batch_size):
                batch = grants[start:start + self.batch_size]
                try:
                    assessments.update(await self._assess_with_retry(client, batch, profile))
                except (EnrichmentRetryableError, httpx.HTTPError) as exc:
                    failures.append(str(exc))
                    logger.error(
                        "[%s] batch_start=%d size=%d result=failure error='%s'",
                        self.name, start, len(batch), exc,
                    )

        if not assessments and failures:
            raise EnrichmentUnavailableError(
                f"All {len(failures)} enrichment batch(es) failed: {failures[-1]}"
            )
        return assessments

    async def _assess_with_retry(
        self,
        client: httpx.AsyncClient,
        batch: List[Grant],
        profile: Profile,
    ) -> Dict[str, AIMatchAssessment]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type((EnrichmentRetryableError, httpx.TransportError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._assess_batch(client, batch, profile)
        return {}

    async def _assess_batch(
        self,
        client: httpx.AsyncClient,
        batch: List[Grant],
        profile: Profile,
    ) -> Dict[str, AIMatchAssessment]:
        """One request for one batch; raises EnrichmentRetryableError on transient failure."""
        prompt = build_matching_prompt(batch, profile)
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

        start = time.monotonic()
        response = await client.post(
            self.endpoint,
            json=body,
            headers={"x-goog-api-key": self.api_key},
        )
        duration = time.monotonic() - start

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                "[%s] model=%s status=%d duration=%.2fs result=retryable",
                self.name, self.model, response.status_code, duration,
            )
            raise EnrichmentRetryableError(
                f"Gemini returned HTTP {response.status_code}", status_code=response.status_code
            )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as exc:
            raise EnrichmentRetryableError(
                f"Non-JSON Gemini response body: {response.text[:100]!r}",
                status_code=response.status_code,
            ) from exc

        text = _response_text(data)
        payload = extract_json(text)
        if payload is None:
            raise EnrichmentRetryableError(
                f"Unparseable Gemini response for {len(batch)} grant(s): {text[:100]!r}"
            )

        assessments = parse_assessments(payload, [g.id for g in batch])
        if not assessments:
            raise EnrichmentRetryableError(f"No valid assessments for {len(batch)} grant(s)")

        logger.info(
            "[%s] model=%s status=%d duration=%.2fs result=success assessed=%d/%d",
            self.name, self.model, response.status_code, duration, len(assessments), len(batch),
        )
        return assessments


def _response_text(data) -> str:
    """Concatenated text parts of the first candidate; empty if there is none."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    return "".join(
        part["text"] for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
