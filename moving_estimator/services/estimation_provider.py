import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp
import httpx

from moving_estimator.core.config import Settings
from moving_estimator.core.logger import get_logger

logger = get_logger(__name__)


class EstimationProviderError(Exception):
    """The provider could not be reached or returned an undecodable body."""


class EstimationProvider(ABC):
    """An external estimation service. Whatever it returns is untrusted."""

    name = "provider"

    @abstractmethod
    async def fetch(self, payload: dict) -> Any:
        """Send the wire payload and return the decoded JSON document."""


# -------------------------------------------------------------------
# Hosted estimator function: {quote, distance_meters} in, estimation out
# -------------------------------------------------------------------
ENVELOPE_KEY = "estimation"


class EdgeFunctionEstimationProvider(EstimationProvider):
    name = "edge"

    def __init__(self, url: str, api_key: Optional[str] = None, timeout: float = 15.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch(self, payload: dict) -> Any:
        logger.info(f"Sending estimation request to {self.url}")
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.url, json=payload, headers=self._headers()) as response:
                    response.raise_for_status()
                    text = await response.text()
        except aiohttp.ClientError as e:
            raise EstimationProviderError(f"Estimator request failed: {e}") from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise EstimationProviderError(f"Estimator returned invalid JSON: {text[:200]}") from e

        # Deployed estimator functions answer with {"estimation": {...}}
        if isinstance(document, dict) and set(document) == {ENVELOPE_KEY}:
            return document[ENVELOPE_KEY]
        return document


# -------------------------------------------------------------------
# Direct OpenAI-compatible chat completions
# -------------------------------------------------------------------
SYSTEM_PROMPT = """You are a cost estimator for household moving services in Kenya.
Return ONLY valid JSON with exactly these keys: total (number), breakdown (array of {label, amount, rationale}), clarifyingQuestions (array of {id, field, question}).
Amounts are whole Kenyan Shillings. Consider distance, property size, floors, elevators, inventory and additional services.
Base rates: KES 15,000-25,000 for local moves, +KES 50-100 per km for distance, +20-50% for stairs/no elevator.
The breakdown amounts must sum exactly to total."""


def strip_code_fence(content: str) -> str:
    """Models sometimes wrap JSON in a ```json fence despite instructions."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


class OpenAIEstimationProvider(EstimationProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _request_body(self, payload: dict) -> dict:
        user_content = dict(payload, context="Kenya moving service cost estimation")
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(user_content)},
            ],
            "temperature": 0.1,
            "max_tokens": 1000,
            "response_format": {"type": "json_object"},
        }

    async def fetch(self, payload: dict) -> Any:
        url = f"{self.base_url}/chat/completions"
        logger.info(f"Requesting estimation from {self.model}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._request_body(payload),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise EstimationProviderError(f"OpenAI API error: {e}") from e
        except ValueError as e:
            raise EstimationProviderError(f"OpenAI API returned invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise EstimationProviderError("No content received from OpenAI")

        try:
            return json.loads(strip_code_fence(content))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse model output: {content}")
            raise EstimationProviderError("Model output is not valid JSON") from e


def build_provider(settings: Settings) -> Optional[EstimationProvider]:
    """Pick the provider adapter named by ESTIMATOR_PROVIDER, or None for heuristic only."""
    choice = (settings.ESTIMATOR_PROVIDER or "none").strip().lower()

    if choice == "edge":
        if not settings.ESTIMATOR_URL:
            logger.warning("ESTIMATOR_URL not configured; using heuristic estimates only")
            return None
        return EdgeFunctionEstimationProvider(
            settings.ESTIMATOR_URL,
            api_key=settings.ESTIMATOR_API_KEY,
            timeout=settings.ESTIMATOR_TIMEOUT_SECONDS,
        )

    if choice == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not configured; using heuristic estimates only")
            return None
        return OpenAIEstimationProvider(
            settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            model=settings.OPENAI_MODEL,
            timeout=settings.ESTIMATOR_TIMEOUT_SECONDS,
        )

    if choice != "none":
        logger.warning(f"Unknown ESTIMATOR_PROVIDER '{settings.ESTIMATOR_PROVIDER}'; using heuristic estimates only")
    return None
