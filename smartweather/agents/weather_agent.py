# smartweather/agents/weather_agent.py

import asyncio
import json
from datetime import date, datetime
from typing import Awaitable, Callable, List, Optional, Protocol

from pydantic import ValidationError
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_fixed

from smartweather.core.config import Settings
from smartweather.core.exceptions import CredentialMissingError, OracleResponseInvalidError
from smartweather.core.logging_config import logger
from smartweather.models.schemas import (
    WEATHER_RESPONSE_SCHEMA,
    DailyForecast,
    LocationDescriptor,
    Source,
    WeatherReport,
    WeatherSnapshot,
)
from smartweather.services.gemini_client import GeminiClient, OracleReply

DEFAULT_SOURCE_TITLE = "Weather Source"
DEFAULT_SOURCE_URI = "#"

CONNECTION_TEST_PROMPT = "Respond with 'OK' if you can read this."


class Oracle(Protocol):
    async def generate_content(
        self,
        prompt: str,
        *,
        use_search: bool = False,
        json_output: bool = False,
        response_schema: Optional[dict] = None,
    ) -> OracleReply: ...


def build_weather_prompt(location: LocationDescriptor, search_enabled: bool) -> str:
    prompt = f"""
    Find the current precise weather and 5-day forecast for {location.describe()}.
    Act as a professional meteorologist. Return a strictly valid JSON object in Traditional Chinese (Taiwan).

    The JSON structure must be:
    {{
      "locationName": "City/District Name",
      "current": {{
        "temp": number,
        "condition": "Condition like Sunny, Rainy, etc.",
        "humidity": number,
        "windSpeed": number,
        "feelsLike": number,
        "uvIndex": number
      }},
      "forecast": [
        {{ "date": "YYYY-MM-DD", "high": number, "low": number, "condition": "Condition" }}
      ],
      "aiInsight": "A brief summary of today's weather patterns.",
      "clothingAdvice": "Specific advice on what to wear today.",
      "activityAdvice": "Advice on outdoor activities based on weather."
    }}

    Ensure all temperatures are in Celsius.
    """

    if not search_enabled:
        prompt += """
    Live web search is unavailable. Base the answer on your own knowledge of the
    typical climate for this place and season, and state in "aiInsight" that
    this is a prediction, not an observation.
    """

    return prompt


def format_local_time(moment: datetime, locale: str) -> str:
    """Time-of-day string in the style of the browser's toLocaleTimeString."""
    if locale.lower() == "zh-tw":
        period = "上午" if moment.hour < 12 else "下午"
        hour = moment.hour % 12 or 12
        return f"{period}{hour}:{moment.minute:02d}:{moment.second:02d}"
    return moment.strftime("%H:%M:%S")


def extract_sources(reply: OracleReply) -> List[Source]:
    sources = []
    for chunk in reply.grounding_chunks:
        web = chunk.get("web") or {}
        sources.append(
            Source(
                title=web.get("title") or DEFAULT_SOURCE_TITLE,
                uri=web.get("uri") or DEFAULT_SOURCE_URI,
            )
        )
    return sources


def _order_forecast(forecast: List[DailyForecast]) -> List[DailyForecast]:
    # Only reorder when every entry carries a real ISO date
    try:
        keyed = [(date.fromisoformat(day.date), day) for day in forecast]
    except ValueError:
        return forecast
    return [day for _, day in sorted(keyed, key=lambda pair: pair[0])]


class WeatherAgent:
    """
    Turns a LocationDescriptor into a WeatherSnapshot by asking Gemini.

    Retry policy:
      - search attempt fails -> one immediate non-search attempt, budget untouched
      - non-search attempts run under tenacity: remaining_retries + 1 tries,
        fixed backoff between them, and the last error propagates as-is
    """

    def __init__(
        self,
        settings: Settings,
        oracle: Optional[Oracle] = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.api_key = settings.GEMINI_API_KEY
        self.clock = clock
        self.sleep = sleep

        if oracle is None and self.api_key:
            oracle = GeminiClient(
                api_key=self.api_key,
                model=settings.GEMINI_MODEL,
                base_url=settings.GEMINI_BASE_URL,
                timeout=settings.GEMINI_TIMEOUT_SECONDS,
            )
        self.oracle = oracle

    # ---------------- Weather Fetch ----------------

    async def fetch_weather(
        self,
        location: LocationDescriptor,
        search_enabled: bool = True,
        remaining_retries: Optional[int] = None,
    ) -> WeatherSnapshot:
        if not self.api_key or self.oracle is None:
            raise CredentialMissingError()

        if remaining_retries is None:
            remaining_retries = self.settings.WEATHER_MAX_RETRIES
        if remaining_retries < 0:
            raise ValueError("remaining_retries must be non-negative")

        # One search attempt; any failure drops to non-search mode for free
        if search_enabled:
            try:
                return await self._attempt(location, search_enabled=True)
            except Exception as exc:
                logger.warning(
                    f"WeatherAgent: search attempt for {location.describe()!r} "
                    f"failed ({exc}); retrying without search"
                )

        max_attempts = remaining_retries + 1
        backoff = self.settings.WEATHER_RETRY_BACKOFF_SECONDS

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"WeatherAgent: attempt for {location.describe()!r} failed "
                f"({retry_state.outcome.exception()}); retrying in {backoff}s "
                f"({max_attempts - retry_state.attempt_number} left)"
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_fixed(backoff),
                sleep=self.sleep,
                before_sleep=log_retry,
                reraise=True,
            ):
                with attempt:
                    return await self._attempt(location, search_enabled=False)
        except Exception as exc:
            logger.error(f"WeatherAgent: giving up on {location.describe()!r}: {exc}")
            raise

    async def _attempt(
        self, location: LocationDescriptor, search_enabled: bool
    ) -> WeatherSnapshot:
        prompt = build_weather_prompt(location, search_enabled)

        reply = await self.oracle.generate_content(
            prompt,
            use_search=search_enabled,
            json_output=True,
            response_schema=None if search_enabled else WEATHER_RESPONSE_SCHEMA,
        )

        report = self._parse_report(reply.text)
        sources = extract_sources(reply)

        snapshot = WeatherSnapshot(
            **report.model_dump(exclude={"forecast"}),
            forecast=_order_forecast(report.forecast),
            lastUpdated=format_local_time(self.clock(), self.settings.WEATHER_LOCALE),
            isRealtime=search_enabled and len(sources) > 0,
            sources=sources,
        )

        logger.info(
            f"WeatherAgent: {snapshot.locationName} -> {snapshot.current.temp}°C "
            f"{snapshot.current.condition}, realtime={snapshot.isRealtime}, "
            f"sources={len(sources)}"
        )
        return snapshot

    def _parse_report(self, text: str) -> WeatherReport:
        if not text or not text.strip():
            raise OracleResponseInvalidError("Gemini returned an empty reply")

        # With the search tool on, Gemini sometimes wraps the JSON in a ```json
        # fence or puts a sentence in front of it; keep the outermost object
        text = text.strip()
        if not text.startswith("{"):
            start, end = text.find("{"), text.rfind("}")
            if start != -1 and end > start:
                text = text[start:end + 1]

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OracleResponseInvalidError(f"Gemini reply is not valid JSON: {exc}") from exc

        try:
            return WeatherReport.model_validate(data)
        except ValidationError as exc:
            raise OracleResponseInvalidError(
                f"Gemini reply does not match the weather schema: {exc}"
            ) from exc

    # ---------------- Health Probe ----------------

    async def test_connection(self) -> bool:
        """
        Minimal "respond with OK" round-trip. Tells a dead key apart from an
        exhausted search quota. Never raises.
        """
        if not self.api_key or self.oracle is None:
            logger.warning("WeatherAgent: connection test skipped, no API key configured")
            return False

        try:
            reply = await self.oracle.generate_content(CONNECTION_TEST_PROMPT)
        except Exception as exc:
            logger.error(f"WeatherAgent: connection test failed: {exc}")
            return False

        return "OK" in (reply.text or "")
