"""
Market data gateway - exchange rates and stock prices from an LLM search backend.
Also hosts the image edit call used by the styling collaborator.
Enhanced with tenacity for retry logic on transient transport errors.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import openai
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import get_settings
from exceptions import GatewayUnavailable, MalformedGatewayResponse
from llm_engine import LLMClient, create_llm_for_task
from models import RateSource
from prompts import render_prompt

logger = logging.getLogger(__name__)

# Transport failures worth another attempt; everything else fails fast
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)

_RATE_PATTERNS = {
    'usd': re.compile(r'usd["\s:]+(\d+(?:\.\d+)?)', re.IGNORECASE),
    'jpy': re.compile(r'jpy["\s:]+(\d+(?:\.\d+)?)', re.IGNORECASE),
}
_JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)


@dataclass
class RateQuote:
    """Exchange rates as reported by the backend (TWD per unit)."""
    usd: float
    jpy: float
    sources: List[RateSource] = field(default_factory=list)


def _to_number(value: Any) -> Optional[float]:
    """Coerce a quoted figure to a positive finite float, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(',', '').strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _extract_json_object(text: str) -> Optional[dict]:
    """Find the outermost {...} block in ``text`` and parse it, or None."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_sources(raw: Any) -> List[RateSource]:
    """Turn a reported source list into RateSource entries, skipping junk."""
    sources = []
    if not isinstance(raw, list):
        return sources
    for item in raw:
        if not isinstance(item, dict):
            continue
        uri = item.get('uri') or item.get('url')
        if not uri:
            continue
        sources.append(RateSource(uri=str(uri), title=str(item.get('title') or "Source")))
    return sources


def parse_rate_quote(text: str) -> RateQuote:
    """
    Parse an exchange-rate answer.

    Prefers a JSON object with ``usd``/``jpy`` keys and falls back to scanning
    the text for ``usd: <number>`` style pairs.

    Raises:
        MalformedGatewayResponse: if either rate cannot be found
    """
    data = _extract_json_object(text) or {}
    lowered = {str(k).lower(): v for k, v in data.items()}

    rates = {}
    for key, pattern in _RATE_PATTERNS.items():
        number = _to_number(lowered.get(key))
        if number is None:
            match = pattern.search(text or "")
            number = _to_number(match.group(1)) if match else None
        if number is None:
            raise MalformedGatewayResponse(f"No {key.upper()} rate in response", raw=text)
        rates[key] = number

    return RateQuote(usd=rates['usd'], jpy=rates['jpy'], sources=parse_sources(lowered.get('sources')))


def parse_price_map(text: str) -> Dict[str, float]:
    """
    Parse a ``{"TICKER": price}`` answer. Unusable entries are dropped.

    Raises:
        MalformedGatewayResponse: if the answer holds no JSON object
    """
    data = _extract_json_object(text)
    if data is None:
        raise MalformedGatewayResponse("No JSON object in price response", raw=text)

    prices = {}
    for ticker, value in data.items():
        number = _to_number(value)
        if number is None:
            logger.debug(f"Dropping unusable quote for {ticker}: {value!r}")
            continue
        prices[str(ticker)] = number
    return prices


class MarketDataGateway:
    """
    Fetches exchange rates and stock prices through the LLM backend.
    Every failure surfaces as GatewayUnavailable so callers can keep prior values.
    """

    def __init__(
        self,
        rates_client: Optional[LLMClient] = None,
        prices_client: Optional[LLMClient] = None,
        image_client: Optional[openai.AsyncOpenAI] = None
    ):
        """
        Args:
            rates_client: LLM client for exchange rates (created from settings when omitted)
            prices_client: LLM client for stock prices (created from settings when omitted)
            image_client: OpenAI client for image edits (created lazily when omitted)
        """
        self._rates_client = rates_client
        self._prices_client = prices_client
        self._image_client = image_client

    @property
    def rates_client(self) -> LLMClient:
        if self._rates_client is None:
            self._rates_client = create_llm_for_task("rates")
        return self._rates_client

    @property
    def prices_client(self) -> LLMClient:
        if self._prices_client is None:
            self._prices_client = create_llm_for_task("prices")
        return self._prices_client

    @property
    def image_client(self) -> openai.AsyncOpenAI:
        if self._image_client is None:
            settings = get_settings()
            self._image_client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.gateway_timeout_seconds
            )
        return self._image_client

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True
    )
    async def _ask(client: LLMClient, message: str) -> str:
        """Send one prompt with retry logic."""
        return await client.ainvoke(message)

    async def _query(self, client_name: str, message: str) -> str:
        try:
            client = getattr(self, client_name)
            return await self._ask(client, message)
        except GatewayUnavailable:
            raise
        except Exception as e:
            raise GatewayUnavailable(f"Market data backend failed: {e}") from e

    async def fetch_exchange_rates(self) -> RateQuote:
        """
        Fetch current USD->TWD and JPY->TWD rates.

        Raises:
            GatewayUnavailable: on transport failure or an unparsable answer
        """
        text = await self._query("rates_client", render_prompt("exchange_rates"))
        quote = parse_rate_quote(text)
        logger.info(f"Exchange rates: USD {quote.usd}, JPY {quote.jpy} ({len(quote.sources)} sources)")
        return quote

    async def fetch_stock_prices(self, tickers: Iterable[str]) -> Dict[str, float]:
        """
        Fetch current prices for ``tickers``. Partial maps are normal.

        Raises:
            GatewayUnavailable: on transport failure or an unparsable answer
        """
        unique = list(dict.fromkeys(t for t in tickers if t))
        if not unique:
            return {}

        text = await self._query("prices_client", render_prompt("stock_prices", tickers=", ".join(unique)))
        prices = parse_price_map(text)
        missing = [t for t in unique if t not in prices]
        if missing:
            logger.warning(f"No quote for {len(missing)} tickers: {', '.join(missing)}")
        logger.info(f"Fetched prices for {len(prices)} of {len(unique)} tickers")
        return prices

    async def edit_image(self, image_bytes: bytes, prompt: str, mime_type: str) -> Optional[str]:
        """
        Restyle an image with the configured image model.

        Returns:
            ``data:`` URI of the edited image, or None on any failure
        """
        settings = get_settings()
        extension = mime_type.split('/')[-1] or 'png'
        try:
            response = await self.image_client.images.edit(
                model=settings.image_model,
                image=(f"upload.{extension}", image_bytes, mime_type),
                prompt=prompt
            )
        except openai.OpenAIError as e:
            logger.error(f"Image edit failed: {e}")
            return None

        image_format = getattr(response, 'output_format', None) or 'png'
        for item in response.data or []:
            if item.b64_json:
                return f"data:image/{image_format};base64,{item.b64_json}"
        logger.warning("Image edit returned no inline image data")
        return None
