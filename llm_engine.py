"""
LLM Engine - Model factory for the market data backend.
Supports OpenAI-compatible APIs (cloud) and local Ollama servers.
Uses centralized configuration from config.py.
"""

from typing import Any, Literal, Optional
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage
import logging

from config import get_settings
from prompts import MARKET_DATA_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Factory class for creating LLM clients with different backends.
    Answers are plain text; callers parse the JSON they asked for.
    """

    def __init__(
        self,
        mode: Literal["cloud", "local"] = "cloud",
        model_name: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        system_prompt: str = MARKET_DATA_SYSTEM_PROMPT
    ):
        """
        Initialize the LLM client.

        Args:
            mode: "cloud" for OpenAI-compatible APIs, "local" for Ollama/local server
            model_name: Model name or endpoint ID (e.g., "gpt-4o", "deepseek-chat")
            base_url: Base URL for API
            api_key: API key
            temperature: Sampling temperature (0 keeps quotes deterministic)
            max_tokens: Maximum tokens in response
            timeout: HTTP request timeout in seconds
            system_prompt: System message sent with every request
        """
        self.mode = mode
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.system_prompt = system_prompt

        # Initialize the appropriate LLM
        self.llm = self._create_llm(base_url, api_key)

    def _create_llm(self, base_url: Optional[str], api_key: Optional[str]) -> ChatOpenAI:
        """Create a ChatOpenAI instance based on the mode."""
        settings = get_settings()

        if self.mode == "cloud":
            url = base_url or settings.openai_base_url
            model = self.model_name or settings.openai_model
            key = api_key or settings.openai_api_key

            if not key:
                raise ValueError("API key not found. Set OPENAI_API_KEY environment variable.")
            if not model:
                raise ValueError("Model name not found. Set OPENAI_MODEL environment variable.")

            logger.info(f"Initializing Cloud LLM: {model} at {url or 'OpenAI official'}")
            return ChatOpenAI(
                model=model,
                api_key=key,
                base_url=url,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )

        elif self.mode == "local":
            model = self.model_name or settings.local_model
            url = base_url or settings.local_llm_url
            key = api_key or "ollama"

            logger.info(f"Initializing Local LLM: {model} at {url}")
            return ChatOpenAI(
                model=model,
                base_url=url,
                api_key=key,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )
        else:
            raise ValueError(f"Invalid mode: {self.mode}. Must be 'cloud' or 'local'.")

    async def ainvoke(self, message: str, system_message: Optional[str] = None) -> str:
        """
        Invoke the LLM with a message.

        Args:
            message: User message
            system_message: Optional custom system message (overrides default)

        Returns:
            LLM response as string
        """
        messages = [
            SystemMessage(content=system_message or self.system_prompt),
            HumanMessage(content=message),
        ]
        response = await self.llm.ainvoke(messages)
        return content_to_text(response.content)


def content_to_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of parts) into text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def create_llm_for_task(task: str) -> LLMClient:
    """Create the LLMClient configured for a gateway task ("rates" or "prices")."""
    settings = get_settings()
    mode = settings.llm_mode if settings.llm_mode in ("cloud", "local") else "cloud"
    return LLMClient(
        mode=mode,
        model_name=settings.model_for(task) if mode == "cloud" else None,
        timeout=settings.gateway_timeout_seconds
    )
