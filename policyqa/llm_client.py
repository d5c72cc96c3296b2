"""Ollama client wrapper with error handling.

One client serves both remote capabilities of the pipeline: ``embed`` for
the embedding provider and ``generate`` for the generative model.
"""
from typing import Dict, List, Optional

import httpx
import structlog

from policyqa import config
from policyqa.errors import ProviderError

logger = structlog.get_logger()


class OllamaClient:
    """Synchronous client for interacting with the Ollama API."""

    def __init__(
        self,
        base_url: str = None,
        chat_model: str = None,
        embedding_model: str = None,
        timeout: float = None,
        temperature: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            chat_model: Model used by generate() (defaults to config.CHAT_MODEL)
            embedding_model: Model used by embed() (defaults to config.EMBEDDING_MODEL)
            timeout: Request timeout in seconds
            temperature: Sampling temperature for generate()
            transport: Optional httpx transport, mainly for tests
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.chat_model = chat_model or config.CHAT_MODEL
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.temperature = config.TEMPERATURE if temperature is None else temperature
        self._transport = transport

    def _client(self, timeout: float = None) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
        json_format: bool = False,
    ) -> Dict:
        """Send a non-streaming chat completion request to Ollama.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to the client's chat model)
            temperature: Sampling temperature (0.0-2.0)
            json_format: Ask Ollama to constrain the output to JSON

        Returns:
            Response dict with 'message' containing 'content'

        Raises:
            ProviderError: On connection or HTTP errors
        """
        model = model or self.chat_model

        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}
        if json_format:
            payload["format"] = "json"

        try:
            with self._client() as client:
                logger.info(
                    "ollama_chat_request",
                    model=model,
                    message_count=len(messages),
                )

                response = client.post("/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()

                logger.info(
                    "ollama_chat_response",
                    model=model,
                    response_length=len(data.get("message", {}).get("content", "")),
                )

                return data

        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise ProviderError(f"Ollama is unreachable at {self.base_url}") from e
        except httpx.HTTPStatusError as e:
            logger.error("ollama_http_error", error=str(e), status_code=e.response.status_code)
            raise ProviderError(f"Ollama chat request failed: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("ollama_chat_error", error=str(e), error_type=type(e).__name__)
            raise ProviderError(f"Ollama chat request failed: {e}") from e

    def generate(self, prompt: str) -> str:
        """Run a single-turn completion and return the raw answer text.

        Raises:
            ProviderError: If the call fails or the reply has no content
        """
        data = self.chat(
            [{"role": "user", "content": prompt}],
            temperature=self.temperature,
            json_format=True,
        )
        content = data.get("message", {}).get("content")
        if not isinstance(content, str):
            raise ProviderError("Ollama chat response contained no message content")
        return content

    def embeddings(self, prompt: str, model: str = None) -> Dict:
        """Generate embeddings for a text prompt.

        Args:
            prompt: Text to embed
            model: Model to use (defaults to the client's embedding model)

        Returns:
            Response dict with 'embedding' list

        Raises:
            ProviderError: On connection or HTTP errors
        """
        model = model or self.embedding_model

        payload = {
            "model": model,
            "prompt": prompt,
        }

        try:
            with self._client() as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=model,
                    prompt_length=len(prompt),
                )

                response = client.post("/api/embeddings", json=payload)
                response.raise_for_status()
                data = response.json()

                logger.debug(
                    "ollama_embedding_response",
                    model=model,
                    dimension=len(data.get("embedding", [])),
                )

                return data

        except (httpx.HTTPError, ValueError) as e:
            logger.error("ollama_embedding_error", error=str(e), error_type=type(e).__name__)
            raise ProviderError(f"Ollama embedding request failed: {e}") from e

    def embed(self, text: str) -> List[float]:
        """Return the embedding vector for text (empty list if none came back)."""
        return self.embeddings(text).get("embedding") or []

    def list_models(self) -> List[str]:
        """List all available Ollama models.

        Raises:
            ProviderError: On connection or HTTP errors
        """
        try:
            with self._client(timeout=5.0) as client:
                response = client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                return [m["name"] for m in data.get("models", [])]
        except (httpx.HTTPError, ValueError) as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise ProviderError(f"Could not list Ollama models: {e}") from e
