"""Embedding and generation providers.

A provider is any object with ``generate``, ``generate_stream`` and ``embed``.
Variants are registered by name in ``PROVIDERS`` and chosen from config; adding
a backend means adding a variant, not subclassing.

No call is retried: LiteLLM runs with ``num_retries=0`` and the native Ollama
variant issues exactly one request. Failures surface immediately as
ProviderError (backend said no) or TransportError (network or stream framing).
"""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request
from collections.abc import Iterator
from typing import Any, Callable, Protocol

import litellm

from metamind.config import ConfigError, MetamindConfig
from metamind.errors import ProviderError, TransportError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)


class LLMProvider(Protocol):
    def generate(self, prompt: str) -> str: ...

    def generate_stream(self, prompt: str) -> Iterator[str]: ...

    def embed(self, text: str) -> list[float]: ...


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        ConfigError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise ConfigError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def _vector(value: Any, source: str) -> list[float]:
    if not isinstance(value, list) or not value:
        raise ProviderError(f"{source} returned no embedding")
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError) as exc:
        raise ProviderError(f"{source} returned a non-numeric embedding") from exc


# ------------------------------------------------------------------
# LiteLLM variant
# ------------------------------------------------------------------


class LiteLLMProvider:
    """Route generation and embedding through LiteLLM.

    ``endpoint`` is passed as ``api_base`` so local servers (Ollama, vLLM,
    LM Studio) work with the usual ``provider/model`` strings.
    """

    name = "litellm"

    def __init__(
        self,
        generation_model: str,
        embedding_model: str,
        endpoint: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.generation_model = generation_model
        self.embedding_model = embedding_model
        self.endpoint = endpoint or None
        self.timeout = timeout

    def _completion(self, prompt: str, stream: bool) -> Any:
        try:
            return litellm.completion(
                model=self.generation_model,
                messages=[{"role": "user", "content": prompt}],
                api_base=self.endpoint,
                timeout=self.timeout,
                num_retries=0,
                stream=stream,
            )
        except (litellm.exceptions.APIConnectionError, litellm.exceptions.Timeout) as exc:
            raise TransportError(f"{self.generation_model}: {exc}") from exc
        except Exception as exc:
            raise ProviderError(f"{self.generation_model}: {exc}") from exc

    def generate(self, prompt: str) -> str:
        """Return the full completion for *prompt*."""
        response = self._completion(prompt, stream=False)
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError) as exc:
            raise ProviderError(f"{self.generation_model}: malformed completion") from exc

    def generate_stream(self, prompt: str) -> Iterator[str]:
        """Yield completion fragments as they arrive."""
        stream = self._completion(prompt, stream=True)
        try:
            for part in stream:
                if not part.choices:
                    continue
                text = part.choices[0].delta.content
                if text:
                    yield text
        except (AttributeError, IndexError) as exc:
            raise TransportError(f"{self.generation_model}: malformed stream chunk") from exc
        except (litellm.exceptions.APIConnectionError, litellm.exceptions.Timeout) as exc:
            raise TransportError(f"{self.generation_model}: stream interrupted: {exc}") from exc
        except Exception as exc:
            raise ProviderError(f"{self.generation_model}: {exc}") from exc

    def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*."""
        try:
            response = litellm.embedding(
                model=self.embedding_model,
                input=[text],
                api_base=self.endpoint,
                timeout=self.timeout,
                num_retries=0,
            )
        except (litellm.exceptions.APIConnectionError, litellm.exceptions.Timeout) as exc:
            raise TransportError(f"{self.embedding_model}: {exc}") from exc
        except Exception as exc:
            raise ProviderError(f"{self.embedding_model}: {exc}") from exc

        try:
            value = response.data[0]["embedding"]
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise ProviderError(f"{self.embedding_model}: malformed embedding response") from exc
        return _vector(value, self.embedding_model)


# ------------------------------------------------------------------
# Native Ollama variant
# ------------------------------------------------------------------


class OllamaProvider:
    """Speak Ollama's HTTP API directly (``/api/generate``, ``/api/embeddings``).

    Streaming responses are newline-delimited JSON objects carrying a
    ``response`` fragment and a ``done`` flag.
    """

    name = "ollama"

    def __init__(
        self,
        generation_model: str,
        embedding_model: str,
        endpoint: str = "http://localhost:11434",
        timeout: float = 120.0,
    ) -> None:
        self.generation_model = _bare_model(generation_model)
        self.embedding_model = _bare_model(embedding_model)
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    def _open(self, route: str, body: dict[str, Any]) -> Any:
        request = urllib.request.Request(
            f"{self.endpoint}{route}",
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            return urllib.request.urlopen(request, timeout=self.timeout)
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ProviderError(f"Ollama {route}: HTTP {exc.code}: {detail}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise TransportError(f"Ollama {route}: {exc}") from exc

    def _post_json(self, route: str, body: dict[str, Any]) -> dict[str, Any]:
        with self._open(route, body) as response:
            try:
                raw = response.read()
            except OSError as exc:
                raise TransportError(f"Ollama {route}: {exc}") from exc
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise ProviderError(f"Ollama {route}: invalid JSON response") from exc
        if not isinstance(payload, dict):
            raise ProviderError(f"Ollama {route}: unexpected response shape")
        if "error" in payload:
            raise ProviderError(f"Ollama {route}: {payload['error']}")
        return payload

    def generate(self, prompt: str) -> str:
        payload = self._post_json(
            "/api/generate",
            {"model": self.generation_model, "prompt": prompt, "stream": False},
        )
        return str(payload.get("response", ""))

    def generate_stream(self, prompt: str) -> Iterator[str]:
        """Yield fragments until the ``done`` frame.

        Raises:
            TransportError: On an undecodable frame or a stream that ends
                before ``done``.
        """
        route = "/api/generate"
        with self._open(
            route, {"model": self.generation_model, "prompt": prompt, "stream": True}
        ) as response:
            try:
                for line in response:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        frame = json.loads(line)
                    except ValueError as exc:
                        raise TransportError(f"Ollama {route}: malformed stream frame") from exc
                    if not isinstance(frame, dict):
                        raise TransportError(f"Ollama {route}: malformed stream frame")
                    if "error" in frame:
                        raise ProviderError(f"Ollama {route}: {frame['error']}")
                    text = frame.get("response")
                    if text:
                        yield str(text)
                    if frame.get("done"):
                        return
            except OSError as exc:
                raise TransportError(f"Ollama {route}: stream interrupted: {exc}") from exc
        raise TransportError(f"Ollama {route}: stream ended without a done frame")

    def embed(self, text: str) -> list[float]:
        payload = self._post_json(
            "/api/embeddings", {"model": self.embedding_model, "prompt": text}
        )
        return _vector(payload.get("embedding"), f"Ollama {self.embedding_model}")


def _bare_model(model: str) -> str:
    """Strip a LiteLLM ``ollama/`` or ``ollama_chat/`` prefix."""
    prefix, sep, rest = model.partition("/")
    return rest if sep and prefix in ("ollama", "ollama_chat") else model


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

PROVIDERS: dict[str, Callable[..., LLMProvider]] = {
    "litellm": LiteLLMProvider,
    "ollama": OllamaProvider,
}


def create_provider(cfg: MetamindConfig) -> LLMProvider:
    """Instantiate the provider variant named in *cfg*.

    Raises:
        ConfigError: If the provider name is not registered or a hosted
            model is missing its API key.
    """
    name = cfg.provider.name.strip().lower()
    factory = PROVIDERS.get(name)
    if factory is None:
        raise ConfigError(
            f"Unknown provider '{cfg.provider.name}'. "
            f"Choose one of: {', '.join(sorted(PROVIDERS))}"
        )
    if name == "litellm":
        validate_api_key(cfg.generation.model)
        validate_api_key(cfg.embedding.model)
    logger.debug("Using %s provider at %s", name, cfg.provider.endpoint)
    return factory(
        generation_model=cfg.generation.model,
        embedding_model=cfg.embedding.model,
        endpoint=cfg.provider.endpoint,
        timeout=cfg.provider.timeout,
    )
