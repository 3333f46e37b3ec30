import logging

import requests

from errors import LlmError


logger = logging.getLogger(__name__)

_PLACEHOLDER_KEYS = {
    "your_mistral_api_key_here",
    "your_gemini_api_key",
    "your_gemini_api_key_here",
}


def _usable_key(value) -> str:
    key = (value or "").strip()
    if not key or key in _PLACEHOLDER_KEYS:
        return ""
    return key


def _extract_response_text(response) -> str:
    # Prefer direct text field if present.
    text = (getattr(response, "text", "") or "").strip()
    if text:
        return text
    # Fallback: join candidate parts.
    candidates = getattr(response, "candidates", None) or []
    parts = []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        candidate_parts = getattr(content, "parts", None) or []
        for part in candidate_parts:
            value = getattr(part, "text", "") or ""
            if value:
                parts.append(value.strip())
    return "\n".join(parts).strip()


class MistralClient:
    """Chat-completions client for the Mistral HTTP API."""

    name = "mistral"

    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.url = base_url.rstrip("/") + "/v1/chat/completions"
        self.timeout = timeout

    def complete(self, prompt: str, temperature: float = 0.7) -> str:
        try:
            response = requests.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": temperature,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            text = payload["choices"][0]["message"]["content"]
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
            raise LlmError(f"Mistral request failed: {exc}") from exc
        if isinstance(text, list):
            # Some models return the message as typed content chunks.
            text = "".join(str(chunk.get("text") or "") for chunk in text if isinstance(chunk, dict))
        if text is not None and not isinstance(text, str):
            raise LlmError(f"Mistral returned unexpected content type {type(text).__name__}")
        return (text or "").strip()


class GeminiClient:
    name = "gemini"

    def __init__(self, api_key: str, model: str):
        # Lazy import so the app can start on Mistral alone.
        from google import genai

        self._client = genai.Client(api_key=api_key)
        self.model = model

    def complete(self, prompt: str, temperature: float = 0.7) -> str:
        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=prompt,
                config={"temperature": temperature},
            )
        except Exception as exc:
            raise LlmError(f"Gemini request failed: {exc}") from exc
        return _extract_response_text(response)


def build_llm_client(config):
    """Return a configured LLM client, or None when no provider key is usable."""
    provider = (config.get("LLM_PROVIDER") or "auto").strip().lower()
    mistral_key = _usable_key(config.get("MISTRAL_API_KEY"))
    gemini_key = _usable_key(config.get("GEMINI_API_KEY"))
    timeout = float(config.get("LLM_TIMEOUT_SECONDS", 60))

    if provider == "none":
        logger.info("LLM provider disabled by configuration")
        return None

    if provider in ("auto", "mistral") and mistral_key:
        logger.info("LLM backend: Mistral (%s)", config.get("MISTRAL_MODEL"))
        return MistralClient(
            api_key=mistral_key,
            model=config.get("MISTRAL_MODEL", "mistral-large-latest"),
            base_url=config.get("MISTRAL_BASE_URL", "https://api.mistral.ai"),
            timeout=timeout,
        )

    if provider in ("auto", "gemini") and gemini_key:
        try:
            client = GeminiClient(api_key=gemini_key, model=config.get("GEMINI_MODEL", "gemini-2.5-flash"))
        except Exception as exc:
            logger.warning("Failed to initialise Gemini client: %s", exc)
            return None
        logger.info("LLM backend: Gemini (%s)", client.model)
        return client

    logger.warning("No LLM backend configured - set MISTRAL_API_KEY or GEMINI_API_KEY")
    return None
