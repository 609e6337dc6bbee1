"""HTTP client for the code-generation service (Anthropic Messages API)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from retools.config import GenerationConfig
from retools.context.extractor import GenerationContext
from retools.exceptions import ConfigError, GenerationError
from retools.generation.response import parse_change_set
from retools.prompts.renderer import PromptRenderer
from retools.workspace.models import ChangeSet

logger = structlog.get_logger()


def response_text(data: Any) -> str:
    """Concatenate the text content blocks of a Messages API response.

    Raises:
        GenerationError: If the response carries no text content.
    """
    blocks = data.get("content") if isinstance(data, dict) else None
    if not isinstance(blocks, list):
        msg = "Unexpected generation response payload"
        raise GenerationError(msg)
    texts = [
        block["text"]
        for block in blocks
        if isinstance(block, dict) and block.get("type", "text") == "text" and isinstance(block.get("text"), str)
    ]
    if not texts:
        msg = "Generation response contained no text"
        raise GenerationError(msg)
    return "".join(texts)


class GenerationClient:
    """Sends a change request plus repository context and returns a ChangeSet.

    A single request is made per call; failures are not retried.

    Example:
        >>> client = GenerationClient(api_key="sk-...")
        >>> change_set = client.generate("Add a footer", context)  # doctest: +SKIP
    """

    def __init__(
        self,
        api_key: str,
        config: GenerationConfig | None = None,
        *,
        renderer: PromptRenderer | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key for the generation service.
            config: Endpoint, model and timeout settings.
            renderer: Prompt renderer for the system prompt.
            client: Optional preconfigured httpx client.

        Raises:
            ConfigError: If the API key is empty.
        """
        if not api_key:
            msg = "Generation API key is required"
            raise ConfigError(msg, field="anthropic_api_key")
        self._api_key = api_key
        self.config = config or GenerationConfig()
        self.renderer = renderer or PromptRenderer()
        self._client = client

    def build_request(self, prompt: str, context: GenerationContext, *, fix_mode: bool = False) -> dict[str, Any]:
        """Build the Messages API request body."""
        return {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": self.renderer.render_system(context, fix_mode=fix_mode),
            "messages": [{"role": "user", "content": prompt}],
        }

    def complete(self, body: dict[str, Any]) -> str:
        """POST a request body and return the response text.

        Raises:
            GenerationError: On transport failure, timeout or non-2xx status.
        """
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": self.config.anthropic_version,
        }
        log = logger.bind(model=body.get("model"), url=self.config.api_url)
        log.info("Calling generation API")

        try:
            if self._client is not None:
                response = self._client.post(
                    self.config.api_url, json=body, headers=headers, timeout=self.config.timeout
                )
            else:
                with httpx.Client(timeout=self.config.timeout) as client:
                    response = client.post(self.config.api_url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            msg = f"Generation API timed out after {self.config.timeout}s"
            raise GenerationError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Generation API request failed: {e}"
            raise GenerationError(msg) from e

        if not response.is_success:
            error = response.text[:2000]
            log.error("Generation API error", status_code=response.status_code)
            msg = f"Generation API error: {response.status_code} - {error}"
            raise GenerationError(msg, status_code=response.status_code, body=error)

        try:
            data = response.json()
        except ValueError as e:
            msg = "Invalid JSON response from generation API"
            raise GenerationError(msg, status_code=response.status_code) from e

        text = response_text(data)
        log.info("Generation response received", chars=len(text), stop_reason=data.get("stop_reason"))
        return text

    def generate(self, prompt: str, context: GenerationContext, *, fix_mode: bool = False) -> ChangeSet:
        """Request changes for ``prompt`` and parse the returned change set.

        Args:
            prompt: Natural-language change request (or build failure in fix mode).
            context: Extracted repository context.
            fix_mode: Bias toward minimal corrective edits.

        Returns:
            Parsed ChangeSet.

        Raises:
            GenerationError: If the call fails.
            ResponseParseError: If no change set can be recovered.
        """
        text = self.complete(self.build_request(prompt, context, fix_mode=fix_mode))
        return parse_change_set(text)
