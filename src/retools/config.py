"""Configuration schema for the retools change engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_EXTENSIONS = [
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".py",
    ".rb",
    ".go",
    ".rs",
    ".java",
    ".svelte",
    ".vue",
    ".css",
    ".html",
    ".json",
    ".md",
]

DEFAULT_IGNORED_DIRS = [
    "node_modules",
    "dist",
    "build",
    "__pycache__",
    "venv",
    "target",
    "coverage",
]


class ContextConfig(BaseModel):
    """Limits for repository context extraction.

    Attributes:
        max_depth: Deepest directory level entered by the walk (root is 0).
        max_files: Global ceiling on files collected by the walk.
        context_file_limit: Number of file paths handed to the generation call.
        max_dependencies: Number of dependency names kept from the manifest.
        max_context_bytes: Ceiling on the serialized generation context.
        allowed_extensions: File extensions collected by the walk.
        ignored_dirs: Directory names that are never descended into.
        manifest: Project manifest file name, relative to the root.
    """

    max_depth: int = Field(default=3, ge=0)
    max_files: int = Field(default=50, ge=1)
    context_file_limit: int = Field(default=20, ge=1)
    max_dependencies: int = Field(default=10, ge=0)
    max_context_bytes: int = Field(default=48_000, ge=1024)
    allowed_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    ignored_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_DIRS))
    manifest: str = "package.json"

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lowercase extensions and ensure the leading dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized


class GenerationConfig(BaseModel):
    """Configuration for the code-generation service.

    Attributes:
        api_url: Messages endpoint of the generation service.
        model: Model identifier sent with each request.
        max_tokens: Output token ceiling for a single response.
        timeout: Request timeout in seconds.
        anthropic_version: API version header value.
    """

    api_url: str = "https://api.anthropic.com/v1/messages"
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = Field(default=4096, ge=256)
    timeout: float = Field(default=300.0, ge=10)
    anthropic_version: str = "2023-06-01"


class WebhookConfig(BaseModel):
    """Configuration for webhook delivery.

    Attributes:
        timeout: Request timeout in seconds.
        signature_header: Header carrying the hex HMAC-SHA256 signature.
        user_agent: User-Agent sent with each delivery.
    """

    timeout: float = Field(default=15.0, gt=0)
    signature_header: str = "x-webhook-signature"
    user_agent: str = "Retools-Pegasus-Engine"


class GuardrailConfig(BaseModel):
    """Configuration for change-set guardrails.

    Path containment inside the working root is always enforced; these
    settings add pattern and size limits on top of it.

    Attributes:
        enabled: Whether pattern and size guardrails are enabled.
        forbidden_patterns: File patterns that must not be touched.
        max_operations: Maximum number of operations in one change set.
    """

    enabled: bool = True
    forbidden_patterns: list[str] = Field(
        default_factory=lambda: [
            ".git",
            ".git/**",
        ]
    )
    max_operations: int = Field(default=100, ge=1)


class RetoolsConfig(BaseModel):
    """Complete retools configuration.

    Example:
        >>> config = RetoolsConfig.default()
        >>> config.context.max_files
        50
    """

    version: str = "1.0"
    context: ContextConfig = Field(default_factory=ContextConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    guardrails: GuardrailConfig = Field(default_factory=GuardrailConfig)

    def to_yaml(self) -> str:
        """Serialize the config to YAML.

        Returns:
            YAML string representation.
        """
        data = self.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    def save(self, path: Path) -> None:
        """Save the config to a YAML file.

        Args:
            path: Path to save the file.
        """
        path.write_text(self.to_yaml())

    @classmethod
    def from_yaml(cls, yaml_content: str) -> RetoolsConfig:
        """Parse config from YAML content.

        Args:
            yaml_content: YAML string to parse.

        Returns:
            Parsed RetoolsConfig instance.

        Raises:
            ValueError: If the YAML is invalid.
        """
        try:
            data: Any = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML: {e}"
            raise ValueError(msg) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            msg = "Config YAML must be a mapping"
            raise ValueError(msg)

        return cls.model_validate(data)

    @classmethod
    def load(cls, path: Path) -> RetoolsConfig:
        """Load config from a YAML file.

        Args:
            path: Path to the YAML file.

        Returns:
            Parsed RetoolsConfig instance.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the YAML is invalid.
        """
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        return cls.from_yaml(path.read_text())

    @classmethod
    def default(cls) -> RetoolsConfig:
        """Create a default configuration."""
        return cls()
