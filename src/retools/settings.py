"""Environment-sourced settings for the retools CLI.

Only the CLI reads the environment. Everything below it receives secrets,
run identifiers and the working root as explicit arguments.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class RetoolsSettings(BaseSettings):
    """Secrets and CI run metadata read from the environment.

    Environment variables:
        ANTHROPIC_API_KEY: API key for the generation service
        RETOOLS_WEBHOOK_SECRET: Shared secret for webhook signatures
        GITHUB_RUN_ID: Identifier of the current workflow run
        GITHUB_SERVER_URL: Base URL of the hosting server
        GITHUB_REPOSITORY: owner/name of the repository running the workflow
    """

    anthropic_api_key: str = Field(
        default="",
        validation_alias="ANTHROPIC_API_KEY",
        description="API key for the generation service",
    )
    webhook_secret: str = Field(
        default="",
        validation_alias="RETOOLS_WEBHOOK_SECRET",
        description="Shared secret for webhook signatures",
    )
    github_run_id: str | None = Field(
        default=None,
        validation_alias="GITHUB_RUN_ID",
    )
    github_server_url: str | None = Field(
        default=None,
        validation_alias="GITHUB_SERVER_URL",
    )
    github_repository: str | None = Field(
        default=None,
        validation_alias="GITHUB_REPOSITORY",
    )

    model_config = {
        "env_prefix": "",
        "extra": "ignore",
    }

    def default_run_url(self) -> str | None:
        """Build the workflow run URL from the CI environment, if known."""
        if not (self.github_server_url and self.github_repository and self.github_run_id):
            return None
        server = self.github_server_url.rstrip("/")
        return f"{server}/{self.github_repository}/actions/runs/{self.github_run_id}"
