"""Job runner: extract context, generate changes, apply them."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from retools.config import RetoolsConfig
from retools.context.extractor import ContextExtractor, GenerationContext
from retools.generation.client import GenerationClient
from retools.workspace.applier import ChangeApplier
from retools.workspace.guardrails import Guardrails
from retools.workspace.models import ChangeSet

logger = structlog.get_logger()


@dataclass
class JobResult:
    """Outcome of one generation job.

    Attributes:
        context: Context sent to the generation call.
        change_set: Operations returned by the generation call.
        applied: Number of operations that changed the filesystem.
    """

    context: GenerationContext
    change_set: ChangeSet
    applied: int


class Runner:
    """Runs extract, generate, apply for one working tree.

    Each step completes before the next starts. Any error propagates to
    the caller, which reports the job as failed.
    """

    def __init__(
        self,
        working_root: Path,
        config: RetoolsConfig,
        client: GenerationClient,
    ) -> None:
        """Initialize the runner.

        Args:
            working_root: Root of the job's working tree.
            config: Retools configuration.
            client: Generation client.
        """
        self.working_root = working_root
        self.config = config
        self.client = client
        self.extractor = ContextExtractor(working_root, config.context)
        self.applier = ChangeApplier(working_root, Guardrails(config.guardrails))

    def run(self, prompt: str, *, fix_mode: bool = False) -> JobResult:
        """Run one job.

        Args:
            prompt: Change request, or a build-failure description in fix mode.
            fix_mode: Bias generation toward minimal corrective edits.

        Returns:
            JobResult for the job.
        """
        log = logger.bind(working_root=str(self.working_root), fix_mode=fix_mode)
        log.info("Starting generation job", prompt=prompt[:100])

        context = self.extractor.extract()
        change_set = self.client.generate(prompt, context, fix_mode=fix_mode)
        log.info("Change set received", operations=len(change_set), **change_set.summary())
        applied = self.applier.apply(change_set)

        log.info("Generation job completed", applied=applied)
        return JobResult(context=context, change_set=change_set, applied=applied)


def create_runner(
    working_root: Path,
    *,
    api_key: str,
    config: RetoolsConfig | None = None,
    config_path: Path | None = None,
) -> Runner:
    """Create a Runner with configuration.

    Args:
        working_root: Root of the job's working tree.
        api_key: API key for the generation service.
        config: Optional RetoolsConfig instance.
        config_path: Optional path to a retools.yaml file.

    Returns:
        Configured Runner instance.
    """
    if config:
        cfg = config
    elif config_path and config_path.exists():
        cfg = RetoolsConfig.load(config_path)
    else:
        cfg = RetoolsConfig.default()

    client = GenerationClient(api_key, cfg.generation)
    return Runner(working_root, cfg, client)
