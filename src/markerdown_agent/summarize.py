"""One-shot summarization of a document into a markdown file."""

import logging
import os
from pathlib import Path
from typing import Optional

from .cleanup import incidental_session_cleanup
from .config import AgentSettings
from .core import SummarizeResult
from .process import ProcessController, describe_failure
from .prompts import build_summarize_prompt

logger = logging.getLogger(__name__)


def summarize(
    source_path: str,
    output_path: str,
    prompt: str,
    working_dir: str | os.PathLike,
    settings: Optional[AgentSettings] = None,
    controller: Optional[ProcessController] = None,
) -> SummarizeResult:
    """Ask the CLI to write a summary of ``source_path`` to ``output_path``.

    Blocks until the CLI exits. Session logs the run leaves behind are
    removed afterwards so they never show up as chats.
    """
    settings = settings or AgentSettings.from_env()
    controller = controller or ProcessController()

    if Path(output_path).exists():
        return SummarizeResult(success=False, error="Output file already exists")

    args = [
        "--print",
        "--dangerously-skip-permissions",
        "--allowed-tools", "Read,Write",
        "--model", settings.model,
        build_summarize_prompt(source_path, output_path, prompt),
    ]

    with incidental_session_cleanup(working_dir, settings):
        exit_event = controller.run(settings.executable, args, os.fspath(working_dir))

    error = describe_failure(exit_event)
    if error:
        logger.warning("Summarization of %s failed: %s", source_path, error)
        return SummarizeResult(success=False, error=error)

    logger.info("Summarized %s into %s", source_path, output_path)
    return SummarizeResult(success=True)
