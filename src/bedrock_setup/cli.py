"""claude-bedrock-setup - point Claude Code at AWS Bedrock.

Usage:
    claude-bedrock-setup          # run the interactive wizard

The wizard takes no flags. Behaviour can be tuned through the environment:
    CLAUDE_CONFIG_DIR                settings directory (default ~/.claude)
    CLAUDE_BEDROCK_MERGE_STRATEGY    auto | json | jq | overwrite
    CLAUDE_BEDROCK_LOG_LEVEL         diagnostic log level (default WARNING)
    CLAUDE_BEDROCK_AWS_CLI           AWS CLI executable (default aws)
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Mapping, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import SetupOptions, settings_path
from .discovery import AwsCliDiscovery
from .errors import (
    BackupError,
    MergeError,
    PrerequisiteError,
    SchemaError,
    ToolUnavailableError,
    WriteError,
)
from .merge import MergeStrategy, select_strategy
from .ui import Terminal
from .wizard import SetupWizard

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def choose_strategy(options: SetupOptions, term: Terminal) -> MergeStrategy:
    try:
        return select_strategy(options.merge_strategy)
    except ToolUnavailableError as e:
        term.warn(f"{e}; falling back to automatic selection.")
        return select_strategy("auto")


def run(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    term: Optional[Terminal] = None,
) -> int:
    parser = argparse.ArgumentParser(
        prog="claude-bedrock-setup",
        description="Interactive setup wizard for Claude Code on AWS Bedrock",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.parse_args(argv)

    environ = os.environ if environ is None else environ
    options = SetupOptions.load(environ)
    configure_logging(options.log_level)
    term = term or Terminal()

    wizard = SetupWizard(
        term=term,
        discovery=AwsCliDiscovery(command=options.aws_command),
        strategy=choose_strategy(options, term),
        settings_file=settings_path(environ),
        options=options,
    )

    try:
        return wizard.run()
    except PrerequisiteError as e:
        term.error(str(e))
        term.plain()
        for hint in e.hints:
            term.info(hint)
        return 1
    except (SchemaError, ToolUnavailableError, BackupError, MergeError, WriteError) as e:
        term.error(str(e))
        term.warn("Your settings have NOT been changed.")
        return 1
    except (KeyboardInterrupt, EOFError):
        term.plain()
        if wizard.settings_written:
            term.warn(f"Script exited early. Settings were already written to {wizard.settings_file}.")
        else:
            term.warn("Script exited early. Your settings have NOT been changed.")
        return 130


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
