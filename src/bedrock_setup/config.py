from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .merge import STRATEGY_CHOICES

logger = logging.getLogger(__name__)

APP = "claude-bedrock-setup"

MIN_NODE_MAJOR = 18
FALLBACK_REGION = "us-east-1"


def settings_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Claude Code settings directory:
      - $CLAUDE_CONFIG_DIR when set
      - ~/.claude otherwise
    """
    environ = os.environ if environ is None else environ
    override = environ.get("CLAUDE_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude"


def settings_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    return settings_dir(environ) / "settings.json"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + ".bak")


@dataclass
class SetupOptions:
    merge_strategy: str = "auto"
    log_level: str = "WARNING"
    aws_command: str = "aws"
    default_region: str = FALLBACK_REGION
    min_node_major: int = MIN_NODE_MAJOR

    @staticmethod
    def load(environ: Optional[Mapping[str, str]] = None) -> "SetupOptions":
        environ = os.environ if environ is None else environ
        o = SetupOptions()

        strategy = environ.get("CLAUDE_BEDROCK_MERGE_STRATEGY", o.merge_strategy).strip().lower()
        if strategy not in STRATEGY_CHOICES:
            logger.warning(
                "Ignoring CLAUDE_BEDROCK_MERGE_STRATEGY=%r (expected one of %s)",
                strategy, ", ".join(STRATEGY_CHOICES),
            )
            strategy = "auto"
        o.merge_strategy = strategy

        o.log_level = environ.get("CLAUDE_BEDROCK_LOG_LEVEL", o.log_level).strip().upper() or o.log_level
        o.aws_command = environ.get("CLAUDE_BEDROCK_AWS_CLI", o.aws_command).strip() or o.aws_command

        # Same precedence the AWS CLI uses.
        o.default_region = (
            environ.get("AWS_REGION")
            or environ.get("AWS_DEFAULT_REGION")
            or o.default_region
        )
        return o
