"""Host prerequisite checks: Node.js, the AWS CLI and Claude Code."""

from __future__ import annotations

import logging
import platform
import re
import shutil
import subprocess
from typing import Callable, List, Optional

from .errors import PrerequisiteError

logger = logging.getLogger(__name__)

CLAUDE_NPM_PACKAGE = "@anthropic-ai/claude-code"

Which = Callable[[str], Optional[str]]


def os_name() -> str:
    s = platform.system().lower()
    if s == "darwin":
        return "macos"
    if s == "linux":
        return "linux"
    return "unknown"


def node_install_hints(os_kind: str) -> List[str]:
    hints = []
    if os_kind == "macos":
        hints.append("Install via Homebrew:  brew install node")
    else:
        hints.append(
            "Install via nvm:       curl -o- https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.1/install.sh | bash"
        )
        hints.append("                       nvm install --lts")
    hints.append("Or visit: https://nodejs.org/")
    return hints


def aws_cli_install_hints(os_kind: str) -> List[str]:
    if os_kind == "macos":
        return ["Install via Homebrew:  brew install awscli"]
    return ["Install: https://docs.aws.amazon.com/cli/latest/userguide/getting-started-install.html"]


def parse_node_major(version: str) -> Optional[int]:
    """'v20.11.1' -> 20"""
    m = re.match(r"^\s*v?(\d+)", version or "")
    return int(m.group(1)) if m else None


def check_node(
    min_major: int,
    which: Which = shutil.which,
    runner=subprocess.run,
    os_kind: Optional[str] = None,
) -> str:
    """Return the installed Node.js version or raise PrerequisiteError."""
    hints = node_install_hints(os_kind or os_name())
    if which("node") is None:
        raise PrerequisiteError(
            f"Node.js is not installed. Version {min_major}+ is required.", hints
        )

    try:
        p = runner(["node", "--version"], capture_output=True, text=True)
    except OSError as e:
        raise PrerequisiteError(f"Could not run node: {e}", hints) from e
    version = (p.stdout or "").strip()
    major = parse_node_major(version)
    logger.debug("node --version -> %r (major %s)", version, major)

    if major is None:
        raise PrerequisiteError(
            f"Could not determine the Node.js version. Version {min_major}+ is required.", hints
        )
    if major < min_major:
        raise PrerequisiteError(
            f"Node.js {version} is too old. Version {min_major}+ is required.", hints
        )
    return version


def claude_version(which: Which = shutil.which, runner=subprocess.run) -> Optional[str]:
    """Installed Claude Code version, "unknown" if it will not say, None if absent."""
    if which("claude") is None:
        return None
    try:
        p = runner(["claude", "--version"], capture_output=True, text=True)
    except OSError:
        return "unknown"
    out = (p.stdout or "").strip()
    return out if p.returncode == 0 and out else "unknown"


def install_claude(runner=subprocess.run) -> bool:
    cmd = ["npm", "install", "-g", CLAUDE_NPM_PACKAGE]
    logger.debug("running %s", " ".join(cmd))
    try:
        return runner(cmd).returncode == 0
    except OSError as e:
        logger.debug("npm failed to start: %s", e)
        return False
