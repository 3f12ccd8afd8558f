"""Tests for prerequisite checks."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from bedrock_setup.errors import PrerequisiteError
from bedrock_setup.prereqs import (
    CLAUDE_NPM_PACKAGE,
    aws_cli_install_hints,
    check_node,
    claude_version,
    install_claude,
    node_install_hints,
    os_name,
    parse_node_major,
)


def _done(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


def _which(*present):
    return lambda cmd: f"/usr/bin/{cmd}" if cmd in present else None


class TestParseNodeMajor:
    @pytest.mark.parametrize("text,major", [
        ("v20.11.1", 20),
        ("v18.0.0\n", 18),
        ("16.20.2", 16),
        ("", None),
        ("node: command not found", None),
    ])
    def test_parse(self, text, major):
        assert parse_node_major(text) == major


class TestCheckNode:
    """Tests for the Node.js version gate."""

    def test_recent_enough(self):
        runner = MagicMock(return_value=_done(stdout="v20.11.1\n"))
        assert check_node(18, which=_which("node"), runner=runner) == "v20.11.1"

    def test_exact_minimum(self):
        runner = MagicMock(return_value=_done(stdout="v18.0.0"))
        assert check_node(18, which=_which("node"), runner=runner) == "v18.0.0"

    def test_too_old(self):
        runner = MagicMock(return_value=_done(stdout="v16.20.2"))
        with pytest.raises(PrerequisiteError, match="too old") as exc:
            check_node(18, which=_which("node"), runner=runner, os_kind="macos")
        assert any("brew install node" in h for h in exc.value.hints)

    def test_missing(self):
        runner = MagicMock()
        with pytest.raises(PrerequisiteError, match="not installed") as exc:
            check_node(18, which=_which(), runner=runner, os_kind="linux")
        runner.assert_not_called()
        assert any("nvm" in h for h in exc.value.hints)

    def test_unparseable_version(self):
        runner = MagicMock(return_value=_done(stdout="weird"))
        with pytest.raises(PrerequisiteError):
            check_node(18, which=_which("node"), runner=runner)


class TestClaude:
    """Tests for Claude Code detection and install."""

    def test_absent(self):
        assert claude_version(which=_which(), runner=MagicMock()) is None

    def test_version(self):
        runner = MagicMock(return_value=_done(stdout="1.0.58 (Claude Code)\n"))
        assert claude_version(which=_which("claude"), runner=runner) == "1.0.58 (Claude Code)"

    def test_version_unknown(self):
        runner = MagicMock(return_value=_done(returncode=1))
        assert claude_version(which=_which("claude"), runner=runner) == "unknown"

    def test_install_runs_npm(self):
        runner = MagicMock(return_value=_done())
        assert install_claude(runner=runner) is True
        runner.assert_called_once_with(["npm", "install", "-g", CLAUDE_NPM_PACKAGE])

    def test_install_failure(self):
        assert install_claude(runner=MagicMock(return_value=_done(returncode=243))) is False

    def test_install_without_npm(self):
        assert install_claude(runner=MagicMock(side_effect=FileNotFoundError("npm"))) is False


class TestHints:
    def test_node_hints_mention_nodejs_org(self):
        for kind in ("macos", "linux"):
            assert node_install_hints(kind)[-1] == "Or visit: https://nodejs.org/"

    def test_aws_hints(self):
        assert "brew install awscli" in aws_cli_install_hints("macos")[0]
        assert "docs.aws.amazon.com" in aws_cli_install_hints("linux")[0]

    @patch("bedrock_setup.prereqs.platform.system", return_value="Darwin")
    def test_os_name_macos(self, mock_system):
        assert os_name() == "macos"

    @patch("bedrock_setup.prereqs.platform.system", return_value="Windows")
    def test_os_name_other(self, mock_system):
        assert os_name() == "unknown"
