"""Tests for paths and environment-driven options."""

from pathlib import Path

from bedrock_setup.config import SetupOptions, backup_path, settings_dir, settings_path


class TestPaths:
    def test_default_dir(self):
        assert settings_dir({}) == Path.home() / ".claude"

    def test_override_dir(self, tmp_path):
        environ = {"CLAUDE_CONFIG_DIR": str(tmp_path / "cfg")}
        assert settings_path(environ) == tmp_path / "cfg" / "settings.json"

    def test_backup_path(self, tmp_path):
        assert backup_path(tmp_path / "settings.json") == tmp_path / "settings.json.bak"


class TestSetupOptions:
    """Tests for SetupOptions.load."""

    def test_defaults(self):
        o = SetupOptions.load({})
        assert o.merge_strategy == "auto"
        assert o.log_level == "WARNING"
        assert o.aws_command == "aws"
        assert o.default_region == "us-east-1"
        assert o.min_node_major == 18

    def test_overrides(self):
        o = SetupOptions.load({
            "CLAUDE_BEDROCK_MERGE_STRATEGY": "JQ",
            "CLAUDE_BEDROCK_LOG_LEVEL": "debug",
            "CLAUDE_BEDROCK_AWS_CLI": "/opt/aws/bin/aws",
        })
        assert o.merge_strategy == "jq"
        assert o.log_level == "DEBUG"
        assert o.aws_command == "/opt/aws/bin/aws"

    def test_unknown_strategy_falls_back(self):
        assert SetupOptions.load({"CLAUDE_BEDROCK_MERGE_STRATEGY": "yaml"}).merge_strategy == "auto"

    def test_region_precedence(self):
        assert SetupOptions.load({"AWS_DEFAULT_REGION": "eu-west-1"}).default_region == "eu-west-1"
        o = SetupOptions.load({"AWS_REGION": "ap-northeast-1", "AWS_DEFAULT_REGION": "eu-west-1"})
        assert o.default_region == "ap-northeast-1"
