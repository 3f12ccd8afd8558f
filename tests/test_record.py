"""Tests for ConfigurationRecord."""

import dataclasses

import pytest

from bedrock_setup.record import (
    AUTH_REFRESH_TEMPLATE,
    MANAGED_ENV_KEYS,
    AuthMethod,
    ConfigurationRecord,
)


class TestEnvEntries:
    """Tests for managed env key computation."""

    def test_required_keys_only(self):
        """Test minimal record yields the three required keys."""
        record = ConfigurationRecord(region="us-west-2", primary_model="arn:aws:bedrock:x")
        assert record.env_entries() == {
            "CLAUDE_CODE_USE_BEDROCK": "1",
            "AWS_REGION": "us-west-2",
            "ANTHROPIC_MODEL": "arn:aws:bedrock:x",
        }

    def test_optional_keys(self):
        """Test profile and small/fast model are included when set."""
        record = ConfigurationRecord(
            region="eu-west-1",
            primary_model="arn:a",
            profile_name="dev",
            secondary_model="arn:b",
        )
        entries = record.env_entries()
        assert entries["AWS_PROFILE"] == "dev"
        assert entries["ANTHROPIC_SMALL_FAST_MODEL"] == "arn:b"
        assert set(entries) == set(MANAGED_ENV_KEYS)

    def test_empty_optional_strings_are_omitted(self):
        """Test empty strings count as unset."""
        record = ConfigurationRecord(region="r", primary_model="m", profile_name="", secondary_model="")
        assert "AWS_PROFILE" not in record.env_entries()
        assert "ANTHROPIC_SMALL_FAST_MODEL" not in record.env_entries()


class TestAuthRefresh:
    """Tests for awsAuthRefresh conditionality."""

    def test_enabled_with_profile(self):
        record = ConfigurationRecord(region="r", primary_model="m", profile_name="X", enable_auth_refresh=True)
        assert record.auth_refresh_command() == "aws sso login --profile X"
        assert record.auth_refresh_command() == AUTH_REFRESH_TEMPLATE.format(profile="X")

    def test_enabled_without_profile(self):
        record = ConfigurationRecord(region="r", primary_model="m", enable_auth_refresh=True)
        assert record.auth_refresh_command() is None

    def test_profile_without_flag(self):
        record = ConfigurationRecord(region="r", primary_model="m", profile_name="X")
        assert record.auth_refresh_command() is None


class TestRecordLifecycle:
    """Tests for immutability and validation."""

    def test_frozen(self):
        """Test records cannot be mutated in place."""
        record = ConfigurationRecord(region="r", primary_model="m")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.region = "other"

    def test_with_values_returns_new_record(self):
        record = ConfigurationRecord()
        updated = record.with_values(region="us-east-1", auth_method=AuthMethod.SSO)
        assert record.region == ""
        assert updated.region == "us-east-1"
        assert updated.auth_method is AuthMethod.SSO

    def test_auth_method_labels(self):
        assert {m.label for m in AuthMethod} == {
            "AWS SSO / Identity Center",
            "IAM access keys",
            "existing credentials",
        }

    def test_validate_requires_region_and_model(self):
        with pytest.raises(ValueError):
            ConfigurationRecord(primary_model="m").validate()
        with pytest.raises(ValueError):
            ConfigurationRecord(region="r").validate()
        ConfigurationRecord(region="r", primary_model="m").validate()

    def test_looks_like_arn(self):
        assert ConfigurationRecord(primary_model="arn:aws:bedrock:x").looks_like_arn
        assert not ConfigurationRecord(primary_model="us.anthropic.claude").looks_like_arn
