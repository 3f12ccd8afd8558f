"""The configuration record collected by the wizard.

The wizard never mutates a record; each step returns a new one via
``ConfigurationRecord.with_values`` and the final value is handed to the
settings merger.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional

USE_BEDROCK_KEY = "CLAUDE_CODE_USE_BEDROCK"
REGION_KEY = "AWS_REGION"
MODEL_KEY = "ANTHROPIC_MODEL"
PROFILE_KEY = "AWS_PROFILE"
SMALL_FAST_MODEL_KEY = "ANTHROPIC_SMALL_FAST_MODEL"

MANAGED_ENV_KEYS = (
    USE_BEDROCK_KEY,
    REGION_KEY,
    MODEL_KEY,
    PROFILE_KEY,
    SMALL_FAST_MODEL_KEY,
)

AUTH_REFRESH_KEY = "awsAuthRefresh"
ENV_KEY = "env"

USE_BEDROCK_VALUE = "1"
AUTH_REFRESH_TEMPLATE = "aws sso login --profile {profile}"


class AuthMethod(str, Enum):
    """How the user authenticates with AWS."""
    SSO = "sso"
    KEYS = "keys"
    EXISTING = "existing"

    @property
    def label(self) -> str:
        return {
            AuthMethod.SSO: "AWS SSO / Identity Center",
            AuthMethod.KEYS: "IAM access keys",
            AuthMethod.EXISTING: "existing credentials",
        }[self]


@dataclass(frozen=True)
class ConfigurationRecord:
    """Answers gathered by the wizard, consumed by the settings merger."""
    region: str = ""
    primary_model: str = ""
    profile_name: Optional[str] = None
    secondary_model: Optional[str] = None
    enable_auth_refresh: bool = False
    auth_method: AuthMethod = AuthMethod.EXISTING
    use_bedrock: str = USE_BEDROCK_VALUE

    def with_values(self, **changes) -> "ConfigurationRecord":
        return replace(self, **changes)

    def validate(self) -> None:
        if not self.region:
            raise ValueError("region must be a non-empty string")
        if not self.primary_model:
            raise ValueError("primary model reference must be a non-empty string")

    def env_entries(self) -> Dict[str, str]:
        """Managed `env` entries in the order they are written."""
        entries = {
            USE_BEDROCK_KEY: self.use_bedrock,
            REGION_KEY: self.region,
            MODEL_KEY: self.primary_model,
        }
        if self.profile_name:
            entries[PROFILE_KEY] = self.profile_name
        if self.secondary_model:
            entries[SMALL_FAST_MODEL_KEY] = self.secondary_model
        return entries

    def auth_refresh_command(self) -> Optional[str]:
        """`awsAuthRefresh` value, or None when the key must be left alone."""
        if self.enable_auth_refresh and self.profile_name:
            return AUTH_REFRESH_TEMPLATE.format(profile=self.profile_name)
        return None

    @property
    def looks_like_arn(self) -> bool:
        return self.primary_model.startswith("arn:")
