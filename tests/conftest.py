"""Shared fixtures: a fake discovery client and a scripted terminal."""

import io
from typing import List, Optional

import pytest
from rich.console import Console

from bedrock_setup.discovery import CloudDiscoveryClient, InferenceProfile, dedupe_profiles
from bedrock_setup.errors import DiscoveryError
from bedrock_setup.ui import Terminal


class FakeDiscovery(CloudDiscoveryClient):
    """In-memory CloudDiscoveryClient that records calls."""

    def __init__(
        self,
        available: bool = True,
        profiles: Optional[List[str]] = None,
        regions: Optional[dict] = None,
        models: Optional[List[InferenceProfile]] = None,
        discovery_error: bool = False,
        caller: Optional[str] = "arn:aws:iam::123456789012:user/dev",
        reachable: bool = True,
    ):
        self._available = available
        self.profiles = profiles or []
        self.regions = regions or {}
        self.models = models or []
        self.discovery_error = discovery_error
        self.caller = caller
        self.reachable = reachable
        self.calls: list = []

    @property
    def available(self) -> bool:
        return self._available

    def cli_version(self):
        return "aws-cli/2.15.0 Python/3.11.6" if self._available else None

    def list_profiles(self):
        self.calls.append(("list_profiles",))
        return list(self.profiles)

    def profile_region(self, profile):
        self.calls.append(("profile_region", profile))
        return self.regions.get(profile)

    def caller_identity(self, profile=None):
        self.calls.append(("caller_identity", profile))
        return self.caller

    def list_inference_profiles(self, region, profile=None):
        self.calls.append(("list_inference_profiles", region, profile))
        if self.discovery_error:
            raise DiscoveryError("AccessDeniedException")
        return dedupe_profiles(self.models)

    def verify_connectivity(self, region, profile=None):
        self.calls.append(("verify_connectivity", region, profile))
        return self.reachable

    def sso_login(self, profile):
        self.calls.append(("sso_login", profile))
        return True

    def configure(self):
        self.calls.append(("configure",))
        return True


class ScriptedReader:
    """Answers prompts from a fixed list; raises EOFError when exhausted."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt) -> str:
        self.prompts.append(str(prompt))
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


def make_terminal(answers=()):
    buf = io.StringIO()
    console = Console(file=buf, force_terminal=False, width=200, color_system=None)
    reader = ScriptedReader(answers)
    return Terminal(console=console, reader=reader), buf, reader


@pytest.fixture
def fake_discovery():
    return FakeDiscovery()


@pytest.fixture
def sample_models():
    return [
        InferenceProfile("US Claude Sonnet 4", "arn:aws:bedrock:us-east-1:123:inference-profile/us.anthropic.claude-sonnet-4", "ACTIVE"),
        InferenceProfile("US Claude 3.5 Haiku", "arn:aws:bedrock:us-east-1:123:inference-profile/us.anthropic.claude-3-5-haiku", "ACTIVE"),
        InferenceProfile("team-sonnet", "arn:aws:bedrock:us-east-1:123:application-inference-profile/abc", "PENDING"),
    ]


@pytest.fixture
def terminal():
    """Factory: terminal(answers) -> (Terminal, output buffer, reader)."""
    return make_terminal
