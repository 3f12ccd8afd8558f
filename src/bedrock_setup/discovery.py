"""Cloud discovery through the AWS CLI.

The wizard only talks to AWS through a ``CloudDiscoveryClient``. The real
implementation shells out to ``aws``; tests substitute a fake.
"""

from __future__ import annotations

import abc
import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .errors import DiscoveryError

logger = logging.getLogger(__name__)

MODEL_ID_FILTER = (
    "inferenceProfileSummaries[?contains(inferenceProfileId, 'anthropic') "
    "|| contains(inferenceProfileId, 'claude')]"
    ".[inferenceProfileName,inferenceProfileArn,status]"
)


@dataclass(frozen=True)
class InferenceProfile:
    """A Bedrock inference profile as listed by the CLI."""
    name: str
    arn: str
    status: str

    @property
    def active(self) -> bool:
        return self.status == "ACTIVE"


def dedupe_profiles(profiles: Iterable[InferenceProfile]) -> List[InferenceProfile]:
    """Drop repeated ARNs, keeping the first occurrence and the input order."""
    seen: set[str] = set()
    out: List[InferenceProfile] = []
    for p in profiles:
        if p.arn in seen:
            continue
        seen.add(p.arn)
        out.append(p)
    return out


class CloudDiscoveryClient(abc.ABC):
    """Read-only cloud queries plus two interactive passthroughs."""

    @property
    @abc.abstractmethod
    def available(self) -> bool:
        """True when the underlying CLI can be invoked at all."""

    @abc.abstractmethod
    def cli_version(self) -> Optional[str]:
        pass

    @abc.abstractmethod
    def list_profiles(self) -> List[str]:
        """Configured named profiles; empty when none or when the CLI is absent."""

    @abc.abstractmethod
    def profile_region(self, profile: str) -> Optional[str]:
        pass

    @abc.abstractmethod
    def caller_identity(self, profile: Optional[str] = None) -> Optional[str]:
        """ARN of the current caller, or None if credentials do not work."""

    @abc.abstractmethod
    def list_inference_profiles(
        self, region: str, profile: Optional[str] = None
    ) -> List[InferenceProfile]:
        """
        Anthropic/Claude inference profiles from the default and APPLICATION
        scopes, deduplicated by ARN. Raises DiscoveryError when every query
        fails.
        """

    @abc.abstractmethod
    def verify_connectivity(self, region: str, profile: Optional[str] = None) -> bool:
        """Single best-effort probe call, no retry."""

    @abc.abstractmethod
    def sso_login(self, profile: str) -> bool:
        pass

    @abc.abstractmethod
    def configure(self) -> bool:
        pass


Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class AwsCliDiscovery(CloudDiscoveryClient):
    def __init__(
        self,
        command: str = "aws",
        which: Callable[[str], Optional[str]] = shutil.which,
        runner: Runner = subprocess.run,
    ):
        self.command = command
        self._which = which
        self._run = runner

    @property
    def available(self) -> bool:
        return self._which(self.command) is not None

    def _capture(self, args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
        cmd = [self.command, *args]
        logger.debug("running %s", " ".join(cmd))
        try:
            p = self._run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise DiscoveryError(f"could not run {self.command}: {e}") from e
        logger.debug("%s exited %s", cmd[:3], p.returncode)
        return p

    def _interactive(self, args: Sequence[str]) -> bool:
        cmd = [self.command, *args]
        logger.debug("running interactively %s", " ".join(cmd))
        try:
            return self._run(cmd).returncode == 0
        except OSError as e:
            logger.debug("could not run %s: %s", self.command, e)
            return False

    @staticmethod
    def _profile_args(profile: Optional[str]) -> List[str]:
        return ["--profile", profile] if profile else []

    def cli_version(self) -> Optional[str]:
        if not self.available:
            return None
        try:
            p = self._capture(["--version"])
        except DiscoveryError:
            return None
        # Older releases print the version on stderr.
        text = (p.stdout or p.stderr or "").strip()
        return text.splitlines()[0] if text else None

    def list_profiles(self) -> List[str]:
        if not self.available:
            return []
        try:
            p = self._capture(["configure", "list-profiles"])
        except DiscoveryError:
            return []
        if p.returncode != 0:
            return []
        return [line.strip() for line in p.stdout.splitlines() if line.strip()]

    def profile_region(self, profile: str) -> Optional[str]:
        if not self.available:
            return None
        try:
            p = self._capture(["configure", "get", "region", "--profile", profile])
        except DiscoveryError:
            return None
        region = (p.stdout or "").strip()
        return region if p.returncode == 0 and region else None

    def caller_identity(self, profile: Optional[str] = None) -> Optional[str]:
        if not self.available:
            return None
        args = ["sts", "get-caller-identity", "--query", "Arn", "--output", "text"]
        try:
            p = self._capture(args + self._profile_args(profile))
        except DiscoveryError:
            return None
        arn = (p.stdout or "").strip()
        return arn if p.returncode == 0 and arn else None

    def _query_profiles(self, region: str, profile: Optional[str], scope: Optional[str]) -> List[InferenceProfile]:
        args = ["bedrock", "list-inference-profiles", "--region", region]
        if scope:
            args += ["--type", scope]
        args += self._profile_args(profile)
        args += ["--query", MODEL_ID_FILTER, "--output", "json"]

        p = self._capture(args)
        if p.returncode != 0:
            raise DiscoveryError(
                f"list-inference-profiles ({scope or 'default'}) failed: {(p.stderr or '').strip()}"
            )
        try:
            rows = json.loads(p.stdout or "[]") or []
        except ValueError as e:
            raise DiscoveryError(f"unexpected list-inference-profiles output: {e}") from e

        out = []
        for row in rows:
            if not isinstance(row, list) or len(row) < 3 or not row[1]:
                continue
            name, arn, status = row[0], row[1], row[2]
            out.append(InferenceProfile(name=str(name or arn), arn=str(arn), status=str(status or "")))
        return out

    def list_inference_profiles(
        self, region: str, profile: Optional[str] = None
    ) -> List[InferenceProfile]:
        if not self.available:
            raise DiscoveryError(f"{self.command} is not installed")

        found: List[InferenceProfile] = []
        errors: List[str] = []
        for scope in (None, "APPLICATION"):
            try:
                found.extend(self._query_profiles(region, profile, scope))
            except DiscoveryError as e:
                logger.debug("%s", e)
                errors.append(str(e))

        if len(errors) == 2:
            raise DiscoveryError("; ".join(errors))
        return dedupe_profiles(found)

    def verify_connectivity(self, region: str, profile: Optional[str] = None) -> bool:
        if not self.available:
            return False
        args = ["bedrock", "list-inference-profiles", "--region", region, "--max-results", "1"]
        try:
            p = self._capture(args + self._profile_args(profile))
        except DiscoveryError:
            return False
        return p.returncode == 0

    def sso_login(self, profile: str) -> bool:
        return self._interactive(["sso", "login", "--profile", profile])

    def configure(self) -> bool:
        return self._interactive(["configure"])
