"""The interactive setup wizard.

Steps run strictly in order. Each answer step takes the current
ConfigurationRecord and returns a new one; only ``write_settings`` touches
the filesystem.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from rich.syntax import Syntax
from rich.text import Text

from .config import SetupOptions, backup_path
from .discovery import CloudDiscoveryClient, InferenceProfile
from .errors import DiscoveryError
from .merge import MergeStrategy
from .prereqs import (
    CLAUDE_NPM_PACKAGE,
    aws_cli_install_hints,
    check_node,
    claude_version,
    install_claude,
    os_name,
)
from .record import AuthMethod, ConfigurationRecord, SMALL_FAST_MODEL_KEY
from .settings_file import SettingsWriter, WriteResult
from .ui import Terminal, pick_index

logger = logging.getLogger(__name__)

TOTAL_STEPS = 9

COMMON_REGIONS = [
    ("us-east-1", "N. Virginia"),
    ("us-west-2", "Oregon"),
    ("eu-west-1", "Ireland"),
    ("eu-central-1", "Frankfurt"),
    ("ap-northeast-1", "Tokyo"),
    ("ap-southeast-1", "Singapore"),
]

EXAMPLE_ARN = (
    "arn:aws:bedrock:us-east-1:123456789012:inference-profile/"
    "us.anthropic.claude-sonnet-4-20250514-v1:0"
)


class SetupWizard:
    def __init__(
        self,
        term: Terminal,
        discovery: CloudDiscoveryClient,
        strategy: MergeStrategy,
        settings_file: Path,
        options: Optional[SetupOptions] = None,
        which=shutil.which,
        runner=subprocess.run,
        os_kind: Optional[str] = None,
    ):
        self.term = term
        self.discovery = discovery
        self.strategy = strategy
        self.settings_file = settings_file
        self.options = options or SetupOptions()
        self._which = which
        self._runner = runner
        self.os_kind = os_kind or os_name()

        self.has_aws_cli = False
        self.settings_written = False

    def _step(self, n: int, title: str) -> None:
        self.term.header(f"Step {n} / {TOTAL_STEPS}: {title}")

    def run(self) -> int:
        """Run every step. Returns the process exit code."""
        self.banner()

        self.check_node()
        if not self.check_aws_cli():
            return 0
        self.check_claude()

        record = ConfigurationRecord()
        record = self.choose_auth(record)
        record = self.choose_region(record)
        record = self.choose_models(record)

        result = self.write_settings(record)
        self.verify(record)
        self.summary(result, record)
        return 0

    def banner(self) -> None:
        t = self.term
        t.plain()
        t.plain("╔═══════════════════════════════════════════════════════════════╗")
        t.plain("║        Claude Code + AWS Bedrock - Setup Wizard             ║")
        t.plain("╚═══════════════════════════════════════════════════════════════╝")
        t.plain()
        t.info("This script will walk you through setting up Claude Code to")
        t.info("use AWS Bedrock as its model provider.")

    # --- Steps 1-3: prerequisites ---

    def check_node(self) -> str:
        self._step(1, "Node.js")
        version = check_node(
            self.options.min_node_major,
            which=self._which,
            runner=self._runner,
            os_kind=self.os_kind,
        )
        self.term.success(f"Node.js {version} detected (>= {self.options.min_node_major} required).")
        return version

    def check_aws_cli(self) -> bool:
        """False means the user chose to stop here."""
        self._step(2, "AWS CLI")
        t = self.term
        if self.discovery.available:
            t.success(f"AWS CLI detected: {self.discovery.cli_version() or 'unknown version'}")
            self.has_aws_cli = True
            return True

        t.warn("AWS CLI is not installed.")
        t.info("The script can still write your config, but verification will be skipped.")
        t.plain()
        for hint in aws_cli_install_hints(self.os_kind):
            t.info(hint)
        t.plain()
        if not t.confirm("Continue without AWS CLI?"):
            t.info("Please install the AWS CLI and re-run this script.")
            return False
        return True

    def check_claude(self) -> None:
        self._step(3, "Claude Code")
        t = self.term
        version = claude_version(which=self._which, runner=self._runner)
        if version is not None:
            t.success(f"Claude Code detected: {version}")
            return

        t.warn("Claude Code is not installed.")
        t.plain()
        if not t.confirm("Install Claude Code now via npm?"):
            t.info(f"You can install it later:  npm install -g {CLAUDE_NPM_PACKAGE}")
            return

        t.info(f"Running: npm install -g {CLAUDE_NPM_PACKAGE}")
        if install_claude(runner=self._runner):
            t.success("Claude Code installed.")
            return

        t.warn("npm install failed. This can happen if your Node.js was installed")
        t.warn("with a system package manager that requires sudo for global installs.")
        t.plain()
        t.info("Options:")
        t.info(f"  1. Run:  sudo npm install -g {CLAUDE_NPM_PACKAGE}")
        t.info("  2. Use nvm (https://github.com/nvm-sh/nvm) to manage Node.js")
        t.info("     without requiring sudo for global installs.")
        t.plain()
        t.warn("Continuing without Claude Code installed. You can install it later.")

    # --- Step 4: authentication ---

    def choose_auth(self, record: ConfigurationRecord) -> ConfigurationRecord:
        self._step(4, "AWS Authentication")
        t = self.term
        t.plain("How are you authenticating with AWS?")
        t.plain()
        t.menu([
            "AWS SSO / Identity Center  (recommended)",
            "IAM access keys",
            "Already configured (env vars, instance role, etc.)",
        ])
        choice = t.ask("Choose [1/2/3]: ") or "1"

        if choice == "1":
            return self._auth_sso(record)
        if choice == "2":
            self._auth_keys()
            return record.with_values(auth_method=AuthMethod.KEYS)
        if choice == "3":
            self._auth_existing()
            return record.with_values(auth_method=AuthMethod.EXISTING)

        t.warn("Invalid choice, defaulting to 'Already configured'.")
        return record.with_values(auth_method=AuthMethod.EXISTING)

    def _choose_profile(self) -> str:
        t = self.term
        profiles = self.discovery.list_profiles() if self.has_aws_cli else []
        if not profiles:
            return t.ask_required("Enter your AWS SSO profile name")

        t.info("Available AWS profiles:")
        t.plain()
        t.menu(profiles)
        pick = t.ask("Pick a profile number, or press Enter to type a name: ")
        if pick.isdigit():
            idx = pick_index(pick, len(profiles))
            if idx is not None:
                return profiles[idx]
            t.warn("Invalid selection.")
            return t.ask_required("Enter AWS profile name")
        if pick:
            return pick
        return t.ask_required("Enter AWS profile name")

    def _auth_sso(self, record: ConfigurationRecord) -> ConfigurationRecord:
        t = self.term
        t.plain()
        profile = self._choose_profile()
        t.success(f"Using AWS profile: {profile}")

        if self.has_aws_cli:
            t.plain()
            if t.confirm(f"Run 'aws sso login --profile {profile}' now?"):
                t.info("Launching SSO login…")
                if not self.discovery.sso_login(profile):
                    t.warn("SSO login failed. You can retry manually.")

        t.plain()
        t.info("Claude Code can automatically refresh SSO tokens via 'awsAuthRefresh'.")
        refresh = t.confirm("Enable automatic SSO token refresh in settings.json?")
        if refresh:
            t.success("awsAuthRefresh will be configured.")

        return record.with_values(
            auth_method=AuthMethod.SSO,
            profile_name=profile,
            enable_auth_refresh=refresh,
        )

    def _auth_keys(self) -> None:
        t = self.term
        t.plain()
        t.warn("For security, IAM access keys should NOT be stored in settings.json.")
        t.info("You should configure them via 'aws configure' or by setting environment")
        t.info("variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY) in your shell profile.")
        t.plain()
        if self.has_aws_cli:
            if t.confirm("Run 'aws configure' now to set up your access keys?"):
                if not self.discovery.configure():
                    t.warn("'aws configure' did not finish successfully.")
            return

        t.info("After installing the AWS CLI, run 'aws configure' to store your keys.")
        t.info("Alternatively, add to your shell profile (~/.bashrc, ~/.zshrc, etc.):")
        t.plain()
        t.plain("  export AWS_ACCESS_KEY_ID=AKIA...")
        t.plain("  export AWS_SECRET_ACCESS_KEY=...")
        t.plain()

    def _auth_existing(self) -> None:
        t = self.term
        t.plain()
        if not self.has_aws_cli:
            t.warn("Cannot verify credentials without AWS CLI. Proceeding on trust.")
            return

        t.info("Verifying current credentials…")
        caller = self.discovery.caller_identity()
        if caller:
            t.success(f"Authenticated as: {caller}")
        else:
            t.warn("Could not verify credentials with 'aws sts get-caller-identity'.")
            t.warn("Make sure your credentials are configured before running Claude Code.")

    # --- Step 5: region ---

    def choose_region(self, record: ConfigurationRecord) -> ConfigurationRecord:
        self._step(5, "AWS Region")
        t = self.term

        default = self.options.default_region
        if record.profile_name and self.has_aws_cli:
            detected = self.discovery.profile_region(record.profile_name)
            if detected:
                default = detected
                t.info(f"Detected region from profile '{record.profile_name}': {detected}")

        t.plain("Common Bedrock regions:")
        t.plain()
        t.menu([f"{code:<14} ({label})" for code, label in COMMON_REGIONS] + ["Custom"])
        choice = t.ask(f"Choose [1-{len(COMMON_REGIONS) + 1}] or press Enter for {default}: ")

        idx = pick_index(choice, len(COMMON_REGIONS) + 1)
        if not choice:
            region = default
        elif idx is not None and idx < len(COMMON_REGIONS):
            region = COMMON_REGIONS[idx][0]
        elif idx is not None:
            region = t.ask_required("Enter AWS region")
        else:
            # Raw input is taken as the region name
            region = choice

        t.success(f"Using region: {region}")
        return record.with_values(region=region)

    # --- Step 6: models ---

    def discover_models(self, record: ConfigurationRecord) -> List[InferenceProfile]:
        t = self.term
        t.info(f"Discovering available inference profiles in {record.region}…")
        t.plain()
        try:
            models = self.discovery.list_inference_profiles(record.region, record.profile_name)
        except DiscoveryError as e:
            logger.debug("model discovery failed: %s", e)
            return []

        for i, m in enumerate(models, start=1):
            status_style = "green" if m.active else "yellow"
            t.console.print(Text.assemble(f"  {i:2d}) {m.name:<45} ", (m.status, status_style)))
        return models

    def choose_models(self, record: ConfigurationRecord) -> ConfigurationRecord:
        self._step(6, "Model Selection")
        t = self.term
        models: List[InferenceProfile] = []
        primary: Optional[str] = None

        if self.has_aws_cli:
            t.menu(["Auto-discover available models", "Enter model ARN manually"])
            method = t.ask("Choose [1/2]: ") or "1"
            if method == "1":
                models = self.discover_models(record)
                if models:
                    t.plain()
                    pick = t.ask("Select a model number, or enter an ARN: ")
                    if pick.isdigit():
                        idx = pick_index(pick, len(models))
                        if idx is not None:
                            primary = models[idx].arn
                            t.success(f"Selected: {models[idx].name}")
                        else:
                            t.warn("Invalid selection.")
                    elif pick.startswith("arn:"):
                        primary = pick
                else:
                    t.warn(f"Could not discover models. You may not have Bedrock access in {record.region},")
                    t.warn("or your credentials may not be active yet.")

        if primary is None:
            t.plain()
            t.info("Enter the full ARN for your inference profile.")
            t.info(f"Example: {EXAMPLE_ARN}")
            t.plain()
            primary = t.ask_required("Model ARN")

        record = record.with_values(primary_model=primary)
        if not record.looks_like_arn:
            t.warn("The value you entered doesn't look like an ARN (expected 'arn:...').")
            t.warn("Proceeding anyway. Double-check settings.json if Claude Code fails to connect.")
        t.success(f"Primary model: {primary}")

        secondary = self._choose_small_fast_model(models)
        if secondary:
            t.success(f"Small/fast model: {secondary}")
            record = record.with_values(secondary_model=secondary)
        return record

    def _choose_small_fast_model(self, models: List[InferenceProfile]) -> Optional[str]:
        t = self.term
        t.plain()
        t.info("Claude Code can use a smaller, faster model for lightweight tasks (e.g. Haiku).")
        if not t.confirm(f"Configure a small/fast model ({SMALL_FAST_MODEL_KEY})?", default_yes=False):
            return None

        if not (self.has_aws_cli and models):
            return t.ask_required("Small/fast model ARN")

        t.plain()
        t.info("Pick from discovered models, or enter an ARN:")
        for i, m in enumerate(models, start=1):
            t.plain(f"  {i:2d}) {m.name}")
        t.plain()
        pick = t.ask("Selection or ARN: ")
        if pick.isdigit():
            idx = pick_index(pick, len(models))
            return models[idx].arn if idx is not None else None
        return pick or None

    # --- Step 7: write ---

    def _confirm_overwrite(self, path: Path) -> bool:
        return self.term.confirm(f"Overwrite {path}?")

    def write_settings(self, record: ConfigurationRecord) -> WriteResult:
        self._step(7, "Write Settings")
        t = self.term

        if self.strategy.destructive:
            t.warn("No JSON merge tool selected. Writing settings.json from scratch.")
            t.warn("Any existing custom settings (statusLine, plugins, etc.) will be lost.")
        else:
            t.info(f"Using {self.strategy.description} for JSON merge.")

        t.info(f"Updating {self.settings_file} …")
        t.plain()

        writer = SettingsWriter(
            self.settings_file,
            self.strategy,
            confirm_overwrite=self._confirm_overwrite,
        )
        result = writer.apply(record)
        self.settings_written = True

        for w in result.warnings:
            t.warn(w)
        if result.backup is not None:
            t.success(f"Backed up existing settings to {result.backup}")
        t.success(f"Settings written to {result.path}")
        return result

    # --- Step 8: verify ---

    def verify(self, record: ConfigurationRecord) -> bool:
        self._step(8, "Verify")
        t = self.term
        if not self.has_aws_cli:
            t.warn("Skipping verification (AWS CLI not installed).")
            return False

        t.info("Running a lightweight Bedrock API check…")
        if self.discovery.verify_connectivity(record.region, record.profile_name):
            t.success(f"AWS Bedrock API responded successfully in {record.region}.")
            return True

        t.warn(f"Could not reach Bedrock in {record.region}.")
        t.plain()
        t.info("Common causes:")
        t.info(f"  • Your SSO session may have expired. Run: aws sso login --profile {record.profile_name or '<PROFILE>'}")
        t.info("  • Your IAM role/user may not have bedrock:ListInferenceProfiles permission.")
        t.info("  • The region may not have Bedrock enabled for your account.")
        return False

    # --- Step 9: summary ---

    def summary(self, result: WriteResult, record: ConfigurationRecord) -> None:
        self._step(9, "Summary")
        t = self.term
        path = result.path

        t.console.print(Text.assemble("Configuration written to ", (str(path), "bold"), ":"))
        t.plain()
        t.console.print(Syntax(path.read_text(encoding="utf-8"), "json", background_color="default"))
        t.plain()
        t.plain("─" * 64)
        t.plain()
        t.success("Setup complete!")
        t.info(f"Authentication: {record.auth_method.label}")
        t.plain()
        t.info("Next steps:")
        t.console.print(Text.assemble(("[INFO]", "blue"), "    1. Run ", ("claude", "bold"), " to start Claude Code."))
        if record.auth_method is AuthMethod.SSO and record.auth_refresh_command() is None:
            t.info(f"  2. When your SSO session expires, run: aws sso login --profile {record.profile_name}")
        elif record.auth_method is AuthMethod.KEYS:
            t.info("  2. Make sure your access keys are set via 'aws configure' or your shell profile.")
        else:
            t.info("  2. If you see authentication errors, verify your AWS credentials.")
        t.plain()
        t.info("Troubleshooting:")
        t.info(f"  • SSO expired?       aws sso login --profile {record.profile_name or '<PROFILE>'}")
        t.info(f"  • Wrong region?      Edit AWS_REGION in {path}")
        t.info(f"  • Wrong model?       Edit ANTHROPIC_MODEL in {path}")
        t.info(f"  • Reset everything:  Restore from {backup_path(path)}")
        t.plain()
