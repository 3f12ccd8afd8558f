"""Settings merge strategies.

Every strategy turns the existing settings bytes (or None when the file does
not exist) plus a ConfigurationRecord into the new settings bytes:

- ``json``: in-process merge with the standard library ``json`` module
- ``jq``: the same merge delegated to a ``jq`` subprocess
- ``overwrite``: destructive fallback that writes only the managed keys

The first two never drop keys they do not own. The overwrite strategy is
flagged ``destructive`` so the settings writer asks before using it on an
existing file.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import Any, Callable, Dict, List, Optional

from .errors import MergeError, ParseError, SchemaError, ToolUnavailableError
from .record import AUTH_REFRESH_KEY, ENV_KEY, ConfigurationRecord

logger = logging.getLogger(__name__)

STRATEGY_CHOICES = ("auto", "json", "jq", "overwrite")

Which = Callable[[str], Optional[str]]


def is_blank(existing: Optional[bytes]) -> bool:
    return existing is None or not existing.strip()


def _reject_constant(name: str) -> Any:
    raise ParseError(f"settings file is not valid JSON: {name} is not a JSON value")


def parse_document(existing: Optional[bytes]) -> Dict[str, Any]:
    """Decode settings bytes into an ordered mapping.

    Blank input is an empty document. Raises ParseError for undecodable or
    invalid JSON (including the ``NaN``/``Infinity`` literals Python accepts)
    and SchemaError when the root is not an object.
    """
    if is_blank(existing):
        return {}
    try:
        data = json.loads(existing.decode("utf-8-sig"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"settings file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SchemaError(
            f"settings root must be a JSON object, found {type(data).__name__}"
        )
    return data


def apply_record(document: Dict[str, Any], record: ConfigurationRecord) -> Dict[str, Any]:
    """Upsert the managed keys of ``record`` into ``document`` in place."""
    env = document.get(ENV_KEY)
    if env is None:
        env = {}
    elif not isinstance(env, dict):
        raise SchemaError(
            f"'{ENV_KEY}' must be a JSON object, found {type(env).__name__}"
        )
    env.update(record.env_entries())
    document[ENV_KEY] = env

    refresh = record.auth_refresh_command()
    if refresh is not None:
        document[AUTH_REFRESH_KEY] = refresh
    return document


def dump_document(document: Dict[str, Any]) -> bytes:
    """Serialise as strict JSON. Numbers that overflowed to inf raise SchemaError."""
    try:
        text = json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
    except ValueError as e:
        raise SchemaError(f"settings contain a number that cannot be written back as JSON: {e}") from e
    return (text + "\n").encode("utf-8")


class MergeStrategy:
    """One way of producing the new settings bytes."""

    name = ""
    description = ""
    destructive = False

    def is_available(self) -> bool:
        raise NotImplementedError

    def merge(self, existing: Optional[bytes], record: ConfigurationRecord) -> bytes:
        raise NotImplementedError


class JsonLibraryStrategy(MergeStrategy):
    name = "json"
    description = "Python json module"

    def is_available(self) -> bool:
        return True

    def merge(self, existing: Optional[bytes], record: ConfigurationRecord) -> bytes:
        document = parse_document(existing)
        return dump_document(apply_record(document, record))


# Slurped so that trailing garbage after the first document is a parse error,
# matching the json module.
JQ_FILTER = """\
if length != 1 then error("parse: expected exactly one JSON document") else .[0] end
| if type != "object" then error("schema: settings root must be a JSON object")
  elif (.env != null) and ((.env | type) != "object") then error("schema: env must be a JSON object")
  else .env = ((.env // {}) + $managed)
    | if $refresh == "" then . else .awsAuthRefresh = $refresh end
  end
"""


class JqStrategy(MergeStrategy):
    name = "jq"
    description = "jq"

    def __init__(self, which: Which = shutil.which, command: str = "jq"):
        self._which = which
        self.command = command

    def is_available(self) -> bool:
        return self._which(self.command) is not None

    def merge(self, existing: Optional[bytes], record: ConfigurationRecord) -> bytes:
        payload = b"{}" if is_blank(existing) else existing
        cmd = [
            self.command,
            "--slurp",
            "--indent", "2",
            "--argjson", "managed", json.dumps(record.env_entries()),
            "--arg", "refresh", record.auth_refresh_command() or "",
            JQ_FILTER,
        ]
        logger.debug("running %s", cmd[:3])
        try:
            p = subprocess.run(cmd, input=payload, capture_output=True)
        except OSError as e:
            raise ToolUnavailableError(f"could not run {self.command}: {e}") from e

        if p.returncode != 0:
            stderr = p.stderr.decode("utf-8", errors="replace").strip()
            logger.debug("jq exited %s: %s", p.returncode, stderr)
            if "schema:" in stderr:
                raise SchemaError(stderr.split("schema:", 1)[1].strip())
            if "parse error" in stderr or "parse:" in stderr:
                raise ParseError(f"settings file is not valid JSON: {stderr}")
            raise MergeError(f"jq failed (exit {p.returncode}): {stderr}")
        return p.stdout


class OverwriteStrategy(MergeStrategy):
    """Writes a fresh document holding only the managed keys."""

    name = "overwrite"
    description = "full overwrite (no merge tool)"
    destructive = True

    def is_available(self) -> bool:
        return True

    def merge(self, existing: Optional[bytes], record: ConfigurationRecord) -> bytes:
        document: Dict[str, Any] = {}
        refresh = record.auth_refresh_command()
        if refresh is not None:
            document[AUTH_REFRESH_KEY] = refresh
        document[ENV_KEY] = record.env_entries()
        return dump_document(document)


def ranked_strategies(which: Which = shutil.which) -> List[MergeStrategy]:
    return [JsonLibraryStrategy(), JqStrategy(which=which), OverwriteStrategy()]


def select_strategy(preference: str = "auto", which: Which = shutil.which) -> MergeStrategy:
    """Pick the merge strategy once, at startup.

    ``auto`` takes the first available strategy in rank order. A named
    strategy that is not available raises ToolUnavailableError.
    """
    strategies = ranked_strategies(which)
    if preference == "auto":
        for strategy in strategies:
            if strategy.is_available():
                logger.debug("selected merge strategy %s", strategy.name)
                return strategy
        raise ToolUnavailableError("no merge strategy is available")

    for strategy in strategies:
        if strategy.name == preference:
            if not strategy.is_available():
                raise ToolUnavailableError(
                    f"merge strategy '{preference}' requested but {strategy.description} is not installed"
                )
            logger.debug("selected merge strategy %s (explicit)", strategy.name)
            return strategy
    raise ToolUnavailableError(
        f"unknown merge strategy '{preference}' (choose from {', '.join(STRATEGY_CHOICES)})"
    )
