"""Interactive wizard that configures Claude Code to use AWS Bedrock."""

from .record import ConfigurationRecord
from .merge import select_strategy
from .settings_file import SettingsWriter

__version__ = "0.1.0"

__all__ = [
    "ConfigurationRecord",
    "SettingsWriter",
    "select_strategy",
    "__version__",
]
