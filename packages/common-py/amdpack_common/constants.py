"""
Shared constants for AMDPack packages.
"""

import os

# Ids provided by the AMD loader itself; never bundled.
RESERVED_MODULE_IDS = ("require", "exports", "module")

DEFAULT_PACKAGE_MAIN = "main"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOG_LEVEL_ENV_VAR = "AMDPACK_LOG_LEVEL"


class BundleDefaults:
    """
    Formatting used when stitching bundle fragments together.

    Proxy templates take ids already quoted as JavaScript string literals.
    """

    FRAGMENT_SEPARATOR = "\n\n"
    PROXY_PADDING = "\n"
    PACKAGE_PROXY_TEMPLATE = "define({name}, [{module}], function (main) {{ return main; }});"
    ALIAS_PROXY_TEMPLATE = "define({alias}, [{target}], function (target) {{ return target; }});"


def default_log_level() -> str:
    """Log level taken from the environment, INFO when unset or unknown."""
    level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"
