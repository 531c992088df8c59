import logging
import os
from typing import Iterable, Optional

from config.paths import BUNDLED_SCRIPTS_DIR
from config.settings import UpgradeConfig

logger = logging.getLogger(__name__)


def _search_roots() -> Iterable[str]:
    yield from UpgradeConfig.SCRIPTS_PATH
    yield os.getcwd()
    yield BUNDLED_SCRIPTS_DIR


def find_script(path: str, script_name: str) -> Optional[str]:
    """
    Locate an upgrade script such as 'db/schema-442to450.sql'.

    Configured CLOUD_SCRIPTS_PATH entries are searched first, then the
    working directory, then the scripts bundled with the package.

    Returns:
        Absolute path of the first match, or None if the script is nowhere
    """
    for root in _search_roots():
        candidate = os.path.abspath(os.path.join(root, path, script_name))
        if os.path.isfile(candidate):
            logger.debug(f"Found {script_name} at {candidate}")
            return candidate

    logger.debug(f"Script {script_name} not found under {path or '.'}")
    return None
