"""Locate the Subsonic schema document to compile.

Discovery order:
        1. Explicit path via the ``SUBSONIC_SCHEMA_PATH`` environment variable
        2. Version override via ``SUBSONIC_SCHEMA_VERSION`` (selects a bundled file)
        3. The bundled schema for the requested version (default 1.16.1)

Example:
        from subsonic_schema_api.schema_locator import locate_schema
        path = locate_schema()
        print("Using schema at", path)

Notes:
* Bundled schemas ship as package data under ``subsonic_schema_api/schemas``.
* A path from the environment that does not exist is reported and skipped
    rather than silently compiled as an empty schema.
"""

import logging
import os
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"

BUNDLED_SCHEMAS = {
    "1.16.1": "subsonic-rest-api-1.16.1.xsd",
}

DEFAULT_SCHEMA_VERSION = "1.16.1"


def get_available_versions() -> List[str]:
    """Return the schema versions bundled with the package."""
    return list(BUNDLED_SCHEMAS.keys())


def bundled_schema_path(version: str = DEFAULT_SCHEMA_VERSION) -> Path:
    """Return the bundled schema path for ``version``.

    Raises:
        FileNotFoundError: If no schema is bundled for that version.
    """
    if version not in BUNDLED_SCHEMAS:
        raise FileNotFoundError(
            f"No bundled schema for version {version}. Available: {get_available_versions()}"
        )
    return SCHEMA_DIR / BUNDLED_SCHEMAS[version]


def locate_schema(prefer_version: str = DEFAULT_SCHEMA_VERSION) -> Path:
    """Resolve the schema file via the discovery cascade.

    Args:
        prefer_version: Bundled version used when nothing overrides it.

    Returns:
        Path to an existing schema document.
    """
    env_path = os.getenv("SUBSONIC_SCHEMA_PATH")
    if env_path:
        path = Path(env_path).expanduser()
        if path.exists():
            logger.info(f"Using Subsonic schema from environment: {path}")
            return path
        logger.warning(f"SUBSONIC_SCHEMA_PATH set but file not found: {path}")

    env_version = os.getenv("SUBSONIC_SCHEMA_VERSION")
    if env_version and env_version in BUNDLED_SCHEMAS:
        prefer_version = env_version
        logger.info(f"Using schema version from environment: {prefer_version}")

    path = bundled_schema_path(prefer_version)
    logger.debug(f"Using bundled Subsonic schema: {path}")
    return path
