"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/catalogue_service.py
Locating the catalogue database and fetching a pre-built snapshot.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Optional

import requests

from moddupe.core.catalogue import CatalogueStore, CatalogueUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "database.db"
ENV_DATABASE = "MODDUPE_DB"
ENV_CATALOGUE_URL = "MODDUPE_CATALOGUE_URL"
DOWNLOAD_TIMEOUT = 60
CHUNK_SIZE = 1024 * 1024


class CatalogueService:
    """
    Resolves where the catalogue lives and makes sure it is present before matching.
    """

    @staticmethod
    def default_database() -> str:
        return os.getenv(ENV_DATABASE, DEFAULT_DATABASE)

    @staticmethod
    def default_url() -> Optional[str]:
        return os.getenv(ENV_CATALOGUE_URL) or None

    @staticmethod
    def fetch(url: str, target: str, timeout: int = DOWNLOAD_TIMEOUT) -> str:
        """
        Downloads the snapshot at url into target.
        All or nothing: data goes to a temporary file that only replaces target once complete.
        """
        target_path = Path(target).resolve()
        target_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading catalogue from {url}")

        fd, tmp_name = tempfile.mkstemp(prefix=".catalogue-", suffix=".part", dir=str(target_path.parent))
        try:
            with os.fdopen(fd, "wb") as out:
                with requests.get(url, stream=True, timeout=timeout) as response:
                    response.raise_for_status()
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
            os.replace(tmp_name, target_path)
        except (requests.RequestException, OSError) as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise CatalogueUnavailableError(f"Failed to download catalogue from {url}: {e}") from e

        logger.info(f"Catalogue saved to {target_path}")
        return str(target_path)

    @classmethod
    def open(cls, db_path: str, url: Optional[str] = None) -> CatalogueStore:
        """
        Opens an existing catalogue for matching, fetching it first when it is missing.
        Raises CatalogueUnavailableError when it is absent and cannot be fetched.
        """
        if not Path(db_path).is_file():
            if not url:
                raise CatalogueUnavailableError(
                    f"Catalogue not found: {db_path} (build one or configure a download URL)")
            cls.fetch(url, db_path)
        return CatalogueStore(db_path, create=False)
