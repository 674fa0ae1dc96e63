"""Trash and catalogue location services."""

from .file_service import FileService
from .catalogue_service import CatalogueService

__all__ = ["FileService", "CatalogueService"]
