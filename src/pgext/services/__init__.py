"""Services behind the ext commands."""

from pgext.services.catalog import Catalog, Extension, load_catalog
from pgext.services.packages import PackageService
from pgext.services.postgres import PostgresDetector, PostgresInstallation
from pgext.services.resolver import Resolution, VersionResolver

__all__ = [
    "Catalog",
    "Extension",
    "load_catalog",
    "PackageService",
    "PostgresDetector",
    "PostgresInstallation",
    "Resolution",
    "VersionResolver",
]
