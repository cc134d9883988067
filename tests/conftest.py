"""Shared fixtures for pgext tests."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from pgext.services.catalog import Catalog, Extension
from pgext.services.postgres import PostgresInstallation


@pytest.fixture
def mock_ctx() -> Mock:
    """Create a mock execution context."""
    ctx = Mock()
    ctx.dry_run = False
    return ctx


@pytest.fixture
def mock_executor() -> Mock:
    """Create a mock command executor."""
    return Mock()


@pytest.fixture
def sample_catalog() -> Catalog:
    """A small catalog with an alias, a dependency edge and a contrib entry."""
    return Catalog([
        Extension.from_dict({
            "name": "postgis",
            "alias": "gis",
            "category": "GIS",
            "description": "PostGIS geometry and geography spatial types and functions",
            "version": "3.5.2",
            "license": "GPL-2.0",
            "pg_ver": [14, 15, 16],
            "need_ddl": True,
            "relocatable": "f",
            "rpm_repo": "PGDG",
            "rpm_pkg": "postgis35_$v*",
            "rpm_pg": [14, 15, 16],
            "deb_repo": "PGDG",
            "deb_pkg": "postgresql-$v-postgis-3 postgresql-$v-postgis-3-scripts",
            "deb_pg": [14, 15, 16],
        }),
        Extension.from_dict({
            "name": "postgis_raster",
            "category": "GIS",
            "description": "PostGIS raster types and functions",
            "pg_ver": [14, 15, 16],
            "need_ddl": True,
            "requires": ["postgis"],
            "rpm_repo": "PGDG",
            "rpm_pkg": "postgis35_$v*",
            "deb_repo": "PGDG",
            "deb_pkg": "postgresql-$v-postgis-3",
        }),
        Extension.from_dict({
            "name": "vector",
            "alias": "pgvector",
            "category": "RAG",
            "description": "vector data type and ivfflat and hnsw access methods",
            "pg_ver": [13, 14, 15, 16, 17],
            "need_ddl": True,
            "relocatable": "t",
            "rpm_repo": "PGDG",
            "rpm_pkg": "pgvector_$v*",
            "deb_repo": "PGDG",
            "deb_pkg": "postgresql-$v-pgvector",
        }),
        Extension.from_dict({
            "name": "pg_duckdb",
            "alias": "duckdb",
            "category": "OLAP",
            "description": "DuckDB embedded in Postgres",
            "pg_ver": [16, 17],
            "rpm_repo": "PIGSTY",
            "rpm_pkg": "pg_duckdb_$v*",
            "rpm_deps": ["libduckdb"],
        }),
        Extension.from_dict({
            "name": "hstore",
            "category": "TYPE",
            "description": "data type for storing sets of (key, value) pairs",
            "pg_ver": [14, 15, 16, 17],
            "rpm_repo": "CONTRIB",
            "rpm_pkg": "postgresql$v-contrib",
            "deb_repo": "CONTRIB",
            "deb_pkg": "postgresql-$v",
        }),
    ])


@pytest.fixture
def pg16(tmp_path: Path) -> PostgresInstallation:
    """A PostgreSQL 16 installation rooted in a temporary directory."""
    return PostgresInstallation(
        pg_config=tmp_path / "bin" / "pg_config",
        major_version=16,
        version="16.4",
        bin_dir=tmp_path / "bin",
        share_dir=tmp_path / "share",
        lib_dir=tmp_path / "lib",
    )
