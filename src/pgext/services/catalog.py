"""Extension catalog.

The catalog is a static list of known extensions loaded once from YAML.
Entries are immutable; the reverse dependency index (need_by) is derived
from the requires edges when the catalog is built.
"""

from collections import defaultdict
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import yaml

from pgext.core.exceptions import CatalogError


BUILTIN_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "extensions.yaml"

# Repository name of extensions shipped with the PostgreSQL server
CONTRIB_REPO = "CONTRIB"


class Relocatable(Enum):
    """Whether an extension can be moved to another schema."""
    RELOCATABLE = "t"
    NOT_RELOCATABLE = "f"
    UNKNOWN = ""

    @classmethod
    def parse(cls, value: Any) -> "Relocatable":
        """Map a catalog value onto the enum; only "t" (or True) is relocatable."""
        if value is True or value == "t":
            return cls.RELOCATABLE
        if value is False or value == "f":
            return cls.NOT_RELOCATABLE
        return cls.UNKNOWN


class OSFamily(str, Enum):
    """Packaging family."""
    RPM = "rpm"
    DEB = "deb"


@dataclass(frozen=True)
class Extension:
    """A catalog entry."""

    name: str
    alias: str = ""
    description: str = ""
    category: str = ""
    version: str = ""
    license: str = ""
    url: str = ""
    summary_url: str = ""
    comment: str = ""

    pg_ver: tuple[int, ...] = ()

    need_ddl: bool = False
    need_load: bool = False
    create_sql: str = ""
    shared_lib: str = ""
    superuser: str = ""
    relocatable: Relocatable = Relocatable.UNKNOWN
    schemas: str = ""

    requires: tuple[str, ...] = ()
    need_by: tuple[str, ...] = ()

    rpm_repo: str = ""
    rpm_pkg: str = ""
    rpm_ver: str = ""
    rpm_pg: tuple[int, ...] = ()
    rpm_deps: tuple[str, ...] = ()

    deb_repo: str = ""
    deb_pkg: str = ""
    deb_ver: str = ""
    deb_pg: tuple[int, ...] = ()
    deb_deps: tuple[str, ...] = ()

    bad_case: tuple[str, ...] = ()

    @property
    def is_contrib(self) -> bool:
        """True for extensions shipped with the PostgreSQL server itself."""
        return CONTRIB_REPO in (self.rpm_repo, self.deb_repo)

    def available_for(self, major: int) -> bool:
        """Check whether the extension supports a PostgreSQL major version."""
        return major in self.pg_ver

    def packages(self, family: OSFamily, major: int) -> list[str]:
        """Package names for a packaging family, with $v set to the major version."""
        template = self.rpm_pkg if family == OSFamily.RPM else self.deb_pkg
        return [pkg.replace("$v", str(major)) for pkg in template.split()]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Extension":
        """Build an extension from a catalog entry.

        Raises:
            CatalogError: If the entry has no name, unknown keys or bad values
        """
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise CatalogError(
                "Catalog entry without a name",
                details=[repr(data)[:200]],
            )

        known = {f.name for f in fields(cls)} - {"need_by"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise CatalogError(
                f"Unknown fields in catalog entry '{name}': {', '.join(unknown)}",
            )

        values: dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            if key in ("pg_ver", "rpm_pg", "deb_pg"):
                values[key] = _int_tuple(name, key, value)
            elif key in ("requires", "rpm_deps", "deb_deps", "bad_case"):
                values[key] = _str_tuple(value)
            elif key in ("need_ddl", "need_load"):
                values[key] = bool(value)
            elif key == "relocatable":
                values[key] = Relocatable.parse(value)
            else:
                values[key] = str(value)

        if values.get("need_ddl") and not values.get("create_sql"):
            cascade = " CASCADE" if values.get("requires") else ""
            values["create_sql"] = f"CREATE EXTENSION {name}{cascade};"

        return cls(**values)


def _int_tuple(name: str, key: str, value: Any) -> tuple[int, ...]:
    items = value.split(",") if isinstance(value, str) else value
    try:
        return tuple(int(str(item).strip()) for item in items if str(item).strip())
    except (TypeError, ValueError) as e:
        raise CatalogError(
            f"Invalid {key} in catalog entry '{name}': {value!r}",
            details=[str(e)],
        ) from e


def _str_tuple(value: Any) -> tuple[str, ...]:
    items = value.split(",") if isinstance(value, str) else value
    return tuple(str(item).strip() for item in items if str(item).strip())


class LookupSource(Enum):
    """Which index matched a lookup."""
    NAME = "name"
    ALIAS = "alias"


@dataclass(frozen=True)
class LookupResult:
    """Result of looking up one identifier."""
    identifier: str
    extension: Optional[Extension] = None
    source: Optional[LookupSource] = None

    @property
    def found(self) -> bool:
        return self.extension is not None


class Catalog:
    """Immutable, ordered collection of extensions with name and alias indexes."""

    def __init__(self, extensions: Iterable[Extension]) -> None:
        """Build the catalog and its indexes.

        Raises:
            CatalogError: On duplicate names or aliases shared by two extensions
        """
        entries = list(extensions)

        need_by: dict[str, list[str]] = defaultdict(list)
        for ext in entries:
            for required in ext.requires:
                need_by[required].append(ext.name)

        self._extensions = tuple(
            replace(ext, need_by=tuple(need_by.get(ext.name, ()))) for ext in entries
        )

        self._by_name: dict[str, Extension] = {}
        self._by_alias: dict[str, Extension] = {}
        for ext in self._extensions:
            if ext.name in self._by_name:
                raise CatalogError(f"Duplicate extension name in catalog: '{ext.name}'")
            self._by_name[ext.name] = ext

            if not ext.alias:
                continue
            other = self._by_alias.get(ext.alias)
            if other is not None:
                raise CatalogError(
                    f"Alias '{ext.alias}' is used by both '{other.name}' and '{ext.name}'",
                    hint="Give each extension a distinct alias",
                )
            self._by_alias[ext.alias] = ext

    def __len__(self) -> int:
        return len(self._extensions)

    def __iter__(self) -> Iterator[Extension]:
        return iter(self._extensions)

    @property
    def extensions(self) -> list[Extension]:
        """All extensions in catalog order."""
        return list(self._extensions)

    def lookup(self, identifier: str) -> LookupResult:
        """Find an extension by canonical name, falling back to alias."""
        ext = self._by_name.get(identifier)
        if ext is not None:
            return LookupResult(identifier, ext, LookupSource.NAME)

        ext = self._by_alias.get(identifier)
        if ext is not None:
            return LookupResult(identifier, ext, LookupSource.ALIAS)

        return LookupResult(identifier)

    def search(self, query: str) -> list[Extension]:
        """Case-insensitive substring search over name, alias, description and category.

        Results keep catalog order; no match gives an empty list.
        """
        needle = query.strip().lower()
        if not needle:
            return self.extensions

        return [
            ext for ext in self._extensions
            if any(
                needle in value.lower()
                for value in (ext.name, ext.alias, ext.description, ext.category)
            )
        ]

    def find(self, query: Optional[str] = None) -> list[Extension]:
        """Return the whole catalog without a query, search results otherwise."""
        if query is None:
            return self.extensions
        return self.search(query)


def load_catalog(path: Optional[Path] = None) -> Catalog:
    """Load a catalog from YAML.

    The file holds a list of entries, or a mapping with an `extensions` list.

    Args:
        path: Catalog file (built-in catalog when None)

    Raises:
        CatalogError: If the file is missing, unreadable or malformed
    """
    path = path or BUILTIN_CATALOG_PATH

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise CatalogError(
            f"Catalog file not found: {path}",
            hint="Check catalog.path in the config file or PGEXT_CATALOG",
        )
    except yaml.YAMLError as e:
        raise CatalogError(
            f"Invalid YAML in catalog file: {path}",
            details=[str(e)],
        ) from e
    except PermissionError:
        raise CatalogError(
            f"Cannot read catalog file: {path}",
            hint="Check file permissions",
        )

    if isinstance(data, dict):
        data = data.get("extensions")

    if not isinstance(data, list):
        raise CatalogError(f"Catalog file {path} must contain a list of extensions")

    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise CatalogError(
                f"Invalid catalog entry in {path}",
                details=[repr(item)[:200]],
            )
        entries.append(Extension.from_dict(item))

    return Catalog(entries)
