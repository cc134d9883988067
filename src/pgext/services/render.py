"""Rendering of catalog entries.

A single extension is rendered as a fixed-width box from a Jinja2
template; several extensions are rendered as a Rich table whose columns
depend on whether a PostgreSQL major version is known.
"""

from typing import Any, Iterable

from jinja2 import Environment, PackageLoader, select_autoescape
from rich import box
from rich.cells import set_cell_size
from rich.markup import escape
from rich.table import Table

from pgext.services.catalog import Extension, Relocatable


# Terminal cells between the two vertical borders of the info box
BOX_INNER_WIDTH = 76

# Longest description shown in list tables
DESCRIPTION_WIDTH = 64


def cell(value: Any, width: int) -> str:
    """Fit a value into exactly `width` terminal cells, truncating if needed.

    Wide characters count as two cells; one cut in half becomes a space.
    """
    if value is None:
        text = ""
    elif isinstance(value, (list, tuple)):
        text = ", ".join(str(v) for v in value)
    else:
        text = str(value)

    text = " ".join(text.split())
    return set_cell_size(text, width)


def yesno(flag: Any) -> str:
    """Three-character Yes/No flag."""
    return "Yes" if flag else "No "


def rpm_dependencies_visible(ext: Extension) -> bool:
    """Whether the RPM block shows its Dependencies line.

    This tests the DEB dependency list, not the RPM one, matching the
    catalog tooling's existing output. An RPM-only extension with RPM
    dependencies therefore does not show them.
    """
    return bool(ext.deb_deps)


def _get_jinja_env() -> Environment:
    """Get Jinja2 environment for output templates."""
    env = Environment(
        loader=PackageLoader("pgext", "templates"),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["cell"] = cell
    env.filters["yesno"] = yesno
    env.tests["relocatable"] = lambda value: value is Relocatable.RELOCATABLE
    env.globals.update(
        rpm_dependencies_visible=rpm_dependencies_visible,
        top="╭" + "─" * BOX_INNER_WIDTH + "╮",
        sep="├" + "─" * BOX_INNER_WIDTH + "┤",
        bottom="╰" + "─" * BOX_INNER_WIDTH + "╯",
    )
    return env


def render_extension_info(ext: Extension) -> str:
    """Render the detail box of one extension."""
    template = _get_jinja_env().get_template("extension/info.txt.j2")
    return template.render(ext=ext)


def _short(text: str, width: int = DESCRIPTION_WIDTH) -> str:
    text = text if len(text) <= width else text[: width - 3] + "..."
    return escape(text)


def tabulate_common(extensions: Iterable[Extension]) -> Table:
    """Version-agnostic table of extensions."""
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Alias", no_wrap=True)
    table.add_column("Version")
    table.add_column("Category")
    table.add_column("License")
    table.add_column("PG Versions")
    table.add_column("Description")

    for ext in extensions:
        table.add_row(
            ext.name,
            ext.alias,
            ext.version,
            ext.category,
            ext.license,
            ",".join(str(v) for v in ext.pg_ver),
            _short(ext.description),
        )

    return table


def tabulate_version(major: int, extensions: Iterable[Extension]) -> Table:
    """Table of extensions with their availability for one major version."""
    table = Table(box=box.SIMPLE, show_header=True, title=f"PostgreSQL {major}")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Alias", no_wrap=True)
    table.add_column("Version")
    table.add_column("Category")
    table.add_column(f"PG{major}", no_wrap=True)
    table.add_column("Description")

    for ext in extensions:
        available = "[green]Yes[/green]" if ext.available_for(major) else "[red]No[/red]"
        table.add_row(
            ext.name,
            ext.alias,
            ext.version,
            ext.category,
            available,
            _short(ext.description),
        )

    return table


def tabulate(extensions: Iterable[Extension], major: int = 0) -> Table:
    """Pick the table layout: version-scoped when a major version is known."""
    if major == 0:
        return tabulate_common(extensions)
    return tabulate_version(major, extensions)
