"""HTML rendering of pending package updates."""
from __future__ import annotations

from collections.abc import Sequence
from html import escape
from pathlib import Path
from string import Template

from pkgalerts.db.models import ChangeRecord

TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "package_updates_email.html"

_ROW = (
    "    <tr>\n"
    "      <td>{name}</td>\n"
    "      <td>{version}</td>\n"
    "      <td>{runtime_version}</td>\n"
    "    </tr>"
)


def _cell(value: str | None) -> str:
    return escape(value) if value is not None else "None"


def render_update_email(
    records: Sequence[ChangeRecord],
    template_dir: str | Path = TEMPLATE_DIR,
) -> str:
    """Render *records* into the HTML body of one update e-mail."""
    template_html = (Path(template_dir) / DEFAULT_TEMPLATE).read_text(encoding="utf-8")
    rows = "\n".join(
        _ROW.format(
            name=_cell(r.package_name),
            version=_cell(r.version),
            runtime_version=_cell(r.runtime_version),
        )
        for r in records
    )
    return Template(template_html).safe_substitute(rows=rows)
