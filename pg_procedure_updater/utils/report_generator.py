from __future__ import annotations

import csv
import html
import json
from pathlib import Path
from typing import Any, Callable, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

REPORT_TITLE = "Procedure List Update Report"

COLUMNS = [
    ("Type", "type"),
    ("Name", "name"),
    ("Occurrence", "occurrence"),
    ("Status", "status"),
    ("Line", "line"),
    ("Replacement File", "replacement_file"),
    ("Changed Lines", "changed_lines"),
    ("Message", "message"),
]


def _rows(outcomes: List[Dict[str, Any]]) -> List[List[str]]:
    rows = []
    for item in outcomes:
        rows.append(["" if item.get(key) is None else str(item.get(key)) for _header, key in COLUMNS])
    return rows


def _headers() -> List[str]:
    return [header for header, _key in COLUMNS]


def export_csv(outcomes: List[Dict[str, Any]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(_headers())
        writer.writerows(_rows(outcomes))


def export_html(outcomes: List[Dict[str, Any]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "<!DOCTYPE html>",
        f"<html><head><meta charset='utf-8'><title>{REPORT_TITLE}</title>",
        "<style>table{border-collapse:collapse;width:100%;}th,td{border:1px solid #ccc;padding:6px;} .UPDATED{background:#e6ffe6;} .NO_REPLACEMENT{background:#f2f2f2;} .REPLACEMENT_FAILED{background:#ffe6e6;} .SOURCE_UNPARSED{background:#fffacd;}</style>",
        "</head><body>",
        f"<h2>{REPORT_TITLE}</h2>",
        "<table><tr>" + "".join(f"<th>{header}</th>" for header in _headers()) + "</tr>",
    ]
    status_index = _headers().index("Status")
    for row in _rows(outcomes):
        css_class = html.escape(row[status_index], quote=True)
        cells = "".join(f"<td>{html.escape(value)}</td>" for value in row)
        lines.append(f"<tr class='{css_class}'>{cells}</tr>")
    lines.append("</table></body></html>")

    path.write_text("\n".join(lines), encoding="utf-8")


def export_json(outcomes: List[Dict[str, Any]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(outcomes, indent=2, default=str), encoding="utf-8")


def export_excel(outcomes: List[Dict[str, Any]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.title = "Objects"
    ws.append(_headers())
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in _rows(outcomes):
        ws.append(row)
    wb.save(path)


def export_pdf(outcomes: List[Dict[str, Any]], path: Path) -> None:
    """Export update outcomes to a simple PDF report.

    The PDF contains a title and a single table with one row per
    procedure or function found in the script.
    """

    path.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(str(path), pagesize=landscape(A4))
    styles = getSampleStyleSheet()

    elements: List[Any] = [Paragraph(REPORT_TITLE, styles["Heading1"]), Spacer(1, 12)]

    data: List[List[str]] = [_headers()] + _rows(outcomes)

    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 9),
                ("FONTSIZE", (0, 1), (-1, -1), 7),
            ]
        )
    )

    elements.append(table)
    doc.build(elements)


EXPORTERS: Dict[str, Callable[[List[Dict[str, Any]], Path], None]] = {
    ".csv": export_csv,
    ".html": export_html,
    ".htm": export_html,
    ".json": export_json,
    ".xlsx": export_excel,
    ".pdf": export_pdf,
}


def export_report(outcomes: List[Dict[str, Any]], path: Path, report_format: str = "csv") -> Path:
    """Write outcomes using the exporter matching the file extension.

    When the path has no extension, ``report_format`` picks the exporter and
    is appended to the file name.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if not suffix:
        suffix = "." + report_format.lower().lstrip(".")
        path = path.with_name(path.name + suffix)

    exporter = EXPORTERS.get(suffix)
    if exporter is None:
        raise ValueError(f"Unsupported report format: {suffix}")

    exporter(outcomes, path)
    return path
