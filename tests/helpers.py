"""Builders for test workbooks, archives and a fake CMS site."""

from __future__ import annotations

import csv
import io
import zipfile
from typing import Any, Callable, Iterable, Sequence

import httpx
from openpyxl import Workbook

PTP_PAGE = "https://cms.test/ncci/ptp"
MUE_PAGE = "https://cms.test/ncci/mue"
AOC_PAGE = "https://cms.test/ncci/aoc"
SOURCE_PAGES = {"ptp": PTP_PAGE, "mue": MUE_PAGE, "aoc": AOC_PAGE}

Sheet = Sequence[Sequence[Any]]


def build_workbook(sheets: dict[str, Sheet]) -> bytes:
    """Build an xlsx file in memory, one sheet per entry."""
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_delimited(rows: Iterable[Sequence[Any]], delimiter: str = ",") -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


def build_zip(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


COPYRIGHT_ROW = ["CPT codes, descriptions and other data only are copyright 2024 AMA."]

# Written unquoted by CMS, so a CSV reader splits it on the comma
CSV_NOTICE_LINE = (
    "CPT codes, descriptions and other data only are copyright 2024 "
    "American Medical Association. All rights reserved."
)

PTP_HEADER = [
    "Column 1",
    "Column 2",
    "* = In existence prior to 1996",
    "Effective Date",
    "Deletion Date *=no data",
    "Modifier 0=not allowed 1=allowed 9=not applicable",
    "PTP Edit Rationale",
]

MUE_HEADER = [
    "HCPCS/CPT Code",
    "Practitioner Services MUE Values",
    "MUE Adjudication Indicator",
    "MUE Rationale",
]

AOC_HEADER = ["Add-On_Code", "Primary_Code", "AOC_Edit_EffDT", "AOC_Edit_DelDT", "AOC_Edit_Type"]


def ptp_workbook() -> bytes:
    return build_workbook(
        {
            "PTP Edits": [
                COPYRIGHT_ROW,
                PTP_HEADER,
                ["99213", "99214", None, "20250101", "*", 1, "Misuse of column two code"],
                ["11042", "97597", None, "20200101", "*", 0, "Mutually exclusive"],
                ["11042", "97598", None, "20100101", "20150331", 0, "Deleted edit"],
            ]
        }
    )


def mue_workbook() -> bytes:
    return build_workbook(
        {
            "MUE": [
                COPYRIGHT_ROW,
                MUE_HEADER,
                ["99213", 1, "3 Date of Service Edit: Clinical", "Nature of Service"],
                ["97110", 4, "3 Date of Service Edit: Clinical", "Clinical Data"],
            ]
        }
    )


def aoc_workbook() -> bytes:
    return build_workbook(
        {
            "AOC": [
                AOC_HEADER,
                ["11045", "11042", "20120101", "*", 1],
                ["11045", "11043", "20120101", "*", 1],
            ]
        }
    )


def mue_csv() -> bytes:
    lines = [
        CSV_NOTICE_LINE,
        ",".join(MUE_HEADER),
        "99213,1,3 Date of Service Edit: Clinical,Nature of Service",
        "97110,4,3 Date of Service Edit: Clinical,Clinical Data",
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def landing_page(*links: tuple[str, str]) -> str:
    anchors = "\n".join(f'<li><a href="{href}">{text}</a></li>' for href, text in links)
    return f"<html><body><h1>NCCI</h1><ul>{anchors}</ul></body></html>"


def ncci_site() -> dict[str, bytes | str]:
    """Routes for a fake CMS site publishing one distribution per kind."""
    return {
        PTP_PAGE: landing_page(
            ("/files/zip/ptp-archive-2024.zip", "Archived PTP edits 2024"),
            (
                "/files/zip/medicare-ncci-2025q4-practitioner-ptp-edits.zip",
                "Medicare NCCI 2025 Q4 Practitioner PTP Edits (Effective 10/01/2025)",
            ),
        ),
        MUE_PAGE: landing_page(
            ("/files/zip/mue-practitioner-2025-quarter-4.zip", "Practitioner Services MUE Table 2025 Quarter 4"),
        ),
        AOC_PAGE: landing_page(
            ("/files/zip/aoc-2025-10-01.zip", "Add-on Code Edits 2025-10-01"),
            ("/policy/aoc-guide.html", "AOC policy guide"),
        ),
        "https://cms.test/files/zip/medicare-ncci-2025q4-practitioner-ptp-edits.zip": build_zip(
            {
                "ReadMe.pdf": b"%PDF-1.4 not tabular",
                "ccipra-v314r0-f1.xlsx": ptp_workbook(),
            }
        ),
        "https://cms.test/files/zip/mue-practitioner-2025-quarter-4.zip": build_zip(
            {"MCR_MUE_PractitionerServices.xlsx": mue_workbook()}
        ),
        "https://cms.test/files/zip/aoc-2025-10-01.zip": build_zip(
            {"AOC_V2025Q4.xlsx": aoc_workbook()}
        ),
    }


def make_transport(
    routes: dict[str, bytes | str | int | Callable[[httpx.Request], httpx.Response]],
    calls: list[str] | None = None,
) -> httpx.MockTransport:
    """MockTransport serving bodies, status codes or handlers by exact URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        route = routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        if isinstance(route, int):
            return httpx.Response(route)
        if isinstance(route, str):
            return httpx.Response(200, text=route, headers={"Content-Type": "text/html"})
        return httpx.Response(200, content=route)

    return httpx.MockTransport(handler)


