from __future__ import annotations

from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy.orm import Session

from app.models import Task, TaskFlag
from app.services.notifications import person_names

DAILY_HEADERS = [
    "Vrijeme",
    "Naslov",
    "Slugline",
    "Lokacija",
    "Redakcija",
    "Tip pokrivanja",
    "Prilog",
    "Status",
    "Novinari",
    "Kamermani",
    "Vozilo",
    "Oznake",
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")

HEADER_FONT = Font(bold=True, color="FFFFFF")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _merge_title(ws: Worksheet, row: int, text: str) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=len(DAILY_HEADERS))
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _time_range_label(task: Task) -> str:
    if task.time_start and task.time_end:
        return f"{task.time_start[:5]} - {task.time_end[:5]}"
    if task.time_start:
        return task.time_start[:5]
    return "-"


def _joined_names(db: Session, ids: list[int] | None) -> str:
    return ", ".join(person_names(db, [int(item) for item in ids or []])) or "-"


def build_daily_tasks_xlsx_bytes(db: Session, *, day: str, tasks: list[Task]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = day[:31]

    _merge_title(ws, 1, f"Dnevni plan zadataka {day}")
    ws.append([])
    ws.append(DAILY_HEADERS)
    header_row = ws.max_row
    _style_header(ws, header_row)

    for task in tasks:
        vehicle = task.vehicle
        ws.append(
            [
                _time_range_label(task),
                task.title,
                task.slugline or "-",
                task.location or "-",
                task.newsroom.name if task.newsroom else "-",
                task.coverage_type or "-",
                task.attachment_type or "-",
                task.status,
                _joined_names(db, task.journalist_ids),
                _joined_names(db, task.cameraman_ids),
                f"{vehicle.name} ({vehicle.plate_number})" if vehicle else "-",
                ", ".join(task.flags or []) or "-",
            ]
        )

    flags_col = DAILY_HEADERS.index("Oznake") + 1
    for row_idx in range(header_row + 1, ws.max_row + 1):
        urgent = TaskFlag.HITNO.value in str(ws.cell(row=row_idx, column=flags_col).value or "")
        for col_idx in range(1, ws.max_column + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="left", vertical="center")
            if urgent:
                cell.fill = ALERT_FILL
            elif row_idx % 2 == 0:
                cell.fill = ZEBRA_FILL

    ws.freeze_panes = f"A{header_row + 1}"
    if ws.max_row > header_row:
        ws.auto_filter.ref = f"A{header_row}:{get_column_letter(ws.max_column)}{ws.max_row}"
    _auto_width(ws)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
