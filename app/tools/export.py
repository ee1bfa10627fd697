import csv
import io
from typing import Any, Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from app.models.requisition import Requisition

CSV_HEADERS = ["Timestamp", "Department", "Applicant", "Purpose", "Status", "Approvals",
               "Item Category", "Inventory Item", "Quantity"]

XLSX_SHEET_TITLE = "Requests"
MAX_COLUMN_WIDTH = 50


def approvals_summary(requisition: Requisition) -> str:
    return "; ".join(f"{step.approver_role}: {step.step_status}" for step in requisition.approval_chain)


def requisition_rows(requisition: Requisition) -> List[List[Any]]:
    """One row per line item; a requisition without items still gets a row."""
    base = [
        requisition.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        requisition.department_name or requisition.department_id,
        requisition.applicant_name,
        requisition.purpose,
        str(requisition.status),
        approvals_summary(requisition),
    ]
    if not requisition.line_items:
        return [base + ["", "", ""]]
    return [base + [li.category_name or li.category_id, li.item_name or li.item_id, li.quantity]
            for li in requisition.line_items]


def export_requisitions_csv(requisitions: Iterable[Requisition]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for requisition in requisitions:
        writer.writerows(requisition_rows(requisition))
    return buffer.getvalue()


def export_requisitions_xlsx(requisitions: Iterable[Requisition]) -> bytes:
    """Same rows as the CSV export, as a single-sheet workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = XLSX_SHEET_TITLE

    ws.append(CSV_HEADERS)
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = Font(bold=True, color="FFFFFF")
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for requisition in requisitions:
        for row in requisition_rows(requisition):
            ws.append(row)

    for column in ws.columns:
        width = max(len(str(cell.value)) for cell in column if cell.value is not None)
        ws.column_dimensions[get_column_letter(column[0].column)].width = min(width + 2, MAX_COLUMN_WIDTH)
    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
