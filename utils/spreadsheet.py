"""엑셀/CSV 내보내기 및 화이트리스트 가져오기 모듈"""

import csv
import datetime
import os
import zipfile
from typing import Iterable, List, Optional, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from core.models import ScanRecord, StageConfig
from core.reporting import detail_columns, detail_rows, dynamic_headers, inventory_summary
from utils.exceptions import FileHandlingError
from utils.file_handler import get_safe_filename

DETAIL_SHEET_TITLE = "상세 데이터"
SUMMARY_SHEET_TITLE = "재고 보고서"
SUMMARY_COLUMNS = ["순번", "모델명", "총 입고 (첫 공정)", "총 출고 (마지막 공정)", "재고 (미출고)"]
EMPTY_SUMMARY_MESSAGE = "통계 데이터가 없습니다"

BASE_WIDTHS = [6, 20, 25, 20, 15]
END_WIDTHS = [15, 15, 30]
SUMMARY_WIDTH = 22

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")


def _style_header(ws, column_count: int):
    for col in range(1, column_count + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.freeze_panes = "A2"


def _set_widths(ws, widths: Sequence[int]):
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def _detail_widths(stages: Sequence[StageConfig]) -> List[int]:
    dynamic = [max(len(h) + 5, 15) for h in dynamic_headers(stages)]
    return BASE_WIDTHS + dynamic + END_WIDTHS


def export_workbook(path: str, stages: Sequence[StageConfig], history: Iterable[ScanRecord]):
    """상세 데이터 시트와 모델별 재고 보고서 시트를 가진 엑셀 파일을 만듭니다."""
    records = list(history)
    wb = openpyxl.Workbook()

    ws = wb.active
    ws.title = DETAIL_SHEET_TITLE
    columns = detail_columns(stages)
    ws.append(columns)
    for row in detail_rows(records, stages):
        ws.append([row.get(col, "") for col in columns])
    _style_header(ws, len(columns))
    _set_widths(ws, _detail_widths(stages))

    summary_ws = wb.create_sheet(SUMMARY_SHEET_TITLE)
    summary = inventory_summary(records, stages)
    if summary:
        summary_ws.append(SUMMARY_COLUMNS)
        for idx, item in enumerate(summary, start=1):
            summary_ws.append([idx, item.model, item.input_count, item.output_count, item.remaining])
        _style_header(summary_ws, len(SUMMARY_COLUMNS))
        _set_widths(summary_ws, [SUMMARY_WIDTH] * len(SUMMARY_COLUMNS))
    else:
        summary_ws.append(["알림"])
        summary_ws.append([EMPTY_SUMMARY_MESSAGE])
        _style_header(summary_ws, 1)
        _set_widths(summary_ws, [30])

    try:
        wb.save(path)
    except OSError as e:
        raise FileHandlingError(f"엑셀 파일 저장 실패: {e}") from e


def export_csv(path: str, stages: Sequence[StageConfig], history: Iterable[ScanRecord]):
    """상세 데이터를 엑셀에서 바로 열리는 CSV(utf-8-sig)로 저장합니다."""
    columns = detail_columns(stages)
    try:
        with open(path, 'w', newline='', encoding='utf-8-sig') as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            for row in detail_rows(history, stages):
                writer.writerow(row)
    except OSError as e:
        raise FileHandlingError(f"CSV 파일 저장 실패: {e}") from e


def build_export_filename(prefix: str, ext: str, now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now()
    return get_safe_filename(f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}.{ext.lstrip('.')}")


def _first_column_values(path: str) -> List[str]:
    ext = os.path.splitext(path)[1].lower()
    values: List[str] = []
    if ext == '.csv':
        with open(path, 'r', newline='', encoding='utf-8-sig') as f:
            for row in csv.reader(f):
                if row:
                    values.append(row[0])
        return values

    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        for row in ws.iter_rows(min_col=1, max_col=1, values_only=True):
            if row and row[0] is not None:
                values.append(str(row[0]))
    finally:
        wb.close()
    return values


def load_whitelist(path: str) -> str:
    """첫 시트 A열(또는 CSV 첫 열)의 값을 공백으로 이어 화이트리스트 문자열로 반환합니다."""
    try:
        values = _first_column_values(path)
    except FileNotFoundError as e:
        raise FileHandlingError(f"파일을 찾을 수 없습니다: {path}") from e
    except (OSError, ValueError, KeyError, InvalidFileException, zipfile.BadZipFile) as e:
        raise FileHandlingError(f"파일 읽기 오류: {e}") from e

    codes = [value.strip() for value in values if value.strip()]
    if not codes:
        raise FileHandlingError("파일의 A열에 데이터가 없습니다.")
    return ' '.join(codes)
