import csv
import logging
import zipfile
from io import BytesIO, StringIO
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from app.utils.errors import UnreadableGradeSheet

logger = logging.getLogger(__name__)

XLSX_SIGNATURE = b'PK\x03\x04'


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def _read_xlsx(data):
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=False)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        logger.info(f'Rejected xlsx upload: {e}')
        raise UnreadableGradeSheet('not a valid xlsx workbook')
    try:
        return [list(row) for row in wb.active.iter_rows(values_only=True)]
    finally:
        wb.close()


def _read_csv(data):
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise UnreadableGradeSheet('csv files must be UTF-8 encoded')
    try:
        return [[None if cell == '' else cell for cell in row] for row in csv.reader(StringIO(text))]
    except csv.Error as e:
        raise UnreadableGradeSheet(str(e))


def read_sheet_rows(buffer):
    """Rows of the first sheet as ``(row_number, cells)``, blank rows dropped.

    The format is taken from the content: a zip container is read as xlsx,
    anything else as UTF-8 csv. Row numbers are 1-based spreadsheet rows.
    """
    data = buffer.read() if hasattr(buffer, 'read') else bytes(buffer)
    rows = _read_xlsx(data) if data.startswith(XLSX_SIGNATURE) else _read_csv(data)

    return [
        (row_number, cells)
        for row_number, cells in enumerate(rows, 1)
        if not all(_is_blank(cell) for cell in cells)
    ]
