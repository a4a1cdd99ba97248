import csv
from io import BytesIO, StringIO
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter


def average_formulas(first_column, column_count, row_count):
    """``=AVERAGE(...)`` over the data rows (rows 2..row_count+1) of each column.

    ``first_column`` is the 1-based index of the first averaged column.
    """
    if row_count == 0:
        return [None] * column_count
    formulas = []
    for offset in range(column_count):
        letter = get_column_letter(first_column + offset)
        formulas.append(f'=AVERAGE({letter}2:{letter}{row_count + 1})')
    return formulas


def create_styled_workbook(title, headers, data, column_widths=None, footer=None):
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(name='Arial', size=12, bold=True, color="FFFFFF")
    header_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

    data_font = Font(name='Arial', size=11)
    data_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
    footer_font = Font(name='Arial', size=11, bold=True)

    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num)
        cell.value = header
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment
        cell.border = thin_border

    row_colors = [
        PatternFill(start_color="FFFFFF", end_color="FFFFFF", fill_type="solid"),
        PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
    ]

    for row_num, row_data in enumerate(data, 2):
        fill_color = row_colors[(row_num - 2) % 2]
        for col_num, value in enumerate(row_data, 1):
            cell = ws.cell(row=row_num, column=col_num)
            cell.value = value
            cell.font = data_font
            cell.alignment = data_alignment
            cell.border = thin_border
            cell.fill = fill_color

    if footer:
        footer_row = len(data) + 2
        for col_num, value in enumerate(footer, 1):
            cell = ws.cell(row=footer_row, column=col_num)
            cell.value = value
            cell.font = footer_font
            cell.alignment = data_alignment
            cell.border = thin_border

    if column_widths:
        for col_num, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(col_num)].width = width
    else:
        for col_num in range(1, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col_num)].width = 20

    ws.freeze_panes = 'A2'

    output = BytesIO()
    wb.save(output)
    output.seek(0)

    return output


def create_csv(headers, data, footer=None):
    text = StringIO()
    writer = csv.writer(text)
    writer.writerow(headers)
    for row_data in data:
        writer.writerow(['' if value is None else value for value in row_data])
    if footer:
        writer.writerow(['' if value is None else value for value in footer])

    output = BytesIO(text.getvalue().encode('utf-8'))
    output.seek(0)
    return output
