"""
Tabular exports: one (columns, rows) input, three output formats
"""
import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from fpdf.fonts import FontFace
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from exceptions import ExportError
from fonts import FONT_FAMILY, register_fonts
from formatting import PRIMARY_COLOR, pdf_text
from records import ExportOptions

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_WIDTH = 15
ROW_SHADE = (245, 245, 245)

MIMETYPES = {
    'csv': 'text/csv',
    'excel': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pdf': 'application/pdf',
}
EXTENSIONS = {'csv': '.csv', 'excel': '.xlsx', 'pdf': '.pdf'}
FORMAT_ALIASES = {'csv': 'csv', 'excel': 'excel', 'xlsx': 'excel', 'pdf': 'pdf'}


@dataclass(frozen=True)
class ExportFile:
    filename: str
    mimetype: str
    content: bytes


def cell_text(value):
    """Text shown for a value in every export format"""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cell_matrix(options: ExportOptions):
    """Header row followed by one row of cell text per record"""
    matrix = [[column.header for column in options.columns]]
    for row in options.rows:
        matrix.append([cell_text(row.get(column.key)) for column in options.columns])
    return matrix


def to_csv(options: ExportOptions) -> str:
    output = io.StringIO()
    writer = csv.writer(output, delimiter=',', quotechar='"',
                        quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerows(cell_matrix(options))
    text = output.getvalue()
    # No trailing newline after the last record
    if text.endswith('\n'):
        text = text[:-1]
    return text


def _xlsx_value(value):
    if isinstance(value, bool) or value is None:
        return cell_text(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    return cell_text(value)


def _sheet_title(title):
    text = str(title or 'Data')
    for ch in '[]:*?/\\':
        text = text.replace(ch, ' ')
    return text.strip()[:31] or 'Data'


def to_excel(options: ExportOptions) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = _sheet_title(options.title)

    header_fill = PatternFill(start_color='1E3A5F', end_color='1E3A5F', fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF')

    ws.append([column.header for column in options.columns])
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')

    for row in options.rows:
        ws.append([_xlsx_value(row.get(column.key)) for column in options.columns])

    # a leading = stays text, never a formula
    for cells in ws.iter_rows():
        for cell in cells:
            if isinstance(cell.value, str) and cell.value.startswith('='):
                cell.data_type = 's'

    for index, column in enumerate(options.columns, start=1):
        ws.column_dimensions[get_column_letter(index)].width = column.width or DEFAULT_COLUMN_WIDTH

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


class TablePDF(FPDF):
    """Single-table PDF; the heading row repeats on every page"""

    def __init__(self, options: ExportOptions, generated_at=None):
        orientation = 'L' if len(options.columns) > 6 else 'P'
        super().__init__(orientation=orientation, unit='mm', format='A4')
        self.options = options
        register_fonts(self)
        self.generated_at = generated_at or datetime.now()
        self.set_margins(14, 14, 14)
        self.set_auto_page_break(True, margin=18)
        self.col_weights = tuple(column.width or DEFAULT_COLUMN_WIDTH for column in options.columns)

    def footer(self):
        self.set_y(-12)
        self.set_font(FONT_FAMILY, 'I', 8)
        self.set_text_color(128, 128, 128)
        stamp = self.generated_at.strftime('%Y-%m-%d %H:%M')
        self.cell(0, 6, f"Generated on: {stamp}", align='L', new_x=XPos.LMARGIN, new_y=YPos.TOP)
        self.cell(0, 6, f"Page {self.page_no()} of {{nb}}", align='R')

    def title_block(self):
        opts = self.options
        self.set_text_color(0, 0, 0)
        if opts.school_name:
            self.set_font(FONT_FAMILY, 'B', 16)
            self.cell(0, 8, pdf_text(opts.school_name), align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if opts.title:
            self.set_font(FONT_FAMILY, 'B', 13)
            self.cell(0, 7, pdf_text(opts.title), align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if opts.subtitle:
            self.set_font(FONT_FAMILY, '', 10)
            self.set_text_color(100, 100, 100)
            self.cell(0, 6, pdf_text(opts.subtitle), align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_text_color(0, 0, 0)
        self.ln(4)

    def render(self, matrix):
        self.alias_nb_pages()
        self.add_page()
        self.title_block()
        self.set_font(FONT_FAMILY, '', 8)
        headings_style = FontFace(emphasis='BOLD', color=255, fill_color=PRIMARY_COLOR)
        # First matrix row is the header, repeated at the top of every page
        with self.table(col_widths=self.col_weights, headings_style=headings_style,
                        cell_fill_color=ROW_SHADE, cell_fill_mode='ROWS',
                        line_height=6, text_align='LEFT') as table:
            for values in matrix:
                row = table.row()
                for value in values:
                    row.cell(pdf_text(value))
        return bytes(self.output())


def to_pdf(options: ExportOptions, generated_at=None) -> bytes:
    return TablePDF(options, generated_at).render(cell_matrix(options))


def export_data(fmt, options, generated_at=None) -> ExportFile:
    """Render options (ExportOptions or its dict form) in the requested format"""
    kind = FORMAT_ALIASES.get(str(fmt or '').lower())
    if kind is None:
        raise ExportError(f"Unsupported export format: {fmt}")
    if not isinstance(options, ExportOptions):
        options = ExportOptions.from_dict(options)

    if kind == 'csv':
        content = to_csv(options).encode('utf-8')
    elif kind == 'excel':
        content = to_excel(options)
    else:
        content = to_pdf(options, generated_at)

    filename = options.filename
    if not filename.lower().endswith(EXTENSIONS[kind]):
        filename += EXTENSIONS[kind]
    logger.info("Exported %d rows as %s (%s)", len(options.rows), kind, filename)
    return ExportFile(filename=filename, mimetype=MIMETYPES[kind], content=content)
