"""
PDF documents: receipts, payslips, transcripts, report cards and promotion reports.

Every renderer is a pure function of its record: it returns a RenderedDocument
holding the PDF bytes, the download filename, the page count and the ordered
list of sections that were emitted. Layout runs top to bottom with a running
cursor; a block that would cross the printable limit starts a new page.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from fpdf import FPDF
from fpdf.enums import MethodReturnValue

from fonts import FONT_FAMILY, register_fonts
from formatting import (ACCENT_COLOR, GRADING_SCALE, date_stamp, format_amount, format_currency,
                        format_date, format_score, grade_color, grade_for_score, hex_to_rgb,
                        month_name, ordinal, pdf_text, term_label)
from helpers import safe_filename_part
from records import (PayslipRecord, PromotionReportRecord, ReceiptRecord, ReportCardRecord,
                     TranscriptRecord)

logger = logging.getLogger(__name__)

A5 = (148, 210)
LIGHT_BOX = (248, 250, 252)
BOX_BORDER = (226, 232, 240)
BALANCE_FILL = (254, 226, 226)
BALANCE_BORDER = (220, 38, 38)
BALANCE_TEXT = (185, 28, 28)
NET_PAY_FILL = (45, 90, 61)
AMOUNT_TEXT = (0, 80, 0)
MUTED_TEXT = (100, 100, 100)
ACTION_COLORS = {
    'promoted': (34, 197, 94),
    'retained': (245, 158, 11),
    'graduated': (59, 130, 246),
}


@dataclass(frozen=True)
class RenderedDocument:
    filename: str
    content: bytes
    page_count: int
    sections: Tuple[str, ...]
    mimetype: str = 'application/pdf'


class SchoolDocument(FPDF):
    """Shared page furniture for every school-branded document"""

    top_margin = 20
    bottom_limit = 22

    def __init__(self, school, page_format='A4', watermark=None, numbered=False,
                 generated_at=None, bottom_limit=None):
        super().__init__(orientation='P', unit='mm', format=page_format)
        self.school = school
        self.primary = hex_to_rgb(school.primary_color)
        self.watermark_text = watermark
        self.numbered = numbered
        self.generated_at = generated_at or datetime.now()
        self.sections = []
        if bottom_limit is not None:
            self.bottom_limit = bottom_limit
        register_fonts(self)
        self.cursor = self.top_margin
        self.set_auto_page_break(False)
        self.set_margins(10, 10, 10)
        if numbered:
            self.alias_nb_pages()
        self.add_page()

    # page hooks

    def header(self):
        if not self.watermark_text:
            return
        self.set_font(FONT_FAMILY, 'B', 60)
        self.set_text_color(235, 235, 235)
        width = self.get_string_width(self.watermark_text)
        with self.rotation(45, x=self.w / 2, y=self.h / 2):
            self.text(self.w / 2 - width / 2, self.h / 2 + 10, self.watermark_text)
        self.set_text_color(0, 0, 0)

    def footer(self):
        if not self.numbered:
            return
        self.set_font(FONT_FAMILY, '', 8)
        self.set_text_color(*MUTED_TEXT)
        self.put(self.w / 2, self.h - 8, f"Page {self.page_no()} of {{nb}}", align='C')
        self.set_text_color(0, 0, 0)

    # primitives

    def mark(self, name):
        if name not in self.sections:
            self.sections.append(name)

    def put(self, x, y, text, align='L'):
        """Place text with its baseline at y, anchored left, centre or right on x"""
        text = pdf_text(text)
        if align == 'C':
            x -= self.get_string_width(text) / 2
        elif align == 'R':
            x -= self.get_string_width(text)
        self.text(x, y, text)

    def font(self, size, style=''):
        self.set_font(FONT_FAMILY, style, size)

    def ensure_space(self, height):
        """Start a new page when the next block does not fit"""
        if self.cursor + height > self.h - self.bottom_limit:
            self.add_page()
            self.cursor = self.top_margin
            return True
        return False

    def labelled(self, label, value, x_label, x_value, y=None):
        y = self.cursor if y is None else y
        self.font(9, 'B')
        self.put(x_label, y, label)
        self.font(9)
        self.put(x_value, y, value if value not in (None, '') else 'N/A')

    # blocks

    def header_band(self, height=32):
        school = self.school
        self.set_fill_color(*self.primary)
        self.rect(0, 0, self.w, height, style='F')
        self.set_fill_color(*ACCENT_COLOR)
        self.rect(0, height, self.w, 2, style='F')

        self.set_text_color(255, 255, 255)
        y = 14
        self.font(16, 'B')
        self.put(self.w / 2, y, school.name.upper(), align='C')
        y += 6
        self.font(8)
        if school.address:
            self.put(self.w / 2, y, school.address, align='C')
            y += 4
        contact = school.contact_line()
        if contact:
            self.put(self.w / 2, y, contact, align='C')
            y += 4
        if school.motto:
            self.font(8, 'I')
            self.put(self.w / 2, y, f'"{school.motto}"', align='C')
        self.set_text_color(0, 0, 0)
        self.cursor = height + 10
        self.mark('header')

    def title_block(self, title, subtitle=None):
        self.set_text_color(*self.primary)
        self.font(14, 'B')
        self.put(self.w / 2, self.cursor, title, align='C')
        self.cursor += 3
        self.set_draw_color(*ACCENT_COLOR)
        self.set_line_width(0.5)
        self.line(self.w / 2 - 30, self.cursor, self.w / 2 + 30, self.cursor)
        self.cursor += 6
        if subtitle:
            self.font(10)
            self.set_text_color(*MUTED_TEXT)
            self.put(self.w / 2, self.cursor, subtitle, align='C')
            self.cursor += 6
        self.set_text_color(0, 0, 0)
        self.mark('title')

    def section_bar(self, title, name=None):
        self.ensure_space(16)
        self.set_fill_color(*self.primary)
        self.rect(8, self.cursor, self.w - 16, 7, style='F')
        self.set_text_color(255, 255, 255)
        self.font(9, 'B')
        self.put(12, self.cursor + 5, title.upper())
        self.set_text_color(0, 0, 0)
        self.cursor += 11
        if name:
            self.mark(name)

    def info_box(self, pairs, name):
        """Two-column grid of label/value pairs on a light box"""
        rows = (len(pairs) + 1) // 2
        height = rows * 6 + 4
        self.ensure_space(height + 4)
        self.set_fill_color(*LIGHT_BOX)
        self.set_draw_color(*BOX_BORDER)
        self.set_line_width(0.2)
        self.rect(8, self.cursor, self.w - 16, height, style='FD')
        y = self.cursor + 6
        half = self.w / 2
        for index, (label, value) in enumerate(pairs):
            left = index % 2 == 0
            x_label = 12 if left else half + 4
            self.labelled(label, value, x_label, x_label + 30, y)
            if not left:
                y += 6
        self.cursor += height + 6
        self.mark(name)

    def table(self, headers, widths, rows, aligns=None, colors=None, x=8):
        """Bordered table; the header row is repeated after a page break.

        colors maps (row index, column index) to an RGB text colour.
        """
        aligns = aligns or ['L'] * len(headers)
        row_height = 7

        def draw_header():
            self.set_fill_color(*self.primary)
            self.set_text_color(255, 255, 255)
            self.font(8, 'B')
            self.set_xy(x, self.cursor)
            for header, width in zip(headers, widths):
                self.cell(width, row_height, pdf_text(header), border=1, align='C', fill=True)
            self.cursor += row_height
            self.set_text_color(0, 0, 0)

        self.ensure_space(row_height * 2)
        draw_header()
        for r, row in enumerate(rows):
            if self.ensure_space(row_height):
                draw_header()
            self.set_xy(x, self.cursor)
            shaded = r % 2 == 1
            self.set_fill_color(245, 245, 245)
            for c, (value, width, align) in enumerate(zip(row, widths, aligns)):
                color = colors.get((r, c)) if colors else None
                self.font(8, 'B' if color else '')
                self.set_text_color(*(color or (0, 0, 0)))
                self.cell(width, row_height, pdf_text(value), border=1, align=align, fill=shaded)
            self.cursor += row_height
        self.set_text_color(0, 0, 0)
        self.cursor += 4

    def highlight_box(self, label, value, fill, text_color=(255, 255, 255), name=None, height=20):
        self.ensure_space(height + 4)
        self.set_fill_color(*fill)
        self.rect(8, self.cursor, self.w - 16, height, style='F')
        self.set_text_color(*text_color)
        self.font(10, 'B')
        self.put(self.w / 2, self.cursor + 8, label, align='C')
        self.font(14, 'B')
        self.put(self.w / 2, self.cursor + 15, value, align='C')
        self.set_text_color(0, 0, 0)
        self.cursor += height + 6
        if name:
            self.mark(name)

    def warning_box(self, text, name):
        self.ensure_space(14)
        self.set_fill_color(*BALANCE_FILL)
        self.set_draw_color(*BALANCE_BORDER)
        self.set_line_width(0.3)
        self.rect(8, self.cursor, self.w - 16, 10, style='FD')
        self.set_text_color(*BALANCE_TEXT)
        self.font(9, 'B')
        self.put(self.w / 2, self.cursor + 6.5, text, align='C')
        self.set_text_color(0, 0, 0)
        self.cursor += 14
        self.mark(name)

    def paragraph(self, label, text):
        self.font(9)
        lines = self.multi_cell(self.w - 28, 5, pdf_text(text), dry_run=True,
                               output=MethodReturnValue.LINES)
        self.ensure_space(len(lines) * 5 + 8)
        self.font(9, 'B')
        self.put(12, self.cursor, label)
        self.cursor += 2
        self.font(9)
        self.set_xy(12, self.cursor)
        self.multi_cell(self.w - 28, 5, pdf_text(text))
        self.cursor = self.get_y() + 4

    def grading_key(self):
        self.ensure_space(14)
        self.font(7, 'B')
        self.put(12, self.cursor, 'GRADING KEY:')
        self.font(7)
        key = '   '.join(f"{letter} ({low}-{high}) {remark}"
                         for letter, low, high, remark in GRADING_SCALE)
        self.put(32, self.cursor, key)
        self.cursor += 8
        self.mark('grading_key')

    def signatures(self, labels, gap=12):
        self.ensure_space(gap + 12)
        self.cursor += gap
        span = (self.w - 16) / len(labels)
        self.set_draw_color(0, 0, 0)
        self.set_line_width(0.3)
        self.font(8)
        for index, label in enumerate(labels):
            left = 8 + span * index + 6
            right = 8 + span * (index + 1) - 6
            self.line(left, self.cursor, right, self.cursor)
            self.put((left + right) / 2, self.cursor + 5, label, align='C')
        self.cursor += 10
        self.mark('signatures')

    def closing_note(self, text):
        self.ensure_space(10)
        self.font(7, 'I')
        self.set_text_color(*MUTED_TEXT)
        self.put(self.w / 2, self.cursor, text, align='C')
        stamp = self.generated_at.strftime('%d %B %Y %H:%M')
        self.put(self.w / 2, self.cursor + 4, f"Generated on {stamp}", align='C')
        self.set_text_color(0, 0, 0)
        self.cursor += 10
        self.mark('footer')

    def finish(self, filename):
        content = bytes(self.output())
        logger.debug("Rendered %s (%d pages)", filename, self.page_no())
        return RenderedDocument(
            filename=filename,
            content=content,
            page_count=self.page_no(),
            sections=tuple(self.sections),
        )


def _document_filename(doc_type, identifier, generated_at):
    return f"{doc_type}_{safe_filename_part(identifier)}_{date_stamp(generated_at)}.pdf"


def render_receipt(record, generated_at=None, school=None) -> RenderedDocument:
    """Single fee payment receipt on an A5 page"""
    if not isinstance(record, ReceiptRecord):
        record = ReceiptRecord.from_dict(record, school=school)
    generated_at = generated_at or datetime.now()
    # compact A5 layout; a receipt is always a single page
    pdf = SchoolDocument(record.school, page_format=A5, watermark='PAID', generated_at=generated_at,
                         bottom_limit=10)

    pdf.header_band(height=30)
    pdf.title_block('PAYMENT RECEIPT')
    pdf.info_box([
        ('Receipt No:', record.receipt_number),
        ('Date:', format_date(record.payment_date)),
        ('Session:', record.session),
        ('Term:', term_label(record.term)),
    ], 'receipt_details')

    pdf.section_bar('Student Information', 'student_information')
    for label, value in (('Student Name:', record.student_name),
                         ('Admission No:', record.admission_number),
                         ('Class:', record.class_name)):
        pdf.labelled(label, value, 12, 50)
        pdf.cursor += 6

    pdf.section_bar('Payment Details', 'payment_details')
    details = [('Fee Type:', record.fee_type),
               ('Payment Method:', record.payment_method.replace('_', ' ').title())]
    if record.installment_info:
        details.append(('Installment:', record.installment_info))
    for label, value in details:
        pdf.labelled(label, value, 12, 50)
        pdf.cursor += 6

    pdf.highlight_box('AMOUNT PAID', format_currency(record.amount), ACCENT_COLOR,
                      text_color=AMOUNT_TEXT, name='amount_paid')

    if record.has_balance:
        pdf.warning_box(f"Outstanding Balance: {format_currency(record.balance)}",
                        'outstanding_balance')

    pdf.signatures(['Bursar', "Parent/Guardian"], gap=8)
    pdf.closing_note('This is a computer-generated receipt. Thank you for your payment.')
    return pdf.finish(_document_filename('Receipt', record.receipt_number, generated_at))


def render_payslip(record, generated_at=None, school=None) -> RenderedDocument:
    """Monthly salary slip for one staff member"""
    if not isinstance(record, PayslipRecord):
        record = PayslipRecord.from_dict(record, school=school)
    generated_at = generated_at or datetime.now()
    pdf = SchoolDocument(record.school, generated_at=generated_at)
    period = f"{month_name(record.month)} {record.year}"

    pdf.header_band()
    pdf.title_block('PAYSLIP', f"For the month of {period}")
    staff = record.staff
    pdf.info_box([
        ('Name:', staff.name),
        ('Staff ID:', staff.staff_id),
        ('Job Title:', staff.job_title),
        ('Category:', staff.category.replace('_', ' ').title()),
        ('Email:', staff.email),
        ('Status:', record.payment_status.title()),
    ], 'employee_details')

    pdf.section_bar('Earnings', 'earnings')
    pdf.table(['Description', 'Amount (NGN)'], [110, pdf.w - 16 - 110], [
        ['Basic Salary', format_amount(record.basic_salary, 2)],
        ['Gross Salary', format_amount(record.gross_salary, 2)],
    ], aligns=['L', 'R'])

    if record.deductions:
        pdf.section_bar('Deductions', 'deductions')
        rows = [[d.label, format_amount(d.amount, 2)] for d in record.deductions]
        rows.append(['Total Deductions', format_amount(record.total_deductions, 2)])
        pdf.table(['Description', 'Amount (NGN)'], [110, pdf.w - 16 - 110], rows,
                  aligns=['L', 'R'], colors={(len(rows) - 1, 1): BALANCE_TEXT})

    pdf.highlight_box('NET SALARY', format_currency(record.net_salary, 2), NET_PAY_FILL,
                      name='net_salary')

    payment = [(label, value) for label, value in (
        ('Paid On:', format_date(record.paid_at) if record.paid_at else None),
        ('Method:', (record.payment_method or '').replace('_', ' ').title() or None),
        ('Reference:', record.payment_reference),
    ) if value]
    if payment:
        pdf.section_bar('Payment Information', 'payment_information')
        for label, value in payment:
            pdf.labelled(label, value, 12, 50)
            pdf.cursor += 6
        pdf.cursor += 4

    pdf.closing_note('This is a computer-generated payslip and does not require a signature.')
    return pdf.finish(_document_filename('Payslip', staff.staff_id, generated_at))


def _average(values):
    values = list(values)
    if not values:
        return 0.0
    return float(sum(values)) / len(values)


def render_transcript(record, generated_at=None, school=None) -> RenderedDocument:
    """Multi-term academic transcript"""
    if not isinstance(record, TranscriptRecord):
        record = TranscriptRecord.from_dict(record, school=school)
    generated_at = generated_at or datetime.now()
    pdf = SchoolDocument(record.school, watermark='TRANSCRIPT', numbered=True,
                         generated_at=generated_at)

    pdf.header_band()
    pdf.title_block('ACADEMIC TRANSCRIPT')
    pdf.info_box([
        ('Name:', record.student_name),
        ('Admission No:', record.admission_number),
        ('Date of Birth:', format_date(record.date_of_birth) if record.date_of_birth else None),
        ('Gender:', record.gender.title()),
        ('Admitted:', format_date(record.date_of_admission) if record.date_of_admission else None),
        ('Current Class:', record.current_class),
    ], 'student_information')

    widths = [70, 25, 25, 25, pdf.w - 16 - 145]
    for (session, term), grades in record.grouped_grades():
        label = ' - '.join(part for part in (session, term_label(term)) if part)
        pdf.section_bar(label or 'Results', 'academic_record')
        rows, colors = [], {}
        for index, grade in enumerate(grades):
            rows.append([grade.subject, format_score(grade.ca_score), format_score(grade.exam_score),
                         format_score(grade.total_score), grade.grade_letter])
            colors[(index, 4)] = grade_color(grade.grade_letter)
        pdf.table(['Subject', 'CA', 'Exam', 'Total', 'Grade'], widths, rows,
                  aligns=['L', 'C', 'C', 'C', 'C'], colors=colors)
        pdf.ensure_space(8)
        pdf.font(9, 'B')
        pdf.put(pdf.w - 12, pdf.cursor,
                f"Term Average: {_average(g.total_score for g in grades):.1f}%", align='R')
        pdf.cursor += 8

    if record.grades:
        cumulative = _average(g.total_score for g in record.grades)
        letter, remark = grade_for_score(cumulative)
        pdf.section_bar('Cumulative Summary', 'cumulative_summary')
        pdf.labelled('Subjects Taken:', str(len(record.grades)), 12, 50)
        pdf.cursor += 6
        pdf.labelled('Cumulative Average:', f"{cumulative:.1f}%", 12, 50)
        pdf.cursor += 6
        pdf.labelled('Overall Grade:', f"{letter} ({remark})", 12, 50)
        pdf.cursor += 8

    pdf.grading_key()
    pdf.signatures(['Registrar', 'Principal'])
    pdf.closing_note('This transcript is not valid without the school seal.')
    identifier = safe_filename_part(record.student_name)
    return pdf.finish(_document_filename('Transcript', identifier, generated_at))


def render_report_card(record, generated_at=None, school=None) -> RenderedDocument:
    """Single-term report card"""
    if not isinstance(record, ReportCardRecord):
        record = ReportCardRecord.from_dict(record, school=school)
    generated_at = generated_at or datetime.now()
    pdf = SchoolDocument(record.school, generated_at=generated_at)

    pdf.header_band()
    pdf.title_block('STUDENT REPORT CARD', f"{term_label(record.term)} - {record.session} Session")

    class_name = record.class_name
    if record.section:
        class_name = f"{class_name} {record.section}"
    pairs = [
        ('Name:', record.student_name),
        ('Admission No:', record.admission_number),
        ('Class:', class_name),
        ('Gender:', record.gender.title()),
    ]
    if record.position and record.total_students:
        pairs.append(('Position:', f"{ordinal(record.position)} out of {record.total_students}"))
    pdf.info_box(pairs, 'student_information')

    pdf.section_bar('Academic Performance', 'academic_performance')
    rows, colors = [], {}
    for index, grade in enumerate(record.grades):
        letter = grade.grade_letter or grade_for_score(grade.total_score)[0]
        remark = grade.remark or grade_for_score(grade.total_score)[1]
        rows.append([grade.subject, format_score(grade.ca_score), format_score(grade.exam_score),
                     format_score(grade.total_score), letter, remark])
        colors[(index, 4)] = grade_color(letter)
    pdf.table(['Subject', 'CA (40)', 'Exam (60)', 'Total (100)', 'Grade', 'Remark'],
              [52, 22, 22, 24, 18, pdf.w - 16 - 138], rows,
              aligns=['L', 'C', 'C', 'C', 'C', 'L'], colors=colors)

    overall, remark = grade_for_score(record.average_score)
    pdf.info_box([
        ('Total Marks:', f"{format_amount(record.total_marks_obtained)} / "
                         f"{format_amount(record.total_marks_possible)}"),
        ('Average:', f"{float(record.average_score):.1f}%"),
        ('Overall Grade:', f"{overall} ({remark})"),
    ], 'summary')

    if record.attendance:
        att = record.attendance
        pdf.section_bar('Attendance', 'attendance')
        pdf.labelled('Days Present:', str(att.present), 12, 40)
        pdf.labelled('Days Absent:', str(att.absent), pdf.w / 2 - 20, pdf.w / 2 + 5)
        pdf.labelled('Total:', str(att.total), pdf.w - 50, pdf.w - 35)
        pdf.cursor += 8

    if record.teacher_comment or record.principal_comment:
        pdf.section_bar('Comments', 'comments')
        if record.teacher_comment:
            pdf.paragraph("Class Teacher's Comment:", record.teacher_comment)
        if record.principal_comment:
            pdf.paragraph("Principal's Comment:", record.principal_comment)

    if record.next_term_begins or record.next_term_fee:
        pdf.ensure_space(14)
        pdf.set_fill_color(*LIGHT_BOX)
        pdf.set_draw_color(*ACCENT_COLOR)
        pdf.rect(8, pdf.cursor, pdf.w - 16, 10, style='FD')
        pdf.font(9, 'B')
        if record.next_term_begins:
            pdf.put(12, pdf.cursor + 6.5, f"Next Term Begins: {format_date(record.next_term_begins)}")
        if record.next_term_fee:
            pdf.put(pdf.w - 12, pdf.cursor + 6.5, f"Fees: {format_currency(record.next_term_fee)}",
                    align='R')
        pdf.cursor += 14
        pdf.mark('next_term')

    pdf.grading_key()
    pdf.signatures(['Class Teacher', 'Principal', 'Parent/Guardian'])
    identifier = safe_filename_part(record.student_name)
    return pdf.finish(_document_filename('ReportCard', identifier, generated_at))


def render_promotion_report(record, generated_at=None, school=None) -> RenderedDocument:
    """End-of-session promotion summary across classes"""
    if not isinstance(record, PromotionReportRecord):
        record = PromotionReportRecord.from_dict(record, school=school)
    generated_at = generated_at or datetime.now()
    pdf = SchoolDocument(record.school, numbered=True, generated_at=generated_at)

    pdf.header_band()
    pdf.title_block('STUDENT PROMOTION REPORT', f"Academic Session: {record.session}")

    totals = record.totals
    boxes = [('Total Students', totals['total'], pdf.primary),
             ('Promoted', totals['promoted'], ACTION_COLORS['promoted']),
             ('Retained', totals['retained'], ACTION_COLORS['retained']),
             ('Graduated', totals['graduated'], ACTION_COLORS['graduated'])]
    pdf.ensure_space(22)
    box_width = (pdf.w - 16 - 9) / 4
    for index, (label, value, color) in enumerate(boxes):
        x = 8 + index * (box_width + 3)
        pdf.set_fill_color(*color)
        pdf.rect(x, pdf.cursor, box_width, 18, style='F')
        pdf.set_text_color(255, 255, 255)
        pdf.font(14, 'B')
        pdf.put(x + box_width / 2, pdf.cursor + 9, str(value), align='C')
        pdf.font(8)
        pdf.put(x + box_width / 2, pdf.cursor + 15, label, align='C')
    pdf.set_text_color(0, 0, 0)
    pdf.cursor += 24
    pdf.mark('totals')

    pdf.section_bar('Class Summary', 'class_summary')
    pdf.table(['Class', 'Promoted', 'Retained', 'Graduated', 'Total'],
              [62, 30, 30, 30, pdf.w - 16 - 152],
              [[s.class_name, str(s.promoted), str(s.retained), str(s.graduated), str(len(s.students))]
               for s in record.class_summaries],
              aligns=['L', 'C', 'C', 'C', 'C'])

    widths = [12, 58, 32, 30, 30, pdf.w - 16 - 162]
    for summary in record.class_summaries:
        if not summary.students:
            continue
        pdf.section_bar(f"{summary.class_name} ({len(summary.students)} students)", 'class_details')
        rows, colors = [], {}
        for index, student in enumerate(summary.students):
            rows.append([str(index + 1), student.student_name, student.admission_number,
                         student.previous_class, student.new_class or '-', student.action.title()])
            colors[(index, 5)] = ACTION_COLORS[student.action]
        pdf.table(['S/N', 'Student Name', 'Admission No', 'From', 'To', 'Status'], widths, rows,
                  aligns=['C', 'L', 'L', 'L', 'L', 'C'], colors=colors)

    pdf.signatures(['Class Teacher', 'Principal', 'Director'])
    pdf.closing_note('Promotion decisions are final for the session stated above.')
    identifier = safe_filename_part(record.session.replace('/', '-'))
    return pdf.finish(_document_filename('PromotionReport', identifier, generated_at))


RENDERERS = {
    'receipt': render_receipt,
    'payslip': render_payslip,
    'transcript': render_transcript,
    'report-card': render_report_card,
    'promotion-report': render_promotion_report,
}
