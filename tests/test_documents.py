import io
import unicodedata
from datetime import datetime

import pytest
from pypdf import PdfReader

from documents import (RENDERERS, render_payslip, render_promotion_report, render_receipt,
                       render_report_card, render_transcript)
from exceptions import DocumentError
from records import ReceiptRecord, ReportCardRecord, TranscriptRecord

GENERATED = datetime(2025, 3, 5, 14, 0)


def receipt_data(school_info, **overrides):
    data = {
        'receiptNumber': 'RCP001',
        'studentName': 'Chidi Okafor',
        'admissionNumber': 'GFA/2024/001',
        'className': 'JSS 2',
        'feeType': 'Tuition',
        'amount': 50000,
        'paymentMethod': 'bank_transfer',
        'paymentDate': '2025-03-05',
        'session': '2024/2025',
        'term': 'second',
        'schoolInfo': school_info,
    }
    data.update(overrides)
    return data


def test_receipt_sections_and_filename(school_info):
    document = render_receipt(receipt_data(school_info), generated_at=GENERATED)
    assert document.content.startswith(b'%PDF')
    assert document.filename == 'Receipt_RCP001_20250305.pdf'
    assert document.page_count == 1
    assert document.sections == ('header', 'title', 'receipt_details', 'student_information',
                                 'payment_details', 'amount_paid', 'signatures', 'footer')


def test_receipt_with_balance_adds_outstanding_block(school_info):
    document = render_receipt(receipt_data(school_info, balance=15000, installmentInfo='2 of 3'),
                              generated_at=GENERATED)
    assert document.page_count == 1
    assert 'outstanding_balance' in document.sections
    assert document.sections.index('outstanding_balance') > document.sections.index('amount_paid')


def test_zero_balance_is_not_outstanding(school_info):
    record = ReceiptRecord.from_dict(receipt_data(school_info, balance=0))
    assert not record.has_balance
    assert 'outstanding_balance' not in render_receipt(record, generated_at=GENERATED).sections


def test_receipt_requires_identity_fields(school_info):
    data = receipt_data(school_info)
    del data['receiptNumber']
    with pytest.raises(DocumentError) as excinfo:
        render_receipt(data)
    assert excinfo.value.details['field'] == 'receipt_number'


def test_receipt_requires_school():
    data = receipt_data(None)
    del data['schoolInfo']
    with pytest.raises(DocumentError):
        render_receipt(data)


def test_school_override(school_info):
    data = receipt_data({'name': 'Ignored'})
    record = ReceiptRecord.from_dict(data, school=school_info)
    assert record.school.name == 'Greenfield Academy'


def test_non_latin_text_is_rendered(school_info):
    name = 'Adébáyọ̀ Ọlábísí'
    document = render_receipt(receipt_data(school_info, studentName=name), generated_at=GENERATED)
    text = PdfReader(io.BytesIO(document.content)).pages[0].extract_text()
    assert unicodedata.normalize('NFC', name) in unicodedata.normalize('NFC', text)


def payslip_data(school_info, **overrides):
    data = {
        'staff': {'name': 'Ngozi Eze', 'staffId': 'STF-014', 'jobTitle': 'Teacher',
                  'category': 'academic_staff', 'email': 'ngozi@greenfield.test'},
        'month': 2,
        'year': 2025,
        'basicSalary': 150000,
        'grossSalary': 180000,
        'deductions': [
            {'name': 'Pension', 'amount': 12000, 'isPercentage': True, 'percentageValue': 8},
            {'name': 'Tax', 'amount': 9000},
        ],
        'netSalary': 159000,
        'paymentStatus': 'paid',
        'paidAt': '2025-02-28',
        'paymentMethod': 'bank_transfer',
        'paymentReference': 'TRF-2025-02',
        'school': school_info,
    }
    data.update(overrides)
    return data


def test_payslip(school_info):
    document = render_payslip(payslip_data(school_info), generated_at=GENERATED)
    assert document.filename == 'Payslip_STF-014_20250305.pdf'
    assert document.sections == ('header', 'title', 'employee_details', 'earnings', 'deductions',
                                 'net_salary', 'payment_information', 'footer')


def test_payslip_without_deductions_or_payment(school_info):
    data = payslip_data(school_info, deductions=[], paymentStatus='pending')
    for key in ('paidAt', 'paymentMethod', 'paymentReference'):
        del data[key]
    document = render_payslip(data, generated_at=GENERATED)
    assert 'deductions' not in document.sections
    assert 'payment_information' not in document.sections


def test_payslip_month_out_of_range(school_info):
    with pytest.raises(DocumentError):
        render_payslip(payslip_data(school_info, month=13))


def grades():
    return [
        {'subject': 'Mathematics', 'caScore': 30, 'examScore': 55, 'grade': 'A',
         'session': '2024/2025', 'term': 'second'},
        {'subject': 'English', 'caScore': 25, 'examScore': 40, 'grade': 'B',
         'session': '2024/2025', 'term': 'first'},
        {'subject': 'Biology', 'caScore': 20, 'examScore': 35.5, 'grade': 'C',
         'session': '2023/2024', 'term': 'third'},
    ]


def test_transcript_groups_terms_in_order(school_info):
    record = TranscriptRecord.from_dict({
        'studentName': 'Chidi Okafor', 'admissionNumber': 'GFA/2024/001',
        'grades': grades(), 'school': school_info,
    })
    keys = [key for key, _ in record.grouped_grades()]
    assert keys == [('2023/2024', 'third'), ('2024/2025', 'first'), ('2024/2025', 'second')]
    assert record.grades[2].total_score == 55.5

    document = render_transcript(record, generated_at=GENERATED)
    assert document.filename == 'Transcript_Chidi_Okafor_20250305.pdf'
    for section in ('academic_record', 'cumulative_summary', 'grading_key', 'signatures'):
        assert section in document.sections


def test_transcript_many_terms_paginates(school_info):
    many = [dict(g, session=f"20{10 + i}/20{11 + i}", subject=f"{g['subject']} {i}")
            for i in range(12) for g in grades()]
    document = render_transcript({'studentName': 'Chidi Okafor', 'admissionNumber': 'GFA/2024/001',
                                  'grades': many, 'school': school_info}, generated_at=GENERATED)
    assert document.page_count > 1


def report_card_data(school_info, **overrides):
    data = {
        'studentName': 'Chidi Okafor', 'admissionNumber': 'GFA/2024/001', 'className': 'JSS 2',
        'section': 'A', 'session': '2024/2025', 'term': 'first', 'grades': grades()[:2],
        'position': 3, 'totalStudents': 40,
        'attendance': {'present': 58, 'absent': 2, 'total': 60},
        'teacherComment': 'A diligent student.', 'principalComment': 'Keep it up.',
        'nextTermBegins': '2025-01-08', 'nextTermFee': 55000, 'school': school_info,
    }
    data.update(overrides)
    return data


def test_report_card_computes_totals(school_info):
    record = ReportCardRecord.from_dict(report_card_data(school_info))
    assert record.total_marks_obtained == 150
    assert record.total_marks_possible == 200
    assert record.average_score == 75


def test_report_card_sections(school_info):
    document = render_report_card(report_card_data(school_info), generated_at=GENERATED)
    assert document.filename == 'ReportCard_Chidi_Okafor_20250305.pdf'
    assert document.sections == ('header', 'title', 'student_information', 'academic_performance',
                                 'summary', 'attendance', 'comments', 'next_term', 'grading_key',
                                 'signatures')


def test_report_card_optional_blocks_omitted(school_info):
    data = report_card_data(school_info)
    for key in ('attendance', 'teacherComment', 'principalComment', 'nextTermBegins', 'nextTermFee'):
        del data[key]
    sections = render_report_card(data, generated_at=GENERATED).sections
    for section in ('attendance', 'comments', 'next_term'):
        assert section not in sections


def promotion_data(school_info):
    return {
        'session': '2024/2025',
        'school': school_info,
        'classSummaries': [
            {'className': 'JSS 3', 'students': [
                {'studentName': 'Ada Obi', 'admissionNumber': 'A1', 'previousClass': 'JSS 3',
                 'newClass': 'SSS 1', 'action': 'promoted'},
                {'studentName': 'Emeka Nwosu', 'admissionNumber': 'A2', 'previousClass': 'JSS 3',
                 'action': 'retained'},
            ]},
            {'className': 'SSS 3', 'students': [
                {'studentName': 'Funmi Ade', 'admissionNumber': 'A3', 'previousClass': 'SSS 3',
                 'action': 'graduated'},
            ]},
        ],
    }


def test_promotion_report(school_info):
    document = render_promotion_report(promotion_data(school_info), generated_at=GENERATED)
    assert document.filename == 'PromotionReport_2024-2025_20250305.pdf'
    assert document.sections == ('header', 'title', 'totals', 'class_summary', 'class_details',
                                 'signatures', 'footer')


def test_promotion_report_rejects_unknown_action(school_info):
    data = promotion_data(school_info)
    data['classSummaries'][0]['students'][0]['action'] = 'expelled'
    with pytest.raises(DocumentError):
        render_promotion_report(data)


def test_renderer_registry():
    assert set(RENDERERS) == {'receipt', 'payslip', 'transcript', 'report-card', 'promotion-report'}
