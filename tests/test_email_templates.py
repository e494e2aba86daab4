from decimal import Decimal

import pytest

from email_templates import (FeeReminderEmail, PromotionEmail, ReceiptEmail, SchoolStatusEmail,
                             render_fee_reminder_email, render_promotion_email,
                             render_receipt_email, render_school_status_email)
from exceptions import ValidationError
from records import SchoolInfo

SCHOOL = SchoolInfo(name='Greenfield Academy', address='12 Palm Avenue, Lagos',
                    phone='08012345678', email='info@greenfield.test')


def receipt(**overrides):
    data = dict(receipt_number='RCP1A2B3C', student_name='Chidi Okafor',
                admission_number='GFA/2024/001', class_name='JSS 2', fee_type='Tuition',
                amount=Decimal('50000'), payment_method='Online', payment_date='05 Mar 2025',
                session='2024/2025', term='second', school=SCHOOL)
    data.update(overrides)
    return ReceiptEmail(**data)


def test_receipt_email():
    email = render_receipt_email(receipt())
    assert email.subject == 'Payment Receipt - RCP1A2B3C'
    assert '50,000' in email.html
    assert 'Second Term' in email.html
    assert 'This is a computer-generated receipt.' in email.html
    assert 'Thank you for your payment!' in email.html
    assert 'Outstanding Balance' not in email.html


def test_receipt_email_shows_balance():
    assert 'Outstanding Balance' in render_receipt_email(receipt(balance=Decimal('1500'))).html


def test_values_are_escaped():
    email = render_receipt_email(receipt(student_name='<script>alert(1)</script>'))
    assert '<script>' not in email.html
    assert '&lt;script&gt;' in email.html


def test_fee_reminder_email():
    email = render_fee_reminder_email(FeeReminderEmail(
        student_name='Chidi Okafor', admission_number='GFA/2024/001', class_name='JSS 2',
        fee_type='Tuition', total_amount=Decimal('50000'), amount_paid=Decimal('20000'),
        balance=Decimal('30000'), session='2024/2025', term='first', school=SCHOOL,
    ), payment_url='https://app.example.test/fees')
    assert email.subject == 'Fee Payment Reminder - Chidi Okafor (GFA/2024/001)'
    assert 'Dear Parent/Guardian' in email.html
    assert '30,000' in email.html
    assert 'If you have already made the payment, please disregard this reminder.' in email.html
    assert 'https://app.example.test/fees' in email.html


@pytest.mark.parametrize('action, title, phrase', [
    ('promoted', 'Promotion Notification', 'has been promoted from JSS 3 to SSS 1'),
    ('retained', 'Academic Status Update', 'will be repeating JSS 3 for the upcoming academic session'),
    ('graduated', 'Graduation Notification', 'graduated from JSS 3'),
])
def test_promotion_email(action, title, phrase):
    email = render_promotion_email(PromotionEmail(
        student_name='Ada Obi', previous_class='JSS 3', new_class='SSS 1', action=action,
        session='2024/2025', school=SCHOOL, parent_name='Mrs Obi',
    ))
    assert email.subject == f"{title} - Ada Obi"
    assert phrase in email.html
    assert 'Dear Mrs Obi' in email.html


def test_promotion_email_rejects_unknown_action():
    with pytest.raises(ValidationError):
        PromotionEmail(student_name='Ada Obi', previous_class='JSS 3', new_class='', action='moved',
                       session='2024/2025', school=SCHOOL)


def test_school_status_email():
    active = render_school_status_email(SchoolStatusEmail(school=SCHOOL, is_active=True))
    assert active.subject == 'Important: Greenfield Academy has been activated'
    assert 'All features are now accessible' in active.html
    assert '#22c55e' in active.html

    inactive = render_school_status_email(SchoolStatusEmail(
        school=SCHOOL, is_active=False, director_name='Dayo Director', reason='Unpaid subscription'))
    assert inactive.subject == 'Important: Greenfield Academy has been deactivated'
    assert 'Unpaid subscription' in inactive.html
    assert 'Dear Dayo Director' in inactive.html
    assert '#ef4444' in inactive.html
