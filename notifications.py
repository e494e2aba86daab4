"""
Email notifications: receipts, fee reminders, promotion notices and
school status changes
"""
import logging
from dataclasses import replace

from app_models import db, FeeObligation, Profile, SchoolConfiguration, UserRole
from email_service import EmailMessage
from email_templates import (FeeReminderEmail, PromotionEmail, ReceiptEmail, SchoolStatusEmail,
                             display_date, render_fee_reminder_email, render_promotion_email,
                             render_receipt_email, render_school_status_email)
from exceptions import EmailError, NotFoundError, ValidationError
from formatting import to_decimal
from records import ReceiptRecord, SchoolInfo, value_of

logger = logging.getLogger(__name__)


def _required(data, *names):
    missing = [name for name in names if not value_of(data, name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)


def _school_info(data):
    school = value_of(data, 'school_info') or value_of(data, 'school')
    if school is None:
        raise ValidationError('schoolInfo is required')
    return SchoolInfo.from_dict(school)


def _send(mailer, to, rendered, from_name):
    result = mailer.send(EmailMessage(to=to, subject=rendered.subject, html=rendered.html,
                                      from_name=from_name))
    return {'sent': True, 'id': result.get('id') if isinstance(result, dict) else None}


def receipt_email(record: ReceiptRecord) -> ReceiptEmail:
    return ReceiptEmail(
        receipt_number=record.receipt_number,
        student_name=record.student_name,
        admission_number=record.admission_number,
        class_name=record.class_name,
        fee_type=record.fee_type,
        amount=record.amount,
        payment_method=record.payment_method,
        payment_date=display_date(record.payment_date),
        session=record.session,
        term=record.term,
        school=record.school,
        balance=record.balance,
    )


def send_receipt_email(mailer, data):
    """Email a receipt to the parent, or the student; skipped when neither has an address"""
    recipient = value_of(data, 'parent_email') or value_of(data, 'student_email')
    if not recipient:
        logger.info("No recipient email provided, skipping receipt email")
        return {'sent': False, 'skipped': True}
    record = ReceiptRecord.from_dict(data, school=_school_info(data))
    return _send(mailer, recipient, render_receipt_email(receipt_email(record)), record.school.name)


def email_payment_receipt(mailer, payment, recipient=None):
    """Receipt for a recorded FeePayment; falls back to the student's guardian email"""
    student = payment.student
    recipient = recipient or (student.guardian_email if student else None)
    if not recipient or payment.school is None:
        logger.info("Skipping receipt email for %s: no recipient or school", payment.receipt_number)
        return {'sent': False, 'skipped': True}
    payload = payment.to_receipt_payload()
    record = ReceiptRecord.from_dict({
        'receipt_number': payment.receipt_number,
        'student_name': student.full_name if student else 'Student',
        'admission_number': student.admission_number if student else 'N/A',
        'class_name': (student.class_name if student else None) or 'N/A',
        'fee_type': payload['fee_type']['name'],
        'amount': payment.amount_paid,
        'payment_method': payment.payment_method,
        'payment_date': payment.payment_date,
        'session': payment.session,
        'term': payment.term,
    }, school=SchoolInfo.from_model(payment.school))
    return _send(mailer, recipient, render_receipt_email(receipt_email(record)), record.school.name)


def send_fee_reminder(mailer, data, payment_url=None):
    _required(data, 'parent_email', 'student_name', 'admission_number')
    school = _school_info(data)
    record = FeeReminderEmail(
        student_name=value_of(data, 'student_name'),
        admission_number=value_of(data, 'admission_number'),
        class_name=value_of(data, 'class_name', 'N/A'),
        fee_type=value_of(data, 'fee_type', 'School Fees'),
        total_amount=to_decimal(value_of(data, 'total_amount')),
        amount_paid=to_decimal(value_of(data, 'amount_paid')),
        balance=to_decimal(value_of(data, 'balance')),
        session=value_of(data, 'session', ''),
        term=value_of(data, 'term', ''),
        school=school,
        parent_name=value_of(data, 'parent_name'),
        due_date=display_date(value_of(data, 'due_date')) if value_of(data, 'due_date') else None,
    )
    rendered = render_fee_reminder_email(record, payment_url=payment_url)
    result = _send(mailer, value_of(data, 'parent_email'), rendered, school.name)
    logger.info("Fee reminder sent for %s", record.admission_number)
    return result


def send_promotion_notification(mailer, data):
    _required(data, 'parent_email', 'student_name', 'previous_class', 'action')
    school = _school_info(data)
    action = value_of(data, 'action')
    record = PromotionEmail(
        student_name=value_of(data, 'student_name'),
        previous_class=value_of(data, 'previous_class'),
        new_class=value_of(data, 'new_class') or ('Graduated' if action == 'graduated' else ''),
        action=action,
        session=value_of(data, 'session', ''),
        school=school,
        parent_name=value_of(data, 'parent_name'),
    )
    return _send(mailer, value_of(data, 'parent_email'), render_promotion_email(record), school.name)


def school_directors(school_id):
    return (Profile.query
            .join(UserRole, UserRole.user_id == Profile.id)
            .filter(UserRole.school_id == school_id, UserRole.role == 'director')
            .all())


def notify_school_status(mailer, data, platform_name='SchoolDesk'):
    """Tell every director of a school that it was activated or deactivated"""
    school_id = value_of(data, 'school_id')
    is_active = value_of(data, 'is_active')
    if school_id is None or is_active is None:
        raise ValidationError('schoolId and isActive are required')
    if not isinstance(is_active, bool):
        raise ValidationError('isActive must be true or false')
    try:
        school = db.session.get(SchoolConfiguration, int(school_id))
    except (TypeError, ValueError):
        raise ValidationError('schoolId must be a number')
    if school is None:
        raise NotFoundError('School not found')

    directors = [d for d in school_directors(school.id) if d.email]
    if not directors:
        logger.info("No directors to notify for school %s", school.id)
        return {'sent': 0, 'failed': 0, 'message': 'No directors to notify'}

    info = SchoolInfo.from_model(school)
    if value_of(data, 'school_name'):
        info = replace(info, name=value_of(data, 'school_name'))
    sent, failed = 0, 0
    for director in directors:
        rendered = render_school_status_email(SchoolStatusEmail(
            school=info,
            is_active=is_active,
            director_name=director.full_name or None,
            reason=value_of(data, 'reason'),
        ), platform_name=platform_name)
        try:
            mailer.send(EmailMessage(to=director.email, subject=rendered.subject,
                                     html=rendered.html, from_name='School Management'))
            sent += 1
        except EmailError as e:
            logger.error("Status email to %s failed: %s", director.email, e)
            failed += 1
    return {'sent': sent, 'failed': failed,
            'message': f"Notified {sent} director(s)" if sent else 'No notifications sent'}


def outstanding_obligations():
    return (FeeObligation.query
            .filter(FeeObligation.status.in_(('pending', 'partial')), FeeObligation.balance > 0)
            .order_by(FeeObligation.id)
            .all())


def run_scheduled_fee_reminders(mailer, payment_url=None, error_limit=10):
    """
    Send a reminder for every pending or partially paid obligation.

    Obligations whose student has no email are skipped. One failed email
    does not stop the batch; the first error_limit errors are reported.
    """
    obligations = outstanding_obligations()
    if not obligations:
        return {'sent': 0, 'errors': 0, 'skipped': 0, 'message': 'No pending fee obligations found'}

    sent, skipped, errors = 0, 0, []
    for obligation in obligations:
        student = obligation.student
        if student is None or not student.guardian_email:
            logger.info("Skipping obligation %s: no email found", obligation.id)
            skipped += 1
            continue
        record = FeeReminderEmail(
            student_name=student.full_name or student.admission_number,
            admission_number=student.admission_number,
            class_name=student.class_name or 'N/A',
            fee_type=obligation.fee_type.name if obligation.fee_type else 'School Fees',
            total_amount=to_decimal(obligation.amount_due),
            amount_paid=to_decimal(obligation.amount_paid),
            balance=to_decimal(obligation.balance),
            session=obligation.session,
            term=obligation.term,
            school=SchoolInfo.from_model(obligation.school),
            due_date=display_date(obligation.due_date) if obligation.due_date else None,
        )
        rendered = render_fee_reminder_email(record, payment_url=payment_url)
        try:
            mailer.send(EmailMessage(to=student.guardian_email, subject=rendered.subject,
                                     html=rendered.html, from_name=record.school.name))
            sent += 1
        except EmailError as e:
            logger.error("Reminder for obligation %s failed: %s", obligation.id, e)
            errors.append(f"{student.admission_number}: {e.message}")

    logger.info("Scheduled reminders: %d sent, %d failed, %d skipped", sent, len(errors), skipped)
    return {
        'sent': sent,
        'errors': len(errors),
        'skipped': skipped,
        'error_details': errors[:error_limit],
        'message': f"Sent {sent} fee reminder(s)",
    }
