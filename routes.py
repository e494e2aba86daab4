"""
HTTP routes. Views parse the request, call one domain function and wrap
its result with create_response; errors are left to the app's handlers.
"""
import io
import json
import logging

from flask import Blueprint, current_app, g, jsonify, request, send_file

import notifications
import payments
from app_models import FINANCE_ROLES, STAFF_ROLES, FeePayment, SchoolConfiguration, UserRole, db
from bulk_export import build_receipts_archive
from documents import RENDERERS
from exceptions import AuthorizationError, EmailError, NotFoundError, ValidationError
from exports import export_data
from helpers import create_response
from records import SchoolInfo, value_of
from security import require_auth, require_school_role, verify_paystack_signature

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)

ADMIN_ROLES = ('super_admin', 'director')


def client(name):
    return current_app.extensions['schooldesk'][name]


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def fee_percent():
    return current_app.config['PLATFORM_FEE_PERCENT']


def payment_url():
    return f"{current_app.config['APP_URL'].rstrip('/')}/fees"


def caller_school():
    """School of the first school-scoped role the caller holds"""
    role = (UserRole.query
            .filter(UserRole.user_id == g.current_user, UserRole.school_id.isnot(None))
            .first()) if g.current_user else None
    return SchoolInfo.from_model(role.school) if role else None


def send_download(content, mimetype, filename):
    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )


# Payments

@api_bp.route('/functions/paystack-payment', methods=['POST'])
@require_auth()
def paystack_payment():
    data = json_body()
    action = data.get('action')
    paystack = client('paystack')
    logger.info("Paystack action: %s", action)

    if action in ('create-subaccount', 'create-split'):
        if not (g.roles & set(ADMIN_ROLES)):
            raise AuthorizationError('Insufficient permissions')
        school_id = payments.parse_id(data.get('school_id'))
        if school_id is None:
            raise ValidationError('school_id is required')
        require_school_role(school_id, *ADMIN_ROLES)

    if action == 'initialize':
        result = payments.initialize_fee_payment(paystack, data, fee_percent(),
                                                 callback_url=payment_url())
        return jsonify(create_response(True, 'Transaction initialized', result))
    if action == 'verify':
        result = payments.verify_and_record_payment(paystack, data.get('reference'), fee_percent())
        return jsonify(create_response(result.verified, result.message, result.to_dict()))
    if action == 'list-banks':
        return jsonify(create_response(True, 'Banks retrieved', {'banks': payments.list_banks(paystack)}))
    if action == 'verify-account':
        return jsonify(create_response(True, 'Account resolved', payments.resolve_account(paystack, data)))
    if action == 'create-subaccount':
        result = payments.create_school_subaccount(paystack, data, fee_percent())
        return jsonify(create_response(True, 'Subaccount created', result))
    if action == 'create-split':
        result = payments.create_school_split(paystack, data, fee_percent())
        return jsonify(create_response(True, 'Split created', result))
    raise ValidationError('Invalid action')


@api_bp.route('/functions/verify-payment', methods=['POST'])
@require_auth()
def verify_payment():
    data = json_body()
    result = payments.verify_and_record_payment(client('paystack'), data.get('reference'), fee_percent())
    return jsonify(create_response(result.verified, result.message, result.to_dict()))


@api_bp.route('/functions/paystack-webhook', methods=['POST'])
def paystack_webhook():
    body = request.get_data()
    verify_paystack_signature(body, request.headers.get('x-paystack-signature'),
                              current_app.config.get('PAYSTACK_SECRET_KEY'))
    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationError('Invalid JSON payload')

    result = payments.handle_webhook_event(event, fee_percent())
    if result is not None and result.created:
        customer = (event.get('data') or {}).get('customer') or {}
        try:
            notifications.email_payment_receipt(client('mailer'), result.payment, customer.get('email'))
        except EmailError as e:
            # payment is already recorded; the receipt can be resent
            logger.error("Failed to send receipt email: %s", e)
    return jsonify({'received': True})


@api_bp.route('/functions/subscription-payment', methods=['POST'])
@require_auth(*ADMIN_ROLES)
def subscription_payment():
    data = json_body()
    action = data.get('action')
    if action == 'initialize':
        school_id = payments.parse_id(data.get('school_id'))
        if school_id is None:
            raise ValidationError('school_id is required')
        require_school_role(school_id, *ADMIN_ROLES)
        result = payments.initialize_subscription(client('paystack'), data)
        return jsonify(create_response(True, 'Subscription payment initialized', result))
    if action == 'verify':
        result = payments.verify_subscription(client('paystack'), data.get('reference'))
        message = 'Subscription already activated' if result['already_recorded'] else 'Subscription activated'
        return jsonify(create_response(True, message, result))
    raise ValidationError('Invalid action')


# Emails

@api_bp.route('/functions/send-receipt-email', methods=['POST'])
@require_auth()
def send_receipt_email():
    result = notifications.send_receipt_email(client('mailer'), json_body())
    message = 'No email address provided' if result.get('skipped') else 'Receipt email sent'
    return jsonify(create_response(True, message, result))


@api_bp.route('/functions/send-fee-reminder', methods=['POST'])
@require_auth(*STAFF_ROLES)
def send_fee_reminder():
    result = notifications.send_fee_reminder(client('mailer'), json_body(), payment_url())
    return jsonify(create_response(True, 'Reminder sent', result))


@api_bp.route('/functions/send-promotion-notification', methods=['POST'])
@require_auth(*STAFF_ROLES)
def send_promotion_notification():
    result = notifications.send_promotion_notification(client('mailer'), json_body())
    return jsonify(create_response(True, 'Notification sent', result))


@api_bp.route('/functions/notify-school-status', methods=['POST'])
@require_auth('super_admin')
def notify_school_status():
    result = notifications.notify_school_status(client('mailer'), json_body(),
                                                current_app.config['PLATFORM_NAME'])
    return jsonify(create_response(True, result.pop('message'), result))


@api_bp.route('/functions/scheduled-fee-reminders', methods=['POST'])
@require_auth('super_admin', allow_service=True)
def scheduled_fee_reminders():
    result = notifications.run_scheduled_fee_reminders(
        client('mailer'), payment_url(), current_app.config['REMINDER_ERROR_DETAIL_LIMIT'])
    return jsonify(create_response(True, result.pop('message'), result))


@api_bp.route('/functions/google-places', methods=['POST'])
@require_auth()
def google_places():
    data = json_body()
    kind = data.get('type')
    places = client('places')
    if kind == 'autocomplete':
        predictions = places.autocomplete(data.get('query'))
        return jsonify(create_response(True, f"Found {len(predictions)} predictions",
                                       {'predictions': predictions}))
    if kind == 'details':
        details = places.details(value_of(data, 'place_id'))
        return jsonify(create_response(True, 'Place details retrieved', {'details': details}))
    raise ValidationError('Invalid request type')


# Documents and exports

@api_bp.route('/documents/<doctype>', methods=['POST'])
@require_auth()
def download_document(doctype):
    renderer = RENDERERS.get(doctype)
    if renderer is None:
        raise NotFoundError(f"Unknown document type: {doctype}")
    data = json_body()
    school = None
    if value_of(data, 'school') is None and value_of(data, 'school_info') is None:
        school = caller_school()
    document = renderer(data, school=school)
    return send_download(document.content, document.mimetype, document.filename)


@api_bp.route('/exports/receipts-archive', methods=['POST'])
@require_auth(*FINANCE_ROLES)
def download_receipts_archive():
    data = json_body()
    term = data.get('term')
    session = data.get('session')
    if not term or not session:
        raise ValidationError('term and session are required')

    school = value_of(data, 'school') or value_of(data, 'school_info')
    rows = data.get('payments')
    if rows is None:
        school_id = payments.parse_id(data.get('school_id'))
        school_row = db.session.get(SchoolConfiguration, school_id) if school_id else None
        if school_row is None:
            raise ValidationError('payments or a valid school_id is required')
        require_school_role(school_row.id, *FINANCE_ROLES)
        school = school or SchoolInfo.from_model(school_row)
        rows = [p.to_receipt_payload() for p in (FeePayment.query
                .filter_by(school_id=school_row.id, term=term, session=session)
                .order_by(FeePayment.payment_date, FeePayment.id).all())]
    if not rows:
        raise ValidationError('No payments to export')
    if school is None:
        school = caller_school()
        if school is None:
            raise ValidationError('school is required')

    archive = build_receipts_archive(rows, school, term, session,
                                     skip_failures=bool(data.get('skip_failures')))
    response = send_download(archive.content, archive.mimetype, archive.filename)
    if archive.failures:
        response.headers['X-Skipped-Receipts'] = ','.join(str(i) for i, _ in archive.failures)
    return response


@api_bp.route('/exports/<fmt>', methods=['POST'])
@require_auth()
def download_export(fmt):
    export = export_data(fmt, json_body())
    return send_download(export.content, export.mimetype, export.filename)
