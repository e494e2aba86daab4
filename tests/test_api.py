import io
import json
import zipfile

from app_models import db, FeePayment, PaymentGatewaySettings
from conftest import auth, paystack_transaction
from security import paystack_signature


def ok(data):
    return {'status': True, 'message': 'ok', 'data': data}


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_verify_payment_endpoint(client, school, student, paystack_session):
    paystack_session.add('GET', '/transaction/verify/REF123', ok(
        paystack_transaction(student_id=str(student.id), term='second')))

    response = client.post('/functions/verify-payment', json={'reference': 'REF123'},
                           headers=auth('parent-1'))
    body = response.get_json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['message'] == 'Payment verified and recorded'
    assert body['data']['receipt_number'].startswith('RCP')
    assert body['data']['payment']['term'] == 'second'

    again = client.post('/functions/verify-payment', json={'reference': 'REF123'},
                        headers=auth('parent-1')).get_json()
    assert again['data']['already_recorded'] is True
    assert FeePayment.query.count() == 1


def test_verify_payment_not_successful(client, school, paystack_session):
    paystack_session.add('GET', '/transaction/verify/REF2', ok(paystack_transaction('REF2', status='failed')))
    body = client.post('/functions/verify-payment', json={'reference': 'REF2'},
                       headers=auth('parent-1')).get_json()
    assert body['success'] is False
    assert body['message'] == 'Transaction failed'


def test_verify_payment_requires_reference(client, school):
    response = client.post('/functions/verify-payment', json={}, headers=auth('parent-1'))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Payment reference is required'


def test_non_json_body(client, school):
    response = client.post('/functions/verify-payment', data='reference=REF1',
                           headers=auth('parent-1'))
    assert response.status_code == 400


def test_provider_failure_is_a_generic_502(client, school, paystack_session):
    paystack_session.add('GET', '/transaction/verify/', {'status': False, 'message': 'secret detail'},
                         status_code=401)
    response = client.post('/functions/verify-payment', json={'reference': 'X'}, headers=auth('parent-1'))
    assert response.status_code == 502
    assert response.get_json() == {'success': False, 'message': 'Payment provider request failed'}


def test_paystack_payment_actions(client, school, paystack_session):
    paystack_session.add('GET', '/bank', ok([{'name': 'Access Bank', 'code': '044', 'slug': 'access-bank'}]))
    body = client.post('/functions/paystack-payment', json={'action': 'list-banks'},
                       headers=auth('parent-1')).get_json()
    assert body['data']['banks'][0]['code'] == '044'

    response = client.post('/functions/paystack-payment', json={'action': 'refund'},
                           headers=auth('parent-1'))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid action'


def test_initialize_uses_fee_callback(client, school, student, paystack_session):
    paystack_session.add('POST', '/transaction/initialize', ok({
        'authorization_url': 'https://checkout.paystack.com/x', 'access_code': 'x', 'reference': 'R1'}))
    body = client.post('/functions/paystack-payment', json={
        'action': 'initialize', 'email': 'payer@home.test', 'amount': 1000, 'studentId': student.id,
    }, headers=auth('parent-1')).get_json()
    assert body['data']['platform_fee'] == 50.0
    assert paystack_session.calls[0]['json']['callback_url'] == 'https://app.example.test/fees'


def signed(body):
    return {'x-paystack-signature': paystack_signature(body, 'sk_test_secret'),
            'Content-Type': 'application/json'}


def test_webhook_rejects_missing_signature(client, school):
    response = client.post('/functions/paystack-webhook', data=b'{}',
                           headers={'Content-Type': 'application/json'})
    assert response.status_code == 401


def test_webhook_rejects_bad_signature(client, school):
    body = json.dumps({'event': 'charge.success', 'data': paystack_transaction()}).encode()
    response = client.post('/functions/paystack-webhook', data=body,
                           headers={'x-paystack-signature': 'f' * 128})
    assert response.status_code == 401
    assert FeePayment.query.count() == 0


def test_webhook_records_payment_and_emails_receipt(client, school, student, mail_session):
    body = json.dumps({'event': 'charge.success',
                       'data': paystack_transaction('REFW', student_id=str(student.id))}).encode()
    response = client.post('/functions/paystack-webhook', data=body, headers=signed(body))
    assert response.status_code == 200
    assert response.get_json() == {'received': True}
    assert FeePayment.query.filter_by(paystack_reference='REFW').count() == 1
    assert mail_session.calls[0]['json']['to'] == ['payer@home.test']

    client.post('/functions/paystack-webhook', data=body, headers=signed(body))
    assert FeePayment.query.count() == 1
    assert len(mail_session.calls) == 1


def test_webhook_survives_email_failure(client, school, student, mail_session):
    mail_session.add('POST', 'api.resend.com', {'message': 'down'}, status_code=503)
    body = json.dumps({'event': 'charge.success',
                       'data': paystack_transaction('REFE', student_id=str(student.id))}).encode()
    response = client.post('/functions/paystack-webhook', data=body, headers=signed(body))
    assert response.status_code == 200
    assert FeePayment.query.count() == 1


def test_webhook_ignores_other_events(client, school):
    body = json.dumps({'event': 'transfer.success', 'data': {'reference': 'T1'}}).encode()
    response = client.post('/functions/paystack-webhook', data=body, headers=signed(body))
    assert response.status_code == 200
    assert FeePayment.query.count() == 0


def test_subscription_requires_admin(client, school, plan):
    response = client.post('/functions/subscription-payment', json={'action': 'initialize'},
                           headers=auth('bursar-1'))
    assert response.status_code == 403


def test_subscription_initialize(client, school, plan, paystack_session):
    paystack_session.add('POST', '/transaction/initialize', ok({
        'authorization_url': 'https://checkout.paystack.com/s', 'reference': 'SUB1'}))
    body = client.post('/functions/subscription-payment', json={
        'action': 'initialize', 'school_id': school.id, 'plan_id': plan.id,
        'billing_cycle': 'monthly', 'email': 'director@greenfield.test',
    }, headers=auth('director-1')).get_json()
    assert body['success'] is True
    assert body['data']['reference'] == 'SUB1'


def test_send_receipt_email_without_address(client, school, school_info):
    body = client.post('/functions/send-receipt-email', json={
        'receiptNumber': 'RCP1', 'studentName': 'Chidi Okafor', 'amount': 100,
        'schoolInfo': school_info,
    }, headers=auth('parent-1')).get_json()
    assert body['message'] == 'No email address provided'
    assert body['data'] == {'sent': False, 'skipped': True}


def test_fee_reminder_requires_staff(client, school, school_info):
    response = client.post('/functions/send-fee-reminder', json={'schoolInfo': school_info},
                           headers=auth('parent-1'))
    assert response.status_code == 403


def test_validation_details_are_returned(client, school, school_info):
    response = client.post('/functions/send-fee-reminder', json={'schoolInfo': school_info},
                           headers=auth('bursar-1'))
    assert response.status_code == 400
    assert response.get_json()['data']['fields'] == ['parent_email', 'student_name', 'admission_number']


def test_notify_school_status(client, school, mail_session):
    body = client.post('/functions/notify-school-status', json={'schoolId': school.id, 'isActive': True},
                       headers=auth('admin-1')).get_json()
    assert body['success'] is True
    assert body['message'] == 'Notified 1 director(s)'
    assert body['data'] == {'sent': 1, 'failed': 0}


def test_google_places(client, school, places_session):
    places_session.add('GET', '/autocomplete/json', {
        'status': 'OK', 'predictions': [{'description': '12 Palm Avenue, Lagos', 'place_id': 'p1'}]})
    places_session.add('GET', '/details/json', {'status': 'OK', 'result': {
        'formatted_address': '12 Palm Avenue, Lagos, Nigeria', 'name': 'Palm Avenue',
        'geometry': {'location': {'lat': 6.45, 'lng': 3.39}}}})

    body = client.post('/functions/google-places', json={'type': 'autocomplete', 'query': '12 Palm'},
                       headers=auth('director-1')).get_json()
    assert body['message'] == 'Found 1 predictions'
    params = places_session.calls[0]['params']
    assert params['components'] == 'country:ng'
    assert params['key'] == 'maps-test-key'

    body = client.post('/functions/google-places', json={'type': 'details', 'placeId': 'p1'},
                       headers=auth('director-1')).get_json()
    assert body['data']['details']['lat'] == 6.45


def test_google_places_short_query_makes_no_call(client, school, places_session):
    body = client.post('/functions/google-places', json={'type': 'autocomplete', 'query': 'Le'},
                       headers=auth('director-1')).get_json()
    assert body['data'] == {'predictions': []}
    assert places_session.calls == []


def test_google_places_provider_error(client, school, places_session):
    places_session.add('GET', '/autocomplete/json', {'status': 'REQUEST_DENIED', 'error_message': 'key'})
    response = client.post('/functions/google-places', json={'type': 'autocomplete', 'query': 'Lekki'},
                           headers=auth('director-1'))
    assert response.status_code == 502
    assert response.get_json()['message'] == 'Address lookup failed'


def test_document_download_uses_caller_school(client, school):
    response = client.post('/documents/receipt', json={
        'receiptNumber': 'RCP001', 'studentName': 'Chidi Okafor', 'amount': 50000,
        'paymentDate': '2025-03-05', 'session': '2024/2025', 'term': 'second',
    }, headers=auth('bursar-1'))
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')
    assert 'Receipt_RCP001_' in response.headers['Content-Disposition']


def test_document_errors(client, school):
    response = client.post('/documents/diploma', json={}, headers=auth('bursar-1'))
    assert response.status_code == 404

    response = client.post('/documents/receipt', json={'studentName': 'Chidi', 'amount': 100}, headers=auth('bursar-1'))
    assert response.status_code == 400
    assert response.get_json()['data'] == {'field': 'receipt_number'}


def test_csv_export_download(client, school):
    response = client.post('/exports/csv', json={
        'filename': 'fees', 'columns': [{'header': 'Name', 'key': 'name'}],
        'rows': [{'name': 'Chidi'}],
    }, headers=auth('parent-1'))
    assert response.status_code == 200
    assert response.data == b'Name\nChidi'
    assert 'fees.csv' in response.headers['Content-Disposition']


def test_unknown_export_format(client, school):
    response = client.post('/exports/docx', json={'filename': 'f', 'columns': [{'header': 'A', 'key': 'a'}]},
                           headers=auth('parent-1'))
    assert response.status_code == 400


def test_receipts_archive_from_database(client, school, student, fee_type):
    for n in range(2):
        db.session.add(FeePayment(school_id=school.id, student_id=student.id, fee_type_id=fee_type.id,
                                  amount_paid=25000, session='2024/2025', term='first',
                                  receipt_number=f"RCPDB{n}"))
    db.session.add(FeePayment(school_id=school.id, student_id=student.id, amount_paid=100,
                              session='2024/2025', term='second', receipt_number='RCPOTHER'))
    db.session.commit()

    response = client.post('/exports/receipts-archive', json={
        'school_id': school.id, 'term': 'first', 'session': '2024/2025'}, headers=auth('bursar-1'))
    assert response.status_code == 200
    assert response.mimetype == 'application/zip'
    with zipfile.ZipFile(io.BytesIO(response.data)) as zf:
        names = zf.namelist()
    assert len(names) == 2
    assert names[0].endswith('Receipt_Chidi_Okafor_RCPDB0.pdf')
    assert 'X-Skipped-Receipts' not in response.headers


def test_receipts_archive_skip_failures(client, school, school_info):
    good = {'receipt_number': 'RCP1', 'amount_paid': 100,
            'student': {'profile': {'first_name': 'Ada', 'last_name': 'Obi'}}}
    bad = {'receipt_number': 'RCP2', 'amount_paid': None}
    payload = {'payments': [good, bad], 'term': 'First', 'session': '2024/2025', 'school': school_info}

    response = client.post('/exports/receipts-archive', json=payload, headers=auth('bursar-1'))
    assert response.status_code == 400
    assert response.get_json()['data']['index'] == 2

    payload['skip_failures'] = True
    response = client.post('/exports/receipts-archive', json=payload, headers=auth('bursar-1'))
    assert response.status_code == 200
    assert response.headers['X-Skipped-Receipts'] == '2'


def test_receipts_archive_requires_finance_role(client, school):
    response = client.post('/exports/receipts-archive', json={}, headers=auth('parent-1'))
    assert response.status_code == 403


def test_receipts_archive_is_limited_to_callers_school(client, school, other_school, student, fee_type):
    db.session.add(FeePayment(school_id=school.id, student_id=student.id, fee_type_id=fee_type.id,
                              amount_paid=25000, session='2024/2025', term='first', receipt_number='RCPDB0'))
    db.session.commit()
    payload = {'school_id': school.id, 'term': 'first', 'session': '2024/2025'}

    response = client.post('/exports/receipts-archive', json=payload, headers=auth('other-bursar'))
    assert response.status_code == 403
    assert response.get_json()['message'] == 'Insufficient permissions for this school'

    response = client.post('/exports/receipts-archive', json=payload, headers=auth('admin-1'))
    assert response.status_code == 200


def test_settlement_account_changes_are_limited_to_callers_school(client, school, other_school,
                                                                  paystack_session):
    paystack_session.add('POST', '/subaccount', ok({'subaccount_code': 'ACCT_999'}))
    paystack_session.add('POST', '/split', ok({'split_code': 'SPL_999'}))
    account = {'business_name': 'Other', 'bank_code': '044', 'account_number': '0123456789'}

    for action in ('create-subaccount', 'create-split'):
        response = client.post('/functions/paystack-payment', json={
            'action': action, 'school_id': school.id, 'subaccount_code': 'ACCT_999', **account},
            headers=auth('other-director'))
        assert response.status_code == 403

        response = client.post('/functions/paystack-payment', json={'action': action, **account},
                               headers=auth('director-1'))
        assert response.status_code == 400
        assert response.get_json()['message'] == 'school_id is required'
    assert paystack_session.calls == []
    assert PaymentGatewaySettings.query.count() == 0


def test_director_manages_own_school_settlement_account(client, school, paystack_session):
    paystack_session.add('POST', '/subaccount', ok({
        'subaccount_code': 'ACCT_123', 'settlement_bank': 'Access Bank', 'business_name': 'Greenfield'}))
    response = client.post('/functions/paystack-payment', json={
        'action': 'create-subaccount', 'school_id': school.id, 'business_name': 'Greenfield',
        'bank_code': '044', 'account_number': '0123456789'}, headers=auth('director-1'))
    assert response.status_code == 200
    assert PaymentGatewaySettings.query.filter_by(school_id=school.id).one().school_subaccount_code == 'ACCT_123'


def test_subscription_for_another_school_is_forbidden(client, school, other_school, plan):
    response = client.post('/functions/subscription-payment', json={
        'action': 'initialize', 'school_id': school.id, 'plan_id': plan.id,
        'email': 'other-director@other.test'}, headers=auth('other-director'))
    assert response.status_code == 403
