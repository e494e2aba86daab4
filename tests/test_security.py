import pytest

from conftest import auth, make_token
from exceptions import AuthenticationError
from security import paystack_signature, verify_paystack_signature


def test_missing_token_is_rejected(client):
    response = client.post('/functions/verify-payment', json={'reference': 'REF123'})
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'message': 'Missing authorization header'}


def test_malformed_header_is_rejected(client):
    response = client.post('/functions/verify-payment', json={},
                           headers={'Authorization': 'Token abc'})
    assert response.status_code == 401


def test_bad_signature_token_is_rejected(client):
    headers = {'Authorization': f"Bearer {make_token(secret='not-the-right-secret')}"}
    response = client.post('/functions/verify-payment', json={}, headers=headers)
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid token'


def test_expired_token_is_rejected(client):
    response = client.post('/functions/verify-payment', json={}, headers=auth(expires_in=-60))
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Token has expired'


def test_wrong_audience_is_rejected(client):
    response = client.post('/functions/verify-payment', json={}, headers=auth(aud='someone-else'))
    assert response.status_code == 401


def test_caller_without_role_is_forbidden(client, school):
    response = client.post('/functions/notify-school-status', json={'schoolId': school.id, 'isActive': True},
                           headers=auth('parent-1'))
    assert response.status_code == 403
    assert response.get_json()['message'] == 'Insufficient permissions'


def test_school_staff_cannot_manage_settlement_accounts(client, school):
    response = client.post('/functions/paystack-payment', json={'action': 'create-subaccount'},
                           headers=auth('bursar-1'))
    assert response.status_code == 403


def test_service_role_may_run_scheduled_reminders(client, school):
    headers = auth('scheduler', role='service_role')
    response = client.post('/functions/scheduled-fee-reminders', headers=headers)
    assert response.status_code == 200
    assert response.get_json()['message'] == 'No pending fee obligations found'


def test_service_role_is_not_a_super_admin_elsewhere(client, school):
    response = client.post('/functions/notify-school-status', json={'schoolId': school.id, 'isActive': True},
                           headers=auth('scheduler', role='service_role'))
    assert response.status_code == 403


def test_security_headers(client):
    response = client.get('/health')
    assert response.headers['Access-Control-Allow-Origin'] == '*'
    assert 'x-paystack-signature' in response.headers['Access-Control-Allow-Headers']
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert 'no-store' in response.headers['Cache-Control']


def test_preflight_needs_no_token(client):
    response = client.options('/functions/verify-payment')
    assert response.status_code == 200
    assert 'POST' in response.headers['Access-Control-Allow-Methods']


def test_paystack_signature_verification():
    body = b'{"event":"charge.success"}'
    signature = paystack_signature(body, 'sk_test_secret')
    assert len(signature) == 128
    verify_paystack_signature(body, signature, 'sk_test_secret')

    with pytest.raises(AuthenticationError):
        verify_paystack_signature(body + b' ', signature, 'sk_test_secret')
    with pytest.raises(AuthenticationError):
        verify_paystack_signature(body, None, 'sk_test_secret')


def test_readiness_reports_providers_without_secrets(client):
    response = client.get('/health/ready')
    body = response.get_json()
    assert response.status_code == 200
    assert body['database'] == 'ok'
    assert body['providers'] == {'paystack': True, 'resend': True, 'google_places': True, 'auth': True}
    assert 'sk_test_secret' not in response.get_data(as_text=True)
