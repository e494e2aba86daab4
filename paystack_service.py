"""
Paystack REST client
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

import requests

from exceptions import ConfigurationError, PaymentError
from formatting import to_decimal

logger = logging.getLogger(__name__)


def to_kobo(amount):
    """Paystack takes amounts in the currency's minor unit"""
    return int((to_decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_kobo(amount):
    return to_decimal(amount) / 100


class PaystackClient:
    """Thin wrapper over the Paystack API; responses are trusted as returned"""

    def __init__(self, secret_key, base_url='https://api.paystack.co', session=None, timeout=15):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, **kwargs):
        if not self.secret_key:
            raise ConfigurationError('PAYSTACK_SECRET_KEY is not configured')
        headers = {
            'Authorization': f"Bearer {self.secret_key}",
            'Content-Type': 'application/json',
        }
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error("Paystack %s %s failed: %s", method, path, e)
            raise PaymentError(f"Paystack request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.status_code >= 400 or not payload.get('status'):
            message = payload.get('message') or f"HTTP {response.status_code}"
            logger.error("Paystack %s %s rejected: %s", method, path, message)
            raise PaymentError(message, status_code=response.status_code)
        return payload.get('data')

    def initialize_transaction(self, email, amount, reference=None, callback_url=None,
                               metadata=None, split_code=None, subaccount=None):
        """amount is in naira; returns authorization_url, access_code and reference"""
        body = {
            'email': email,
            'amount': to_kobo(amount),
            'currency': 'NGN',
            'metadata': metadata or {},
        }
        if reference:
            body['reference'] = reference
        if callback_url:
            body['callback_url'] = callback_url
        if split_code:
            body['split_code'] = split_code
        elif subaccount:
            body['subaccount'] = subaccount
        return self._request('POST', '/transaction/initialize', json=body)

    def verify_transaction(self, reference):
        return self._request('GET', f"/transaction/verify/{reference}")

    def list_banks(self, country='nigeria'):
        return self._request('GET', '/bank', params={'country': country})

    def resolve_account(self, account_number, bank_code):
        return self._request('GET', '/bank/resolve',
                             params={'account_number': account_number, 'bank_code': bank_code})

    def create_subaccount(self, business_name, bank_code, account_number, percentage_charge):
        return self._request('POST', '/subaccount', json={
            'business_name': business_name,
            'bank_code': bank_code,
            'account_number': account_number,
            'percentage_charge': float(percentage_charge),
        })

    def create_split(self, subaccount_code, share, name='School Fee Split'):
        return self._request('POST', '/split', json={
            'name': name,
            'type': 'percentage',
            'currency': 'NGN',
            'subaccounts': [{'subaccount': subaccount_code, 'share': float(share)}],
            'bearer_type': 'account',
            'bearer_subaccount': subaccount_code,
        })
