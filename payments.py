"""
Fee and subscription payments on top of Paystack.

Functions here take a PaystackClient and work on the SQLAlchemy session;
they return result objects (or raise SchoolDeskError subclasses) and leave
the HTTP shape to the route layer.
"""
import logging
import time
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from app_models import (db, BillingInvoice, FeePayment, PaymentGatewaySettings,
                        SchoolConfiguration, SchoolSubscription, Student, SubscriptionPlan)
from exceptions import NotFoundError, ValidationError
from formatting import to_decimal
from paystack_service import from_kobo

logger = logging.getLogger(__name__)

DEFAULT_TERM = 'first'
DEFAULT_SESSION = '2024/2025'
BILLING_CYCLES = ('monthly', 'yearly')
CENT = Decimal('0.01')


def parse_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _base36(number):
    digits = '0123456789abcdefghijklmnopqrstuvwxyz'
    text = ''
    while number:
        number, rem = divmod(number, 36)
        text = digits[rem] + text
    return text or '0'


def generate_receipt_number(now_ms=None):
    """RCP followed by the millisecond timestamp in upper-case base 36"""
    stamp = int(now_ms if now_ms is not None else time.time() * 1000)
    number = f"RCP{_base36(stamp).upper()}"
    # two payments recorded in the same millisecond
    while FeePayment.query.filter_by(receipt_number=number).first():
        stamp += 1
        number = f"RCP{_base36(stamp).upper()}"
    return number


def transaction_metadata(transaction):
    """Flat metadata keys, with Paystack custom_fields filling any gaps"""
    metadata = transaction.get('metadata') or {}
    if not isinstance(metadata, dict):
        return {}
    values = {k: v for k, v in metadata.items() if k != 'custom_fields'}
    for item in metadata.get('custom_fields') or []:
        name = item.get('variable_name')
        if name and values.get(name) in (None, ''):
            values[name] = item.get('value')
    return values


# Revenue split

def gateway_settings_for(school_id=None):
    """Active settings for the school, else the platform-wide row"""
    query = PaymentGatewaySettings.query.filter_by(is_active=True)
    settings = None
    if school_id is not None:
        settings = query.filter_by(school_id=school_id).first()
    return settings or query.filter(PaymentGatewaySettings.school_id.is_(None)).first()


@dataclass(frozen=True)
class SplitPolicy:
    platform_percent: Decimal
    split_code: Optional[str] = None
    subaccount_code: Optional[str] = None

    @property
    def school_percent(self):
        return Decimal('100') - self.platform_percent

    @classmethod
    def for_school(cls, school_id, default_percent=5):
        settings = gateway_settings_for(school_id)
        percent = default_percent
        if settings and settings.platform_percentage is not None:
            percent = settings.platform_percentage
        return cls(
            platform_percent=to_decimal(percent),
            split_code=settings.split_code if settings else None,
            subaccount_code=settings.school_subaccount_code if settings else None,
        )

    def split(self, amount):
        """(platform_fee, school_amount); the two always add back up to amount"""
        amount = to_decimal(amount)
        fee = (amount * self.platform_percent / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        return fee, amount - fee


# Fee payments

@dataclass
class PaymentResult:
    verified: bool
    status: str
    payment: Optional[FeePayment] = None
    already_recorded: bool = False
    transaction: Dict[str, Any] = field(default_factory=dict)

    @property
    def created(self):
        return self.verified and self.payment is not None and not self.already_recorded

    @property
    def message(self):
        if not self.verified:
            return f"Transaction {self.status}"
        if self.already_recorded:
            return 'Payment already recorded'
        return 'Payment verified and recorded'

    def to_dict(self):
        data = {
            'verified': self.verified,
            'status': self.status,
            'already_recorded': self.already_recorded,
        }
        if self.payment is not None:
            data['payment'] = self.payment.to_dict()
            data['receipt_number'] = self.payment.receipt_number
            data['amount'] = self.payment.amount_paid
        if self.transaction:
            data['transaction'] = self.transaction
        return data


def initialize_fee_payment(client, data, default_percent=5, callback_url=None):
    """Start a Paystack checkout for a student's fee"""
    email = data.get('email')
    amount = data.get('amount')
    if not email or amount in (None, ''):
        raise ValidationError('email and amount are required')
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError('amount must be greater than zero')

    student_id = data.get('student_id') or data.get('studentId')
    fee_type_id = data.get('fee_type_id') or data.get('feeTypeId')
    student = db.session.get(Student, parse_id(student_id)) if student_id else None
    school_id = student.school_id if student else parse_id(data.get('school_id'))

    policy = SplitPolicy.for_school(school_id, default_percent)
    platform_fee, school_amount = policy.split(amount)
    fields = {
        'student_id': student_id,
        'fee_type_id': fee_type_id,
        'session': data.get('session'),
        'term': data.get('term'),
        'platform_fee': str(platform_fee),
        'school_amount': str(school_amount),
    }
    metadata = {
        'custom_fields': [
            {'display_name': name.replace('_', ' ').title(), 'variable_name': name, 'value': value}
            for name, value in fields.items()
        ],
    }
    metadata.update(data.get('metadata') or {})

    result = client.initialize_transaction(
        email=email,
        amount=amount,
        callback_url=data.get('callback_url') or data.get('callbackUrl') or callback_url,
        metadata=metadata,
        split_code=policy.split_code,
    )
    logger.info("Initialized payment %s for student %s", result.get('reference'), student_id)
    return {
        'authorization_url': result.get('authorization_url'),
        'access_code': result.get('access_code'),
        'reference': result.get('reference'),
        'platform_fee': float(platform_fee),
        'school_amount': float(school_amount),
    }


def record_transaction(transaction, default_percent=5):
    """
    Insert a FeePayment for a successful transaction unless its reference
    is already recorded. Returns (payment, created).
    """
    reference = transaction.get('reference')
    if not reference:
        raise ValidationError('Transaction has no reference')

    existing = FeePayment.query.filter_by(paystack_reference=reference).first()
    if existing:
        logger.info("Payment already recorded: %s", reference)
        return existing, False

    metadata = transaction_metadata(transaction)
    amount = from_kobo(transaction.get('amount') or 0)
    student = None
    if metadata.get('student_id'):
        student = db.session.get(Student, parse_id(metadata['student_id']))
    school_id = student.school_id if student else parse_id(metadata.get('school_id'))
    platform_fee, school_amount = SplitPolicy.for_school(school_id, default_percent).split(amount)

    payment = FeePayment(
        school_id=school_id,
        student_id=student.id if student else None,
        fee_type_id=parse_id(metadata.get('fee_type_id')),
        amount_paid=float(amount),
        payment_method='online',
        term=metadata.get('term') or DEFAULT_TERM,
        session=metadata.get('session') or DEFAULT_SESSION,
        receipt_number=generate_receipt_number(),
        paystack_reference=reference,
        transaction_reference=reference,
        platform_fee=float(platform_fee),
        school_amount=float(school_amount),
    )
    db.session.add(payment)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent verify/webhook for the same reference won the insert
        db.session.rollback()
        existing = FeePayment.query.filter_by(paystack_reference=reference).first()
        if existing is None:
            raise
        return existing, False

    logger.info("Payment recorded: %s (%s)", payment.receipt_number, reference)
    return payment, True


def verify_and_record_payment(client, reference, default_percent=5) -> PaymentResult:
    if not reference:
        raise ValidationError('Payment reference is required')

    transaction = client.verify_transaction(reference)
    status = transaction.get('status') or 'unknown'
    if status != 'success':
        logger.info("Transaction %s not successful: %s", reference, status)
        return PaymentResult(verified=False, status=status)

    transaction = dict(transaction, reference=transaction.get('reference') or reference)
    payment, created = record_transaction(transaction, default_percent)
    return PaymentResult(
        verified=True,
        status=status,
        payment=payment,
        already_recorded=not created,
        transaction={
            'reference': transaction.get('reference'),
            'amount': float(from_kobo(transaction.get('amount') or 0)),
            'currency': transaction.get('currency'),
            'paid_at': transaction.get('paid_at'),
            'channel': transaction.get('channel'),
        },
    )


def handle_webhook_event(event, default_percent=5) -> Optional[PaymentResult]:
    """Apply a verified webhook event. Only charge.success changes state."""
    kind = event.get('event')
    data = event.get('data') or {}
    logger.info("Received Paystack webhook event: %s", kind)

    if kind == 'charge.success':
        payment, created = record_transaction(data, default_percent)
        return PaymentResult(verified=True, status='success', payment=payment,
                             already_recorded=not created)
    if kind == 'charge.failed':
        logger.warning("Payment failed: %s", data.get('reference'))
    elif kind and kind.startswith('transfer.'):
        logger.info("Transfer event %s: %s", kind, data.get('reference'))
    else:
        logger.info("Unhandled webhook event: %s", kind)
    return None


# School settlement accounts

def _settings_row(school_id):
    settings = PaymentGatewaySettings.query.filter_by(school_id=school_id).first()
    if settings is None:
        settings = PaymentGatewaySettings(school_id=school_id, gateway_name='paystack')
        db.session.add(settings)
    return settings


def create_school_subaccount(client, data, default_percent=5):
    for key in ('business_name', 'bank_code', 'account_number'):
        if not data.get(key):
            raise ValidationError(f"{key} is required")
    school_id = parse_id(data.get('school_id'))
    if school_id is None:
        raise ValidationError('school_id is required')
    percent = data.get('percentage_charge')
    if percent in (None, ''):
        percent = Decimal('100') - to_decimal(default_percent)
    percent = to_decimal(percent)
    if not 0 < percent <= 100:
        raise ValidationError('percentage_charge must be between 0 and 100')

    result = client.create_subaccount(data['business_name'], data['bank_code'],
                                      data['account_number'], percent)
    settings = _settings_row(school_id)
    settings.gateway_name = 'paystack'
    settings.school_subaccount_code = result.get('subaccount_code')
    settings.school_bank_name = result.get('settlement_bank')
    settings.school_account_number = data['account_number']
    settings.school_account_name = result.get('business_name')
    settings.school_percentage = float(percent)
    settings.platform_percentage = float(Decimal('100') - percent)
    settings.is_active = True
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Created subaccount %s for school %s", settings.school_subaccount_code, school_id)
    return {
        'subaccount_code': result.get('subaccount_code'),
        'business_name': result.get('business_name'),
        'bank': result.get('settlement_bank'),
    }


def create_school_split(client, data, default_percent=5):
    school_id = parse_id(data.get('school_id'))
    if school_id is None:
        raise ValidationError('school_id is required')
    subaccount_code = data.get('subaccount_code')
    settings = PaymentGatewaySettings.query.filter_by(school_id=school_id).first()
    if not subaccount_code and settings:
        subaccount_code = settings.school_subaccount_code
    if not subaccount_code:
        raise ValidationError('subaccount_code is required')

    share = SplitPolicy.for_school(school_id, default_percent).school_percent
    result = client.create_split(subaccount_code, share)
    settings = settings or _settings_row(school_id)
    settings.school_subaccount_code = settings.school_subaccount_code or subaccount_code
    settings.split_code = result.get('split_code')
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Created split %s for school %s", settings.split_code, school_id)
    return {'split_code': result.get('split_code')}


def list_banks(client):
    return [
        {'name': bank.get('name'), 'code': bank.get('code'), 'slug': bank.get('slug')}
        for bank in client.list_banks() or []
    ]


def resolve_account(client, data):
    if not data.get('account_number') or not data.get('bank_code'):
        raise ValidationError('account_number and bank_code are required')
    result = client.resolve_account(data['account_number'], data['bank_code'])
    return {
        'account_name': result.get('account_name'),
        'account_number': result.get('account_number'),
    }


# Subscriptions

def add_months(value, months):
    """Same day n months later, clamped to the end of shorter months"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def initialize_subscription(client, data):
    billing_cycle = data.get('billing_cycle') or 'monthly'
    if billing_cycle not in BILLING_CYCLES:
        raise ValidationError('billing_cycle must be monthly or yearly')
    if not data.get('email') or not data.get('school_id'):
        raise ValidationError('email and school_id are required')

    plan = db.session.get(SubscriptionPlan, parse_id(data.get('plan_id')))
    if plan is None:
        raise NotFoundError('Plan not found')
    amount = plan.price_yearly if billing_cycle == 'yearly' else plan.price_monthly

    result = client.initialize_transaction(
        email=data['email'],
        amount=amount,
        callback_url=data.get('callback_url'),
        metadata={
            'type': 'subscription',
            'school_id': data['school_id'],
            'plan_id': plan.id,
            'billing_cycle': billing_cycle,
            'plan_name': plan.name,
        },
    )
    logger.info("Subscription payment initialized: %s", result.get('reference'))
    return {
        'authorization_url': result.get('authorization_url'),
        'reference': result.get('reference'),
    }


def verify_subscription(client, reference, now=None):
    """Activate the school's subscription; the invoice is written once per reference"""
    if not reference:
        raise ValidationError('Payment reference is required')

    existing = BillingInvoice.query.filter_by(paystack_reference=reference).first()
    if existing:
        return {'already_recorded': True, 'invoice_number': existing.invoice_number}

    transaction = client.verify_transaction(reference)
    if transaction.get('status') != 'success':
        raise ValidationError('Payment verification failed', status=transaction.get('status'))

    metadata = transaction_metadata(transaction)
    school_id = parse_id(metadata.get('school_id'))
    plan_id = parse_id(metadata.get('plan_id'))
    if school_id is None or plan_id is None:
        raise ValidationError('Transaction is not a subscription payment')
    school = db.session.get(SchoolConfiguration, school_id)
    if school is None:
        raise NotFoundError('School not found')

    now = now or datetime.utcnow()
    billing_cycle = metadata.get('billing_cycle') or 'monthly'
    period_end = add_months(now, 12 if billing_cycle == 'yearly' else 1)
    customer = transaction.get('customer') or {}

    subscription = SchoolSubscription.query.filter_by(school_id=school_id).first()
    if subscription is None:
        subscription = SchoolSubscription(school_id=school_id)
        db.session.add(subscription)
    subscription.plan_id = plan_id
    subscription.status = 'active'
    subscription.billing_cycle = billing_cycle
    subscription.current_period_start = now
    subscription.current_period_end = period_end
    subscription.paystack_customer_code = customer.get('customer_code')

    school.subscription_status = 'active'
    school.subscription_end_date = period_end

    amount = from_kobo(transaction.get('amount') or 0)
    db.session.flush()
    invoice = BillingInvoice(
        school_id=school_id,
        subscription_id=subscription.id,
        invoice_number=f"INV-{now:%Y%m%d}-{reference[-8:].upper()}",
        amount=float(amount),
        status='paid',
        description=f"{metadata.get('plan_name')} - {billing_cycle} subscription",
        paid_at=now,
        paystack_reference=reference,
        paystack_transaction_id=str(transaction.get('id') or ''),
    )
    db.session.add(invoice)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = BillingInvoice.query.filter_by(paystack_reference=reference).first()
        if existing is None:
            raise
        return {'already_recorded': True, 'invoice_number': existing.invoice_number}

    logger.info("Subscription activated for school %s until %s", school_id, period_end)
    return {
        'already_recorded': False,
        'invoice_number': invoice.invoice_number,
        'current_period_end': period_end.isoformat(),
    }
