from datetime import datetime, timedelta

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

STAFF_ROLES = ('super_admin', 'director', 'principal', 'bursar', 'teacher')
FINANCE_ROLES = ('super_admin', 'director', 'principal', 'bursar')


# Database Models
class SchoolConfiguration(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_name = db.Column(db.String(200), nullable=False, default='School Name')
    school_address = db.Column(db.String(500), nullable=True)
    school_phone = db.Column(db.String(50), nullable=True)
    school_email = db.Column(db.String(100), nullable=True)
    motto = db.Column(db.String(200), nullable=True)
    primary_color = db.Column(db.String(7), default='#1e3a5f')
    logo_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    subscription_status = db.Column(db.String(20), default='trial')  # trial, active, expired
    trial_start_date = db.Column(db.DateTime, default=datetime.utcnow)
    subscription_end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def days_remaining(self):
        """Calculate days remaining in subscription"""
        if self.subscription_status == 'trial':
            start = self.trial_start_date or datetime.utcnow()
            return max(0, (start + timedelta(days=30) - datetime.utcnow()).days)
        if self.subscription_end_date:
            return max(0, (self.subscription_end_date - datetime.utcnow()).days)
        return 0

    def to_school_info(self):
        return {
            'name': self.school_name,
            'address': self.school_address,
            'phone': self.school_phone,
            'email': self.school_email,
            'motto': self.motto,
            'primary_color': self.primary_color or '#1e3a5f',
            'logo_url': self.logo_url,
        }


class Profile(db.Model):
    # Same id as the auth provider's user (JWT "sub")
    id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(200), nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class UserRole(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=True)
    role = db.Column(db.String(30), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship('Profile', backref='roles')
    school = db.relationship('SchoolConfiguration', backref='user_roles')

    __table_args__ = (db.UniqueConstraint('user_id', 'school_id', 'role', name='unique_user_school_role'),)


class Student(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=False)  # Link to school
    admission_number = db.Column(db.String(50), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    class_name = db.Column(db.String(50), nullable=True)
    guardian_email = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    school = db.relationship('SchoolConfiguration', backref='students')

    # Unique constraint to prevent duplicate admission numbers within the same school
    __table_args__ = (db.UniqueConstraint('school_id', 'admission_number', name='unique_school_admission_number'),)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class FeeType(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class FeePayment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=True)
    fee_type_id = db.Column(db.Integer, db.ForeignKey('fee_type.id'), nullable=True)
    amount_paid = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(30), default='online')
    payment_date = db.Column(db.DateTime, default=datetime.utcnow)
    term = db.Column(db.String(20), nullable=False, default='first')
    session = db.Column(db.String(20), nullable=False)
    receipt_number = db.Column(db.String(50), unique=True, nullable=False)
    # At most one row per provider reference
    paystack_reference = db.Column(db.String(100), unique=True, nullable=True)
    transaction_reference = db.Column(db.String(100), nullable=True)
    platform_fee = db.Column(db.Float, default=0.0)
    school_amount = db.Column(db.Float, default=0.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship('Student', backref='payments')
    fee_type = db.relationship('FeeType')
    school = db.relationship('SchoolConfiguration', backref='fee_payments')

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'fee_type_id': self.fee_type_id,
            'amount_paid': self.amount_paid,
            'payment_method': self.payment_method,
            'payment_date': self.payment_date.isoformat() if self.payment_date else None,
            'term': self.term,
            'session': self.session,
            'receipt_number': self.receipt_number,
            'paystack_reference': self.paystack_reference,
            'platform_fee': self.platform_fee,
            'school_amount': self.school_amount,
        }

    def to_receipt_payload(self):
        """Nested shape consumed by the bulk receipt packager"""
        student = self.student
        payload = self.to_dict()
        payload['fee_type'] = {'name': self.fee_type.name if self.fee_type else 'School Fees'}
        payload['student'] = {
            'admission_number': student.admission_number if student else None,
            'profile': {
                'first_name': student.first_name if student else None,
                'last_name': student.last_name if student else None,
            },
            'class': {'name': student.class_name if student else None},
        }
        return payload


class FeeObligation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    fee_type_id = db.Column(db.Integer, db.ForeignKey('fee_type.id'), nullable=True)
    session = db.Column(db.String(20), nullable=False)
    term = db.Column(db.String(20), nullable=False, default='first')
    amount_due = db.Column(db.Float, nullable=False, default=0.0)
    amount_paid = db.Column(db.Float, nullable=False, default=0.0)
    balance = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(20), default='pending')  # pending, partial, paid
    due_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship('Student', backref='obligations')
    fee_type = db.relationship('FeeType')
    school = db.relationship('SchoolConfiguration', backref='fee_obligations')


class PaymentGatewaySettings(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # NULL school_id is the platform-wide row
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=True, unique=True)
    gateway_name = db.Column(db.String(30), nullable=False, default='paystack')
    school_subaccount_code = db.Column(db.String(100), nullable=True)
    split_code = db.Column(db.String(100), nullable=True)
    school_bank_name = db.Column(db.String(200), nullable=True)
    school_account_number = db.Column(db.String(20), nullable=True)
    school_account_name = db.Column(db.String(200), nullable=True)
    school_percentage = db.Column(db.Float, nullable=True)
    platform_percentage = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SubscriptionPlan(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    price_monthly = db.Column(db.Float, nullable=False, default=0.0)
    price_yearly = db.Column(db.Float, nullable=False, default=0.0)
    currency = db.Column(db.String(3), default='NGN')
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class SchoolSubscription(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=False, unique=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('subscription_plan.id'), nullable=False)
    status = db.Column(db.String(20), default='active')
    billing_cycle = db.Column(db.String(10), default='monthly')  # monthly, yearly
    current_period_start = db.Column(db.DateTime, default=datetime.utcnow)
    current_period_end = db.Column(db.DateTime, nullable=False)
    paystack_customer_code = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    plan = db.relationship('SubscriptionPlan')
    school = db.relationship('SchoolConfiguration', backref=db.backref('subscription', uselist=False))


class BillingInvoice(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school_configuration.id'), nullable=False)
    subscription_id = db.Column(db.Integer, db.ForeignKey('school_subscription.id'), nullable=True)
    invoice_number = db.Column(db.String(50), unique=True, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), default='NGN')
    status = db.Column(db.String(20), default='paid')
    description = db.Column(db.String(300), nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)
    paystack_reference = db.Column(db.String(100), unique=True, nullable=True)
    paystack_transaction_id = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
