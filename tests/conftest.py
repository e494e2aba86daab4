import time

import pytest
import requests
from jose import jwt

from app import create_app
from app_config import TestingConfig
from app_models import (db, FeeObligation, FeeType, Profile, SchoolConfiguration, Student,
                        SubscriptionPlan, UserRole)
from email_service import EmailService
from paystack_service import PaystackClient
from places_service import PlacesClient


class FakeResponse:

    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if self.payload is None:
            raise ValueError('No JSON body')
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for requests.Session; answers by URL fragment, longest match first"""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, fragment, payload=None, status_code=200, error=None):
        self.routes[(method, fragment)] = error or FakeResponse(payload, status_code)

    def request(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        matches = [(fragment, answer) for (m, fragment), answer in self.routes.items()
                   if m == method and fragment in url]
        if not matches:
            raise requests.exceptions.ConnectionError(f"No fake route for {method} {url}")
        answer = max(matches, key=lambda item: len(item[0]))[1]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get(self, url, **kwargs):
        return self.request('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self.request('POST', url, **kwargs)

    def calls_to(self, fragment):
        return [call for call in self.calls if fragment in call['url']]


def make_token(sub='user-1', role='authenticated', expires_in=3600, secret=None, **claims):
    payload = {
        'sub': sub,
        'aud': 'authenticated',
        'role': role,
        'exp': int(time.time()) + expires_in,
    }
    payload.update(claims)
    return jwt.encode(payload, secret or TestingConfig.SUPABASE_JWT_SECRET, algorithm='HS256')


def auth(sub='user-1', **kwargs):
    return {'Authorization': f"Bearer {make_token(sub, **kwargs)}"}


@pytest.fixture
def paystack_session():
    return FakeSession()


@pytest.fixture
def mail_session():
    session = FakeSession()
    session.add('POST', 'api.resend.com', {'id': 'email-1'})
    return session


@pytest.fixture
def places_session():
    return FakeSession()


@pytest.fixture
def app(paystack_session, mail_session, places_session):
    app = create_app(
        'testing',
        paystack=PaystackClient('sk_test_secret', session=paystack_session),
        mailer=EmailService('re_test_key', session=mail_session),
        places=PlacesClient('maps-test-key', session=places_session),
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def school(app):
    school = SchoolConfiguration(
        school_name='Greenfield Academy',
        school_address='12 Palm Avenue, Lagos',
        school_phone='08012345678',
        school_email='info@greenfield.test',
        motto='Knowledge and Light',
    )
    db.session.add(school)
    db.session.flush()

    users = {
        'admin-1': ('admin@platform.test', 'Ada', 'Admin', 'super_admin', None),
        'director-1': ('director@greenfield.test', 'Dayo', 'Director', 'director', school.id),
        'bursar-1': ('bursar@greenfield.test', 'Bola', 'Bursar', 'bursar', school.id),
        'parent-1': ('parent@home.test', 'Pat', 'Parent', 'parent', school.id),
    }
    for user_id, (email, first, last, role, school_id) in users.items():
        db.session.add(Profile(id=user_id, email=email, first_name=first, last_name=last))
        db.session.add(UserRole(user_id=user_id, school_id=school_id, role=role))

    fee_type = FeeType(school_id=school.id, name='Tuition', amount=50000)
    student = Student(school_id=school.id, admission_number='GFA/2024/001', first_name='Chidi',
                      last_name='Okafor', class_name='JSS 2', guardian_email='guardian@home.test')
    db.session.add_all([fee_type, student])
    db.session.commit()
    return school


@pytest.fixture
def other_school(school):
    other = SchoolConfiguration(school_name='Other Academy', school_email='info@other.test')
    db.session.add(other)
    db.session.flush()
    for user_id, role in (('other-director', 'director'), ('other-bursar', 'bursar')):
        db.session.add(Profile(id=user_id, email=f"{user_id}@other.test", first_name='Olu',
                               last_name=role.title()))
        db.session.add(UserRole(user_id=user_id, school_id=other.id, role=role))
    db.session.commit()
    return other


@pytest.fixture
def student(school):
    return Student.query.filter_by(admission_number='GFA/2024/001').one()


@pytest.fixture
def fee_type(school):
    return FeeType.query.filter_by(name='Tuition').one()


@pytest.fixture
def plan(app):
    plan = SubscriptionPlan(name='Standard', price_monthly=25000, price_yearly=250000)
    db.session.add(plan)
    db.session.commit()
    return plan


@pytest.fixture
def obligation(school, student, fee_type):
    obligation = FeeObligation(school_id=school.id, student_id=student.id, fee_type_id=fee_type.id,
                               session='2024/2025', term='first', amount_due=50000,
                               amount_paid=20000, balance=30000, status='partial')
    db.session.add(obligation)
    db.session.commit()
    return obligation


@pytest.fixture
def school_info():
    return {
        'name': 'Greenfield Academy',
        'address': '12 Palm Avenue, Lagos',
        'phone': '08012345678',
        'email': 'info@greenfield.test',
    }


def paystack_transaction(reference='REF123', amount_kobo=5000000, status='success', **metadata):
    return {
        'id': 987654,
        'reference': reference,
        'status': status,
        'amount': amount_kobo,
        'currency': 'NGN',
        'paid_at': '2025-01-15T10:00:00.000Z',
        'channel': 'card',
        'customer': {'email': 'payer@home.test', 'customer_code': 'CUS_abc123'},
        'metadata': metadata,
    }
