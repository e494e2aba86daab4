"""
HTML email bodies.

Each render_* function takes one typed record and returns the HTML string, so
emails can be checked without any network access.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from jinja2 import DictLoader, Environment, select_autoescape

from exceptions import ValidationError
from formatting import format_amount, format_date, term_label
from records import PROMOTION_ACTIONS, SchoolInfo

ACCENT = '#d4a84b'
WARNING = '#d97706'

ACTION_COLORS = {
    'promoted': '#22c55e',
    'retained': '#f59e0b',
    'graduated': '#3b82f6',
}
ACTION_TITLES = {
    'promoted': 'Promotion Notification',
    'retained': 'Academic Status Update',
    'graduated': 'Graduation Notification',
}

BASE_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{% block title %}{{ school.name }}{% endblock %}</title>
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f5f5f5;">
  <table width="100%" cellpadding="0" cellspacing="0" style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">
    <tr>
      <td style="background-color: {{ primary }}; padding: 30px; text-align: center;">
        {% if school.logo_url %}<img src="{{ school.logo_url }}" alt="{{ school.name }}" style="max-height: 60px; margin-bottom: 15px;">{% endif %}
        <h1 style="color: #ffffff; margin: 0; font-size: 24px; font-weight: 600;">{{ school.name }}</h1>
        {% if school.address %}<p style="color: rgba(255,255,255,0.9); margin: 8px 0 0; font-size: 14px;">{{ school.address }}</p>{% endif %}
      </td>
    </tr>
    {% block content %}{% endblock %}
    {% if school.phone or school.email %}
    <tr>
      <td style="padding: 20px 30px; background-color: #f8f9fa;">
        <p style="color: #666; font-size: 13px; margin: 0; text-align: center;">
          For any inquiries, please contact us at:<br>
          {% if school.phone %}<strong>Tel:</strong> {{ school.phone }}{% endif %}
          {% if school.phone and school.email %} | {% endif %}
          {% if school.email %}<strong>Email:</strong> {{ school.email }}{% endif %}
        </p>
      </td>
    </tr>
    {% endif %}
    <tr>
      <td style="height: 5px; background-color: {{ primary }};"></td>
    </tr>
  </table>
</body>
</html>
"""

RECEIPT_HTML = """{% extends 'base.html' %}
{% block title %}Payment Receipt{% endblock %}
{% block content %}
    <tr>
      <td style="padding: 25px 30px; text-align: center; border-bottom: 2px solid {{ accent }};">
        <h2 style="margin: 0; color: {{ primary }}; font-size: 20px;">PAYMENT RECEIPT</h2>
        <p style="margin: 10px 0 0; color: #666; font-size: 14px;">Receipt No: <strong>{{ r.receipt_number }}</strong></p>
      </td>
    </tr>
    <tr>
      <td style="padding: 25px 30px;">
        <table width="100%" cellpadding="0" cellspacing="0">
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Student:</strong> {{ r.student_name }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Admission No:</strong> {{ r.admission_number }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Class:</strong> {{ r.class_name }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Fee Type:</strong> {{ r.fee_type }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Payment Method:</strong> {{ r.payment_method }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Payment Date:</strong> {{ r.payment_date }}</td></tr>
          <tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;"><strong>Session/Term:</strong> {{ r.session }} - {{ r.term|term }}</td></tr>
          <tr><td style="padding: 15px 0;"><strong>Amount Paid:</strong> <span style="color: #0a7b0a; font-size: 20px; font-weight: bold;">&#8358;{{ r.amount|comma }}</span></td></tr>
          {% if r.balance and r.balance > 0 %}
          <tr><td style="padding: 8px 0;"><strong>Outstanding Balance:</strong> <span style="color: #dc2626; font-weight: bold;">&#8358;{{ r.balance|comma }}</span></td></tr>
          {% endif %}
        </table>
      </td>
    </tr>
    <tr>
      <td style="padding: 20px 30px; background-color: #f8f9fa; text-align: center;">
        <p style="color: #888; font-size: 13px; font-style: italic; margin: 0;">This is a computer-generated receipt.</p>
        <p style="color: #666; font-size: 14px; margin: 10px 0 0;">Thank you for your payment!</p>
      </td>
    </tr>
{% endblock %}
"""

REMINDER_HTML = """{% extends 'base.html' %}
{% block title %}Fee Payment Reminder{% endblock %}
{% block content %}
    <tr>
      <td style="padding: 20px 30px; background-color: #fef3c7; border-left: 4px solid {{ warning }};">
        <h2 style="margin: 0; color: {{ warning }}; font-size: 18px;">Fee Payment Reminder</h2>
        <p style="margin: 8px 0 0; color: #92400e; font-size: 14px;">This is a friendly reminder about outstanding school fees.</p>
      </td>
    </tr>
    <tr>
      <td style="padding: 25px 30px;">
        <p style="margin: 0 0 20px; color: #333; font-size: 15px;">Dear {{ r.parent_name or 'Parent/Guardian' }},</p>
        <p style="margin: 0 0 20px; color: #555; font-size: 14px; line-height: 1.6;">
          We would like to bring to your attention that there is an outstanding balance on your child's school fees account.
          Please find the details below:
        </p>
        <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f8f9fa; border-radius: 8px;">
          <tr><td style="padding: 8px 20px; border-bottom: 1px solid #e5e5e5;"><strong>Student Name:</strong> {{ r.student_name }}</td></tr>
          <tr><td style="padding: 8px 20px; border-bottom: 1px solid #e5e5e5;"><strong>Admission No:</strong> {{ r.admission_number }}</td></tr>
          <tr><td style="padding: 8px 20px; border-bottom: 1px solid #e5e5e5;"><strong>Class:</strong> {{ r.class_name }}</td></tr>
          <tr><td style="padding: 8px 20px;"><strong>Session/Term:</strong> {{ r.session }} - {{ r.term|term }}</td></tr>
        </table>
      </td>
    </tr>
    <tr>
      <td style="padding: 0 30px 25px;">
        <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #fff7ed; border: 2px solid {{ warning }}; border-radius: 8px;">
          <tr>
            <td style="padding: 20px;">
              <h3 style="margin: 0 0 15px; color: {{ warning }}; font-size: 16px;">Payment Summary - {{ r.fee_type }}</h3>
              <p style="margin: 0; padding: 8px 0; border-bottom: 1px solid #fed7aa;">Total Amount Due: <strong style="float: right;">&#8358;{{ r.total_amount|comma }}</strong></p>
              <p style="margin: 0; padding: 8px 0; border-bottom: 1px solid #fed7aa; color: #22c55e;">Amount Paid: <strong style="float: right;">&#8358;{{ r.amount_paid|comma }}</strong></p>
              <p style="margin: 0; padding: 12px 0 5px; color: #dc2626; font-size: 16px;">Outstanding Balance: <strong style="float: right; font-size: 20px;">&#8358;{{ r.balance|comma }}</strong></p>
              {% if r.due_date %}<p style="margin: 10px 0 0; color: #92400e; font-size: 13px;">Due date: {{ r.due_date }}</p>{% endif %}
            </td>
          </tr>
        </table>
      </td>
    </tr>
    <tr>
      <td style="padding: 0 30px 25px; text-align: center;">
        <p style="color: #555; font-size: 14px; line-height: 1.6; margin: 0 0 15px;">
          We kindly request that you make arrangements to clear the outstanding balance at your earliest convenience.
          You can make payment online, via bank transfer or at the school's accounts department.
        </p>
        {% if payment_url %}<p style="margin: 0 0 15px;"><a href="{{ payment_url }}" style="background-color: {{ primary }}; color: #ffffff; padding: 12px 24px; border-radius: 6px; text-decoration: none;">Pay Online</a></p>{% endif %}
        <p style="color: #555; font-size: 14px; margin: 0;">If you have already made the payment, please disregard this reminder.</p>
      </td>
    </tr>
    <tr>
      <td style="padding: 15px 30px; text-align: center; background-color: #f8f9fa; border-top: 1px solid #e5e5e5;">
        <p style="color: #888; font-size: 12px; margin: 0;">This is an automated reminder from {{ school.name }}.</p>
      </td>
    </tr>
{% endblock %}
"""

PROMOTION_HTML = """{% extends 'base.html' %}
{% block title %}{{ title }}{% endblock %}
{% block content %}
    <tr>
      <td style="padding: 25px 30px;">
        <p style="color: {{ color }}; font-size: 13px; font-weight: 600; margin: 0 0 10px; text-transform: uppercase;">{{ title }}</p>
        <p style="color: #374151; font-size: 16px; margin-bottom: 20px;">Dear {{ r.parent_name or 'Parent/Guardian' }},</p>
        <p style="color: #374151; font-size: 16px; line-height: 1.6;">
          We are pleased to inform you that your ward, <strong>{{ r.student_name }}</strong>,
          {% if r.action == 'promoted' %}has been promoted from {{ r.previous_class }} to {{ r.new_class }}
          {%- elif r.action == 'retained' %}will be repeating {{ r.previous_class }} for the upcoming academic session
          {%- else %}has successfully completed their studies and graduated from {{ r.previous_class }}{% endif %}
          for the {{ r.session }} academic session.
        </p>
        <div style="border-left: 4px solid {{ color }}; padding: 15px 20px; margin: 25px 0; background-color: #f8fafc;">
          <p style="margin: 0; color: #374151;">
            <strong>Student:</strong> {{ r.student_name }}<br>
            <strong>Previous Class:</strong> {{ r.previous_class }}<br>
            {% if r.action != 'retained' %}<strong>New Status:</strong> {{ r.new_class }}{% else %}<strong>Status:</strong> Repeating {{ r.previous_class }}{% endif %}
          </p>
        </div>
        {% if r.action == 'promoted' %}
        <p style="color: #374151; font-size: 16px; line-height: 1.6;">We congratulate you and your ward on this achievement. We look forward to continued academic excellence in the new class.</p>
        {% elif r.action == 'retained' %}
        <p style="color: #374151; font-size: 16px; line-height: 1.6;">This decision was made after careful consideration and in the best interest of your ward's academic development. We believe this will help strengthen their foundation for future success.</p>
        <p style="color: #374151; font-size: 16px; line-height: 1.6;">Please feel free to contact the school for a meeting to discuss your ward's academic progress and how we can work together to support them.</p>
        {% else %}
        <p style="color: #374151; font-size: 16px; line-height: 1.6;">Congratulations on this milestone achievement! We wish your ward all the best in their future endeavors.</p>
        {% endif %}
        <p style="color: #374151; font-size: 16px; margin-top: 25px;">Best regards,<br><strong>{{ school.name }}</strong></p>
      </td>
    </tr>
{% endblock %}
"""

STATUS_HTML = """{% extends 'base.html' %}
{% block title %}School Status Update{% endblock %}
{% block content %}
    <tr>
      <td style="padding: 30px; background-color: #f9fafb;">
        <p style="font-size: 16px; margin-bottom: 20px;">Dear {{ r.director_name or 'Director' }},</p>
        <div style="background: #ffffff; border: 1px solid #e5e7eb; border-radius: 8px; padding: 20px; margin: 20px 0; text-align: center;">
          <span style="display: inline-block; background: {{ color }}; color: #ffffff; padding: 8px 20px; border-radius: 20px; font-weight: 600; font-size: 18px;">{{ status_text }}</span>
          <p style="font-size: 18px; font-weight: 600; margin: 15px 0 0;">{{ school.name }}</p>
        </div>
        <p style="font-size: 16px; margin-bottom: 20px;">
          {% if r.is_active %}Your school has been activated. All features are now accessible, and staff members can log in and use the system normally.
          {% else %}Your school has been deactivated by the platform administrator. During this period, access to the system may be limited.{% endif %}
        </p>
        {% if r.reason %}
        <div style="background: #fef3c7; border: 1px solid #fcd34d; border-radius: 8px; padding: 15px; margin: 20px 0;">
          <p style="margin: 0; font-size: 14px;"><strong>Reason:</strong> {{ r.reason }}</p>
        </div>
        {% endif %}
        <p style="font-size: 14px; color: #6b7280; margin-top: 30px;">
          {% if r.is_active %}If you have any questions, please don't hesitate to contact our support team.
          {% else %}If you believe this was done in error or have any questions, please contact the platform administrator immediately.{% endif %}
        </p>
        <p style="font-size: 12px; color: #9ca3af; text-align: center;">This is an automated notification from {{ platform_name }}.</p>
      </td>
    </tr>
{% endblock %}
"""


def comma_filter(value):
    """Format a number with commas, no decimals"""
    return format_amount(value)


env = Environment(
    loader=DictLoader({
        'base.html': BASE_HTML,
        'receipt.html': RECEIPT_HTML,
        'reminder.html': REMINDER_HTML,
        'promotion.html': PROMOTION_HTML,
        'status.html': STATUS_HTML,
    }),
    autoescape=select_autoescape(default=True, default_for_string=True),
)
env.filters['comma'] = comma_filter
env.filters['term'] = term_label


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


@dataclass(frozen=True)
class ReceiptEmail:
    receipt_number: str
    student_name: str
    admission_number: str
    class_name: str
    fee_type: str
    amount: Decimal
    payment_method: str
    payment_date: str
    session: str
    term: str
    school: SchoolInfo
    balance: Optional[Decimal] = None


@dataclass(frozen=True)
class FeeReminderEmail:
    student_name: str
    admission_number: str
    class_name: str
    fee_type: str
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    session: str
    term: str
    school: SchoolInfo
    parent_name: Optional[str] = None
    due_date: Optional[str] = None


@dataclass(frozen=True)
class PromotionEmail:
    student_name: str
    previous_class: str
    new_class: str
    action: str
    session: str
    school: SchoolInfo
    parent_name: Optional[str] = None

    def __post_init__(self):
        if self.action not in PROMOTION_ACTIONS:
            raise ValidationError(f"Unknown promotion action: {self.action}")


@dataclass(frozen=True)
class SchoolStatusEmail:
    school: SchoolInfo
    is_active: bool
    director_name: Optional[str] = None
    reason: Optional[str] = None


def _context(school, **kwargs):
    return dict(school=school, primary=school.primary_color or '#1e3a5f',
                accent=ACCENT, warning=WARNING, **kwargs)


def render_receipt_email(record: ReceiptEmail) -> RenderedEmail:
    html = env.get_template('receipt.html').render(
        **_context(record.school, r=record))
    return RenderedEmail(f"Payment Receipt - {record.receipt_number}", html)


def render_fee_reminder_email(record: FeeReminderEmail, payment_url: Optional[str] = None) -> RenderedEmail:
    html = env.get_template('reminder.html').render(
        **_context(record.school, r=record, payment_url=payment_url))
    subject = f"Fee Payment Reminder - {record.student_name} ({record.admission_number})"
    return RenderedEmail(subject, html)


def render_promotion_email(record: PromotionEmail) -> RenderedEmail:
    title = ACTION_TITLES[record.action]
    html = env.get_template('promotion.html').render(
        **_context(record.school, r=record, title=title, color=ACTION_COLORS[record.action]))
    return RenderedEmail(f"{title} - {record.student_name}", html)


def render_school_status_email(record: SchoolStatusEmail, platform_name='SchoolDesk') -> RenderedEmail:
    status_text = 'Activated' if record.is_active else 'Deactivated'
    html = env.get_template('status.html').render(
        **_context(record.school, r=record, status_text=status_text,
                   color='#22c55e' if record.is_active else '#ef4444',
                   platform_name=platform_name))
    subject = f"Important: {record.school.name} has been {status_text.lower()}"
    return RenderedEmail(subject, html)


def display_date(value):
    """Date as shown in email bodies, e.g. '05 Mar 2025'"""
    return format_date(value, '%d %b %Y')
