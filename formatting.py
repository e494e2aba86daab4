"""
Display formatting shared by the PDF documents, exports and emails
"""
import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CURRENCY_PREFIX = 'NGN'

# (letter, min score, max score, remark)
GRADING_SCALE = [
    ('A', 75, 100, 'Excellent'),
    ('B', 65, 74, 'Very Good'),
    ('C', 55, 64, 'Good'),
    ('D', 45, 54, 'Pass'),
    ('E', 40, 44, 'Fair'),
    ('F', 0, 39, 'Fail'),
]

GRADE_COLORS = {
    'A': (0, 128, 0),
    'B': (0, 100, 200),
    'C': (200, 150, 0),
    'D': (200, 100, 0),
    'E': (200, 100, 0),
    'F': (200, 0, 0),
}
DEFAULT_GRADE_COLOR = (0, 0, 0)

PRIMARY_COLOR = (30, 58, 95)
ACCENT_COLOR = (212, 168, 75)


def to_decimal(value, default=Decimal('0')):
    """Coerce numbers and numeric strings to Decimal"""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).replace(',', ''))
    except (InvalidOperation, ValueError):
        return default


def format_amount(value, decimals=0):
    """Thousands separators with a fixed number of decimals: 5000 -> '5,000'"""
    amount = to_decimal(value)
    quantum = Decimal(1).scaleb(-decimals)
    amount = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{amount:,.{decimals}f}"


def format_score(value):
    """Scores keep one decimal only when they have a fractional part"""
    score = to_decimal(value)
    if score == score.to_integral_value():
        return str(int(score))
    return f"{score.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}"


def format_currency(value, decimals=0):
    return f"{CURRENCY_PREFIX} {format_amount(value, decimals)}"


def grade_for_score(score):
    """Return (letter, remark) for a total score"""
    score = float(to_decimal(score))
    for letter, low, high, remark in GRADING_SCALE:
        if score >= low:
            return letter, remark
    return 'F', 'Fail'


def grade_color(letter):
    if not letter:
        return DEFAULT_GRADE_COLOR
    return GRADE_COLORS.get(str(letter).strip().upper()[:1], DEFAULT_GRADE_COLOR)


def ordinal(number):
    """1 -> '1st', 12 -> '12th', 23 -> '23rd'"""
    number = int(number)
    if 10 <= number % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(number % 10, 'th')
    return f"{number}{suffix}"


def term_label(term):
    """'first' -> 'First Term'; values already naming the term are kept"""
    text = str(term or '').strip()
    if not text:
        return ''
    if 'term' in text.lower():
        return text.title()
    return f"{text.title()} Term"


def month_name(month):
    try:
        return calendar.month_name[int(month)]
    except (ValueError, IndexError, TypeError):
        return str(month)


def parse_date(value):
    """Accept date, datetime or ISO-8601 strings; None when unparseable"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip().replace('Z', '+00:00')
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in ('%Y-%m-%d', '%d/%m/%Y', '%Y-%m-%d %H:%M:%S'):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_date(value, fmt='%d %B %Y', fallback='N/A'):
    parsed = parse_date(value)
    if parsed is None:
        return str(value) if value else fallback
    return parsed.strftime(fmt)


def date_stamp(value=None):
    """yyyyMMdd stamp used in generated file names"""
    return (value or datetime.now()).strftime('%Y%m%d')


def pdf_text(value):
    """Text drawn in a PDF; the document fonts are Unicode so nothing is substituted"""
    if value is None:
        return ''
    return str(value)


def hex_to_rgb(value, default=PRIMARY_COLOR):
    text = str(value or '').lstrip('#')
    if len(text) == 3:
        text = ''.join(ch * 2 for ch in text)
    if len(text) != 6:
        return default
    try:
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return default
