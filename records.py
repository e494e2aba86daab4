"""
Render-time records for documents and exports.

Records are built from plain dicts (request JSON or model rows) right before
rendering and are never mutated afterwards. Keys are accepted in snake_case
or camelCase so payloads from the web client can be passed through as-is.
A missing required identity field raises DocumentError.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from exceptions import DocumentError, ExportError
from formatting import to_decimal

PROMOTION_ACTIONS = ('promoted', 'retained', 'graduated')


def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def _get(data, name, default=None):
    if not isinstance(data, dict):
        return default
    for key in (name, _camel(name)):
        if key in data and data[key] is not None:
            return data[key]
    return default


def value_of(data, name, default=None):
    """snake_case or camelCase lookup for request payloads"""
    return _get(data, name, default)


def _require(data, name, record_type):
    value = _get(data, name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise DocumentError(f"{record_type}: missing required field '{name}'", field=name)
    return value


def _optional_decimal(data, name):
    value = _get(data, name)
    if value is None or value == '':
        return None
    return to_decimal(value)


def _int_or_none(value):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SchoolInfo:
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    motto: Optional[str] = None
    primary_color: str = '#1e3a5f'
    logo_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        if isinstance(data, SchoolInfo):
            return data
        if not isinstance(data, dict):
            raise DocumentError("school: missing required field 'name'", field='name')
        name = _get(data, 'name') or _get(data, 'school_name')
        if not name:
            raise DocumentError("school: missing required field 'name'", field='name')
        return cls(
            name=str(name),
            address=_get(data, 'address') or _get(data, 'school_address'),
            phone=_get(data, 'phone') or _get(data, 'school_phone'),
            email=_get(data, 'email') or _get(data, 'school_email'),
            motto=_get(data, 'motto'),
            primary_color=_get(data, 'primary_color', '#1e3a5f'),
            logo_url=_get(data, 'logo_url'),
        )

    @classmethod
    def from_model(cls, school):
        return cls(
            name=school.school_name,
            address=school.school_address,
            phone=school.school_phone,
            email=school.school_email,
            motto=school.motto,
            primary_color=school.primary_color or '#1e3a5f',
            logo_url=school.logo_url,
        )

    def contact_line(self):
        parts = [p for p in (self.phone, self.email) if p]
        return ' | '.join(parts)


def _school(data, record_type):
    school = _get(data, 'school') or _get(data, 'school_info')
    if school is None:
        raise DocumentError(f"{record_type}: missing required field 'school'", field='school')
    return SchoolInfo.from_dict(school)


@dataclass(frozen=True)
class ReceiptRecord:
    receipt_number: str
    student_name: str
    admission_number: str
    class_name: str
    fee_type: str
    amount: Decimal
    payment_method: str
    payment_date: Any
    session: str
    term: str
    school: SchoolInfo
    balance: Optional[Decimal] = None
    installment_info: Optional[str] = None

    @classmethod
    def from_dict(cls, data, school=None):
        kind = 'receipt'
        amount = _require(data, 'amount', kind)
        return cls(
            receipt_number=str(_require(data, 'receipt_number', kind)),
            student_name=str(_require(data, 'student_name', kind)),
            admission_number=str(_get(data, 'admission_number', 'N/A')),
            class_name=str(_get(data, 'class_name', 'N/A')),
            fee_type=str(_get(data, 'fee_type', 'School Fees')),
            amount=to_decimal(amount),
            payment_method=str(_get(data, 'payment_method', 'N/A')),
            payment_date=_get(data, 'payment_date'),
            session=str(_get(data, 'session', '')),
            term=str(_get(data, 'term', '')),
            school=SchoolInfo.from_dict(school) if school is not None else _school(data, kind),
            balance=_optional_decimal(data, 'balance'),
            installment_info=_get(data, 'installment_info'),
        )

    @property
    def has_balance(self):
        return self.balance is not None and self.balance > 0


@dataclass(frozen=True)
class StaffInfo:
    name: str
    staff_id: str
    job_title: str = ''
    category: str = ''
    email: str = ''


@dataclass(frozen=True)
class Deduction:
    name: str
    amount: Decimal
    is_percentage: bool = False
    percentage_value: Optional[Decimal] = None

    @property
    def label(self):
        if self.is_percentage and self.percentage_value is not None:
            return f"{self.name} ({self.percentage_value.normalize():f}%)"
        return self.name


@dataclass(frozen=True)
class PayslipRecord:
    staff: StaffInfo
    month: int
    year: int
    basic_salary: Decimal
    gross_salary: Decimal
    deductions: Tuple[Deduction, ...]
    total_deductions: Decimal
    net_salary: Decimal
    payment_status: str
    school: SchoolInfo
    paid_at: Any = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None

    @classmethod
    def from_dict(cls, data, school=None):
        kind = 'payslip'
        staff_data = _require(data, 'staff', kind)
        staff = StaffInfo(
            name=str(_require(staff_data, 'name', 'payslip.staff')),
            staff_id=str(_require(staff_data, 'staff_id', 'payslip.staff')),
            job_title=str(_get(staff_data, 'job_title', '')),
            category=str(_get(staff_data, 'category', '')),
            email=str(_get(staff_data, 'email', '')),
        )
        month = _int_or_none(_require(data, 'month', kind))
        if month is None or not 1 <= month <= 12:
            raise DocumentError('payslip: month must be between 1 and 12', field='month')
        year = _int_or_none(_require(data, 'year', kind))
        if year is None:
            raise DocumentError('payslip: year must be a number', field='year')
        deductions = tuple(
            Deduction(
                name=str(_get(item, 'name', 'Deduction')),
                amount=to_decimal(_get(item, 'amount')),
                is_percentage=bool(_get(item, 'is_percentage', False)),
                percentage_value=_optional_decimal(item, 'percentage_value'),
            )
            for item in (_get(data, 'deductions') or [])
        )
        total = _optional_decimal(data, 'total_deductions')
        if total is None:
            total = sum((d.amount for d in deductions), Decimal('0'))
        return cls(
            staff=staff,
            month=month,
            year=year,
            basic_salary=to_decimal(_get(data, 'basic_salary')),
            gross_salary=to_decimal(_require(data, 'gross_salary', kind)),
            deductions=deductions,
            total_deductions=total,
            net_salary=to_decimal(_require(data, 'net_salary', kind)),
            payment_status=str(_get(data, 'payment_status', 'pending')),
            school=SchoolInfo.from_dict(school) if school is not None else _school(data, kind),
            paid_at=_get(data, 'paid_at'),
            payment_method=_get(data, 'payment_method'),
            payment_reference=_get(data, 'payment_reference'),
        )


@dataclass(frozen=True)
class GradeEntry:
    subject: str
    ca_score: Decimal
    exam_score: Decimal
    total_score: Decimal
    grade_letter: str
    session: str = ''
    term: str = ''
    subject_code: str = ''
    remark: str = ''

    @classmethod
    def from_dict(cls, data):
        ca = to_decimal(_get(data, 'ca_score'))
        exam = to_decimal(_get(data, 'exam_score'))
        total = _optional_decimal(data, 'total_score')
        return cls(
            subject=str(_get(data, 'subject', '')),
            ca_score=ca,
            exam_score=exam,
            total_score=ca + exam if total is None else total,
            grade_letter=str(_get(data, 'grade_letter') or _get(data, 'grade') or ''),
            session=str(_get(data, 'session', '')),
            term=str(_get(data, 'term', '')),
            subject_code=str(_get(data, 'subject_code', '')),
            remark=str(_get(data, 'remark', '')),
        )


TERM_ORDER = {'first': 1, 'second': 2, 'third': 3}


def term_sort_key(term):
    text = str(term or '').strip().lower()
    for name, position in TERM_ORDER.items():
        if text.startswith(name):
            return position, text
    return len(TERM_ORDER) + 1, text


@dataclass(frozen=True)
class TranscriptRecord:
    student_name: str
    admission_number: str
    school: SchoolInfo
    grades: Tuple[GradeEntry, ...]
    date_of_birth: Any = None
    gender: str = ''
    date_of_admission: Any = None
    current_class: str = ''

    @classmethod
    def from_dict(cls, data, school=None):
        kind = 'transcript'
        return cls(
            student_name=str(_require(data, 'student_name', kind)),
            admission_number=str(_require(data, 'admission_number', kind)),
            school=SchoolInfo.from_dict(school) if school is not None else _school(data, kind),
            grades=tuple(GradeEntry.from_dict(g) for g in (_get(data, 'grades') or [])),
            date_of_birth=_get(data, 'date_of_birth'),
            gender=str(_get(data, 'gender', '')),
            date_of_admission=_get(data, 'date_of_admission'),
            current_class=str(_get(data, 'current_class', '')),
        )

    def grouped_grades(self):
        """[((session, term), [grades...]), ...] sorted by session then term order"""
        groups: Dict[Tuple[str, str], List[GradeEntry]] = {}
        for grade in self.grades:
            groups.setdefault((grade.session, grade.term), []).append(grade)
        return sorted(groups.items(), key=lambda item: (item[0][0], term_sort_key(item[0][1])))


@dataclass(frozen=True)
class Attendance:
    present: int
    absent: int
    total: int


@dataclass(frozen=True)
class ReportCardRecord:
    student_name: str
    admission_number: str
    class_name: str
    session: str
    term: str
    school: SchoolInfo
    grades: Tuple[GradeEntry, ...]
    total_marks_obtained: Decimal
    total_marks_possible: Decimal
    average_score: Decimal
    section: str = ''
    gender: str = ''
    date_of_birth: Any = None
    position: Optional[int] = None
    total_students: Optional[int] = None
    attendance: Optional[Attendance] = None
    teacher_comment: Optional[str] = None
    principal_comment: Optional[str] = None
    next_term_begins: Any = None
    next_term_fee: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data, school=None):
        kind = 'report card'
        grades = tuple(GradeEntry.from_dict(g) for g in (_get(data, 'grades') or []))
        obtained = _optional_decimal(data, 'total_marks_obtained')
        if obtained is None:
            obtained = sum((g.total_score for g in grades), Decimal('0'))
        possible = _optional_decimal(data, 'total_marks_possible')
        if possible is None:
            possible = Decimal(100 * len(grades))
        average = _optional_decimal(data, 'average_score')
        if average is None:
            average = (obtained / len(grades)) if grades else Decimal('0')
        attendance = None
        attendance_data = _get(data, 'attendance')
        if attendance_data:
            attendance = Attendance(
                present=int(_get(attendance_data, 'present', 0)),
                absent=int(_get(attendance_data, 'absent', 0)),
                total=int(_get(attendance_data, 'total', 0)),
            )
        return cls(
            student_name=str(_require(data, 'student_name', kind)),
            admission_number=str(_require(data, 'admission_number', kind)),
            class_name=str(_require(data, 'class_name', kind)),
            session=str(_require(data, 'session', kind)),
            term=str(_require(data, 'term', kind)),
            school=SchoolInfo.from_dict(school) if school is not None else _school(data, kind),
            grades=grades,
            total_marks_obtained=obtained,
            total_marks_possible=possible,
            average_score=average,
            section=str(_get(data, 'section', '')),
            gender=str(_get(data, 'gender', '')),
            date_of_birth=_get(data, 'date_of_birth'),
            position=_int_or_none(_get(data, 'position')),
            total_students=_int_or_none(_get(data, 'total_students')),
            attendance=attendance,
            teacher_comment=_get(data, 'teacher_comment'),
            principal_comment=_get(data, 'principal_comment'),
            next_term_begins=_get(data, 'next_term_begins'),
            next_term_fee=_optional_decimal(data, 'next_term_fee'),
        )


@dataclass(frozen=True)
class PromotionEntry:
    student_name: str
    admission_number: str
    previous_class: str
    new_class: str
    action: str


@dataclass(frozen=True)
class ClassPromotionSummary:
    class_name: str
    students: Tuple[PromotionEntry, ...]

    def count(self, action):
        return sum(1 for s in self.students if s.action == action)

    @property
    def promoted(self):
        return self.count('promoted')

    @property
    def retained(self):
        return self.count('retained')

    @property
    def graduated(self):
        return self.count('graduated')


@dataclass(frozen=True)
class PromotionReportRecord:
    session: str
    school: SchoolInfo
    class_summaries: Tuple[ClassPromotionSummary, ...]

    @classmethod
    def from_dict(cls, data, school=None):
        kind = 'promotion report'
        summaries = []
        for summary in (_get(data, 'class_summaries') or []):
            students = []
            for student in (_get(summary, 'students') or []):
                action = str(_get(student, 'action', '')).lower()
                if action not in PROMOTION_ACTIONS:
                    raise DocumentError(
                        f"{kind}: unknown promotion action '{action}'", field='action')
                students.append(PromotionEntry(
                    student_name=str(_get(student, 'student_name', '')),
                    admission_number=str(_get(student, 'admission_number', '')),
                    previous_class=str(_get(student, 'previous_class', '')),
                    new_class=str(_get(student, 'new_class', '')),
                    action=action,
                ))
            summaries.append(ClassPromotionSummary(
                class_name=str(_get(summary, 'class_name', '')),
                students=tuple(students),
            ))
        return cls(
            session=str(_require(data, 'session', kind)),
            school=SchoolInfo.from_dict(school) if school is not None else _school(data, kind),
            class_summaries=tuple(summaries),
        )

    @property
    def totals(self):
        totals = {action: 0 for action in PROMOTION_ACTIONS}
        for summary in self.class_summaries:
            for action in PROMOTION_ACTIONS:
                totals[action] += summary.count(action)
        totals['total'] = sum(totals[action] for action in PROMOTION_ACTIONS)
        return totals


@dataclass(frozen=True)
class ExportColumn:
    header: str
    key: str
    width: Optional[int] = None


@dataclass(frozen=True)
class ExportOptions:
    filename: str
    columns: Tuple[ExportColumn, ...]
    rows: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)
    title: Optional[str] = None
    subtitle: Optional[str] = None
    school_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        columns = []
        for column in (_get(data, 'columns') or []):
            if isinstance(column, ExportColumn):
                columns.append(column)
                continue
            header = _get(column, 'header')
            key = _get(column, 'key')
            if header is None or key is None:
                raise ExportError('each column needs a header and a key')
            columns.append(ExportColumn(str(header), str(key), _int_or_none(_get(column, 'width'))))
        if not columns:
            raise ExportError('at least one column is required')
        rows = _get(data, 'rows')
        if rows is None:
            rows = _get(data, 'data') or []
        if not all(isinstance(row, dict) for row in rows):
            raise ExportError('rows must be objects')
        filename = re.sub(r'[\\/]+', '-', str(_get(data, 'filename') or 'export'))
        return cls(
            filename=filename,
            columns=tuple(columns),
            rows=tuple(rows),
            title=_get(data, 'title'),
            subtitle=_get(data, 'subtitle'),
            school_name=_get(data, 'school_name'),
        )
