"""
Bulk receipt export: render a term's receipts one after another into a ZIP archive
"""
import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from documents import render_receipt
from exceptions import BulkExportError
from formatting import date_stamp
from helpers import safe_filename_part
from records import ReceiptRecord, SchoolInfo

logger = logging.getLogger(__name__)


@dataclass
class ReceiptArchive:
    filename: str
    content: bytes
    entries: List[str] = field(default_factory=list)
    failures: List[Tuple[int, str]] = field(default_factory=list)
    mimetype: str = 'application/zip'


def _nested(data, *path):
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def receipt_from_payment(payment, school, term, session):
    """Build a ReceiptRecord from a fee-payment row as served by the payments API"""
    first = _nested(payment, 'student', 'profile', 'first_name') or ''
    last = _nested(payment, 'student', 'profile', 'last_name') or ''
    fee_type = payment.get('fee_type')
    if isinstance(fee_type, dict):
        fee_type = fee_type.get('name')
    return ReceiptRecord.from_dict({
        'receipt_number': payment.get('receipt_number') or 'N/A',
        'student_name': f"{first} {last}".strip() or payment.get('student_name'),
        'admission_number': _nested(payment, 'student', 'admission_number') or 'N/A',
        'class_name': _nested(payment, 'student', 'class', 'name') or 'N/A',
        'fee_type': fee_type or 'School Fees',
        'amount': payment.get('amount_paid', payment.get('amount')),
        'payment_method': payment.get('payment_method') or 'N/A',
        'payment_date': payment.get('payment_date'),
        'session': payment.get('session') or session,
        'term': payment.get('term') or term,
        'balance': payment.get('balance'),
    }, school=school)


def archive_folder(session, term):
    return f"Receipts_{str(session).replace('/', '-')}_{term}_Term"


def entry_name(payment):
    first = safe_filename_part(_nested(payment, 'student', 'profile', 'first_name'), 'Unknown')
    last = safe_filename_part(_nested(payment, 'student', 'profile', 'last_name'), 'Student')
    key = payment.get('receipt_number') or str(payment.get('id') or '')[:8]
    return f"Receipt_{first}_{last}_{safe_filename_part(key, 'NA')}.pdf"


def build_receipts_archive(payments, school, term, session,
                           on_progress: Optional[Callable[[int, int], None]] = None,
                           skip_failures=False, generated_at=None) -> ReceiptArchive:
    """
    Render every payment as a receipt and package them in one ZIP.

    Records are rendered strictly in input order and on_progress(i, n) is
    called after each one. By default the first record that fails to render
    aborts the batch with BulkExportError; with skip_failures the record is
    left out and reported in ReceiptArchive.failures instead.
    """
    generated_at = generated_at or datetime.now()
    school = SchoolInfo.from_dict(school)
    folder = archive_folder(session, term)
    total = len(payments)
    buffer = io.BytesIO()
    archive = ReceiptArchive(
        filename=f"{folder}_{date_stamp(generated_at)}.zip",
        content=b'',
    )
    used_names = set()

    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        for index, payment in enumerate(payments, start=1):
            try:
                record = receipt_from_payment(payment, school, term, session)
                document = render_receipt(record, generated_at=generated_at)
            except Exception as e:
                if not skip_failures:
                    raise BulkExportError(
                        f"Receipt {index} of {total} failed to render: {e}", index=index) from e
                logger.warning("Skipping receipt %d of %d: %s", index, total, e)
                archive.failures.append((index, str(e)))
            else:
                name = entry_name(payment)
                stem, suffix = name[:-4], 2
                while name in used_names:
                    name = f"{stem}_{suffix}.pdf"
                    suffix += 1
                used_names.add(name)
                zf.writestr(f"{folder}/{name}", document.content)
                archive.entries.append(f"{folder}/{name}")

            if on_progress:
                on_progress(index, total)

    archive.content = buffer.getvalue()
    logger.info("Packaged %d of %d receipts into %s", len(archive.entries), total, archive.filename)
    return archive
