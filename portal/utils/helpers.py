"""Helper functions"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from flask import current_app, jsonify
from werkzeug.datastructures import MultiDict

CENT = Decimal('0.01')

DISPLAY_DATE_FORMAT = '%d-%m-%Y'
STORAGE_DATE_FORMAT = '%Y-%m-%d'

# camelCase API name -> snake_case column name
EMPLOYEE_FIELDS = {
    'id': 'id',
    'name': 'name',
    'status': 'status',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

BORROWER_FIELDS = {
    'id': 'id',
    'applicationNo': 'application_no',
    'empId': 'emp_id',
    'name': 'name',
    'amount': 'amount',
    'outstandingAmount': 'outstanding_amount',
    'emi': 'emi',
    'months': 'months',
    'disbursedDate': 'disbursed_date',
    'entryDate': 'entry_date',
    'status': 'status',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

VOUCHER_FIELDS = {
    'autoId': 'auto_id',
    'id': 'voucher_no',
    'empId': 'emp_id',
    'empName': 'emp_name',
    'applicationNo': 'application_no',
    'voucherDate': 'voucher_date',
    'amount': 'amount',
    'month': 'month',
    'borrowerId': 'borrower_id',
    'appliedAmount': 'applied_amount',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

USER_FIELDS = {
    'id': 'id',
    'username': 'username',
    'email': 'email',
    'role': 'role',
    'status': 'status',
    'lastLogin': 'last_login',
}

ACCOUNT_FIELDS = {
    'email': 'email',
    'password': 'password',
    'currentPassword': 'current_password',
    'newPassword': 'new_password',
    'confirmPassword': 'confirm_password',
}

# Older client builds and spreadsheet headers
BORROWER_ALIASES = {'month': 'months', 'advanceAmount': 'amount'}
VOUCHER_ALIASES = {'date': 'voucher_date', 'auto_id': 'auto_id'}


def _setting(key, fallback):
    try:
        return current_app.config.get(key, fallback)
    except RuntimeError:
        return fallback


def parse_display_date(value):
    """Parse a boundary date into a ``date``

    Accepts ``DD-MM-YYYY`` (display format) and ``YYYY-MM-DD`` (storage
    format), so already-converted values pass through unchanged. Anything else
    is handed to dateutil with day-first ordering. Returns None for blanks and
    raises ValueError for garbage.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in (_setting('DISPLAY_DATE_FORMAT', DISPLAY_DATE_FORMAT),
                _setting('STORAGE_DATE_FORMAT', STORAGE_DATE_FORMAT)):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f'Invalid date: {text}') from e


def format_display_date(value):
    """Format a date for the API (DD-MM-YYYY)"""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(_setting('DISPLAY_DATE_FORMAT', DISPLAY_DATE_FORMAT))


def to_storage_date(value):
    """Convert a boundary date string to YYYY-MM-DD (idempotent)"""
    parsed = parse_display_date(value)
    if parsed is None:
        return None
    return parsed.strftime(_setting('STORAGE_DATE_FORMAT', STORAGE_DATE_FORMAT))


def to_money(value):
    """Quantize an amount to cents"""
    if value is None or value == '':
        return Decimal('0.00')
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f'Invalid amount: {value}') from e
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def generate_application_no(borrower_id, prefix=None, width=None):
    """Derive an application number from a borrower's row id

    The id only exists after the row has been flushed, so callers insert first
    and derive second.
    """
    prefix = prefix if prefix is not None else _setting('APPLICATION_NO_PREFIX', 'APP')
    width = width if width is not None else _setting('APPLICATION_NO_WIDTH', 6)
    return f'{prefix}{int(borrower_id):0{width}d}'


def application_no_sequence(application_no, prefix=None, width=None):
    """Row id encoded by a number in the derived format, else None"""
    prefix = prefix if prefix is not None else _setting('APPLICATION_NO_PREFIX', 'APP')
    if not application_no or not application_no.startswith(prefix):
        return None
    digits = application_no[len(prefix):]
    if not (digits.isascii() and digits.isdigit()):
        return None
    borrower_id = int(digits)
    if generate_application_no(borrower_id, prefix, width) != application_no:
        return None
    return borrower_id


def generate_voucher_no(auto_id, prefix=None):
    """Derive a voucher number from a voucher's auto id"""
    prefix = prefix if prefix is not None else _setting('VOUCHER_NO_PREFIX', 'VCH')
    width = _setting('APPLICATION_NO_WIDTH', 6)
    return f'{prefix}{int(auto_id):0{width}d}'


def month_label(value):
    """Default voucher month label, e.g. 'January 2025'"""
    return value.strftime('%B %Y') if value else ''


def expected_completion_date(disbursed_date, months):
    """Disbursement date plus the nominal term"""
    if not disbursed_date or not months:
        return None
    return disbursed_date + relativedelta(months=int(months))


def _api_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return format_display_date(value)
    return value


def columns_to_api(obj, fields):
    """Serialize a model (or dict of columns) to camelCase API fields"""
    result = {}
    for api_name, column in fields.items():
        if isinstance(obj, dict):
            value = obj.get(column)
        else:
            value = getattr(obj, column, None)
        result[api_name] = _api_value(value)
    return result


def api_to_columns(payload, fields, aliases=None):
    """Map a camelCase payload onto column names

    Unknown keys are dropped. Canonical names win over aliases when both are
    present.
    """
    aliases = aliases or {}
    columns = {}
    for key, value in payload.items():
        if key in aliases and aliases[key] not in columns:
            columns[aliases[key]] = value
    for key, value in payload.items():
        if key in fields:
            columns[fields[key]] = value
    return columns


def _form_value(value):
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'y' if value else ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def build_formdata(payload):
    """Turn a JSON object or form into WTForms formdata of plain strings"""
    if isinstance(payload, MultiDict):
        items = payload.items(multi=True)
    else:
        items = payload.items()
    return MultiDict([(key, _form_value(value)) for key, value in items])


def json_response(success, message, data=None):
    """JSON envelope shared by every endpoint"""
    return jsonify({
        'success': bool(success),
        'message': message,
        'data': data
    })
