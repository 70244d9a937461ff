"""Bulk import of spreadsheet rows

Rows are validated and recorded one by one inside a single transaction. A row
that fails validation is skipped and reported with its 1-based position; a
store fault rolls back the whole batch.
"""
from flask import current_app
from portal.api.forms import EmployeeForm, BorrowerImportForm, VoucherForm
from portal.errors import DuplicateKey, InvalidTransition, NotFound, ValidationError
from portal.services import employees, ledger
from portal.utils.database import atomic
from portal.utils.helpers import (
    EMPLOYEE_FIELDS, BORROWER_FIELDS, VOUCHER_FIELDS, BORROWER_ALIASES, VOUCHER_ALIASES,
    api_to_columns, build_formdata
)

ROW_ERRORS = (ValidationError, NotFound, DuplicateKey, InvalidTransition)


def _record_employee(ctx, data):
    employees.record_employee(ctx, data['id'], data['name'])


def _record_borrower(ctx, data):
    ledger.record_borrower(
        ctx, data['emp_id'], data['name'], data['amount'], data['emi'], data['months'],
        data['disbursed_date'],
        application_no=data.get('application_no'),
        outstanding_amount=data.get('outstanding_amount'),
        entry_date=data.get('entry_date')
    )


def _record_voucher(ctx, data):
    ledger.record_voucher(
        ctx, data['emp_id'], data['emp_name'], data['amount'], data['voucher_date'],
        month=data.get('month'),
        voucher_no=data.get('voucher_no'),
        application_no=data.get('application_no')
    )


# entity -> (form, API fields, aliases, recorder)
IMPORTERS = {
    'employees': (EmployeeForm, EMPLOYEE_FIELDS, None, _record_employee),
    'borrowers': (BorrowerImportForm, BORROWER_FIELDS, BORROWER_ALIASES, _record_borrower),
    'vouchers': (VoucherForm, VOUCHER_FIELDS, VOUCHER_ALIASES, _record_voucher),
}


class ImportResult:
    """Outcome of one import batch"""

    def __init__(self, entity):
        self.entity = entity
        self.success_count = 0
        self.errors = []

    @property
    def error_count(self):
        return len(self.errors)

    def fail(self, row_number, reason):
        self.errors.append(f'Row {row_number}: {reason}')

    @property
    def message(self):
        if not self.success_count and self.errors:
            return f'No {self.entity} were imported ({self.error_count} errors)'
        message = f'Imported {self.success_count} {self.entity} successfully'
        if self.errors:
            message += f' ({self.error_count} errors)'
        return message

    @property
    def success(self):
        return self.success_count > 0 or not self.errors

    def to_dict(self):
        return {
            'successCount': self.success_count,
            'errorCount': self.error_count,
            'errors': self.errors,
        }


def import_rows(ctx, entity, rows):
    """Validate and record a batch of rows for ``entity``"""
    if entity not in IMPORTERS:
        raise ValidationError(f'Cannot import {entity}')
    if not isinstance(rows, list) or not rows:
        raise ValidationError(f'No {entity} data to import')

    limit = current_app.config.get('MAX_IMPORT_ROWS', 5000)
    if len(rows) > limit:
        raise ValidationError(f'Too many rows: at most {limit} {entity} can be imported at once')

    form_class, fields, aliases, record = IMPORTERS[entity]
    result = ImportResult(entity)

    with atomic(f'import {entity}', classify=True):
        for row_number, row in enumerate(rows, start=1):
            if not isinstance(row, dict):
                result.fail(row_number, 'Row is not a record')
                continue

            form = form_class(formdata=build_formdata(api_to_columns(row, fields, aliases)))
            try:
                record(ctx, form.validated())
            except ROW_ERRORS as e:
                result.fail(row_number, e.message)
                continue
            result.success_count += 1

        ctx.log(f'import_{entity}', entity.rstrip('s'), None,
                f'Imported {result.success_count} {entity}, {result.error_count} rows skipped')

    current_app.logger.info('Import of %s: %d imported, %d skipped',
                            entity, result.success_count, result.error_count)
    return result
