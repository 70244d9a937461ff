"""
Bulk import: row-level error reporting and all-or-nothing store faults
"""
from decimal import Decimal
import pytest
from sqlalchemy.exc import SQLAlchemyError
from portal.api.imports import import_rows
from portal.errors import DatabaseError, ValidationError
from portal.models import Borrower, Employee, Voucher
from portal.services import ledger


def borrower_row(**overrides):
    row = {
        'empId': 'E1',
        'name': 'Asha Perera',
        'amount': 1000,
        'emi': 100,
        'months': 10,
        'disbursedDate': '01-01-2025',
    }
    row.update(overrides)
    return row


def test_import_employees(ctx):
    result = import_rows(ctx, 'employees', [
        {'id': 'E1', 'name': 'Asha Perera'},
        {'id': 'E2', 'name': 'Nimal Silva'},
        {'id': 'E1', 'name': 'Duplicate'},
        {'id': '', 'name': 'No Id'},
    ])

    assert result.success_count == 2
    assert result.error_count == 2
    assert result.errors[0] == 'Row 3: Employee ID E1 already exists'
    assert result.errors[1].startswith('Row 4:')
    assert result.message == 'Imported 2 employees successfully (2 errors)'
    assert Employee.query.count() == 2


def test_bad_borrower_row_is_skipped(ctx, employee):
    """Three rows with the second invalid: two imported, one reported"""
    result = import_rows(ctx, 'borrowers', [
        borrower_row(),
        borrower_row(disbursedDate='not a date'),
        borrower_row(amount=500),
    ])

    assert result.to_dict()['successCount'] == 2
    assert result.to_dict()['errorCount'] == 1
    assert result.errors[0].startswith('Row 2:')
    assert result.success is True
    assert Borrower.query.count() == 2


def test_row_for_unknown_employee_is_skipped(ctx, employee):
    result = import_rows(ctx, 'borrowers', [
        borrower_row(),
        borrower_row(empId='E404'),
        borrower_row(amount=500),
    ])

    assert result.to_dict() == {
        'successCount': 2,
        'errorCount': 1,
        'errors': ['Row 2: Employee ID E404 not found'],
    }
    assert [b.amount for b in Borrower.query.order_by(Borrower.id)] == [Decimal('1000'), Decimal('500')]


def test_reserved_application_number_only_skips_its_row(ctx, employee):
    result = import_rows(ctx, 'borrowers', [
        borrower_row(applicationNo='APP000002'),
        borrower_row(),
    ])

    assert result.success_count == 1
    assert result.errors == ['Row 1: Application number APP000002 is reserved for automatic numbering']
    assert [b.application_no for b in Borrower.query.all()] == ['APP000001']


def test_import_borrowers_with_history(ctx, employee):
    result = import_rows(ctx, 'borrowers', [
        borrower_row(applicationNo='OLD-1', outstandingAmount=400, entryDate='10-01-2025'),
        borrower_row(applicationNo='OLD-2', outstandingAmount=0),
        borrower_row(applicationNo='OLD-3', outstandingAmount=5000),
        borrower_row(empId='E404'),
        borrower_row(applicationNo='OLD-1'),
    ])

    assert result.success_count == 3
    assert result.errors == [
        'Row 4: Employee ID E404 not found',
        'Row 5: Application number OLD-1 already exists',
    ]

    partial = Borrower.query.filter_by(application_no='OLD-1').one()
    assert partial.outstanding_amount == Decimal('400')
    assert partial.entry_date.isoformat() == '2025-01-10'
    assert Borrower.query.filter_by(application_no='OLD-2').one().status == Borrower.COMPLETED
    assert Borrower.query.filter_by(application_no='OLD-3').one().outstanding_amount == Decimal('1000')


def test_imported_rows_without_number_get_derived_numbers(ctx, employee):
    import_rows(ctx, 'borrowers', [borrower_row(), borrower_row(advanceAmount=300, month=3)])
    numbers = [b.application_no for b in Borrower.query.order_by(Borrower.id)]
    assert numbers == ['APP000001', 'APP000002']


def test_import_vouchers_apply_to_balances_in_order(ctx, borrower):
    result = import_rows(ctx, 'vouchers', [
        {'empId': 'E1', 'empName': 'Asha Perera', 'amount': 400, 'date': '31-01-2025'},
        {'empId': 'E1', 'empName': 'Asha Perera', 'amount': 700, 'voucherDate': '28-02-2025'},
        {'empId': 'E1', 'empName': 'Asha Perera', 'amount': 100, 'voucherDate': '31-03-2025'},
        {'empId': 'E1', 'amount': 100, 'voucherDate': '30-04-2025'},
    ])

    assert result.success_count == 3
    assert result.errors[0].startswith('Row 4:')
    row = ledger.get_borrower(borrower.id)
    assert row.outstanding_amount == Decimal('0')
    assert row.status == Borrower.COMPLETED
    applied = [v.applied_amount for v in Voucher.query.order_by(Voucher.auto_id)]
    assert applied == [Decimal('400'), Decimal('600'), Decimal('0')]


def test_store_fault_rolls_back_whole_batch(ctx, employee, monkeypatch):
    real_record = ledger.record_borrower
    calls = []

    def flaky_record(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise SQLAlchemyError('(1062) Duplicate entry OLD-9 for key application_no')
        return real_record(*args, **kwargs)

    monkeypatch.setattr(ledger, 'record_borrower', flaky_record)

    with pytest.raises(DatabaseError) as excinfo:
        import_rows(ctx, 'borrowers', [borrower_row(), borrower_row(), borrower_row()])

    assert excinfo.value.message.startswith('Duplicate record')
    assert Borrower.query.count() == 0


def test_empty_or_oversized_batches_are_refused(app, ctx):
    with pytest.raises(ValidationError):
        import_rows(ctx, 'borrowers', [])
    with pytest.raises(ValidationError):
        import_rows(ctx, 'payroll', [{'id': 1}])

    app.config['MAX_IMPORT_ROWS'] = 2
    with pytest.raises(ValidationError) as excinfo:
        import_rows(ctx, 'employees', [{'id': 'A', 'name': 'A'}] * 3)
    assert 'at most 2' in excinfo.value.message


def test_batch_with_only_errors(ctx):
    result = import_rows(ctx, 'employees', [{'name': 'No Id'}, 'junk'])
    assert result.success is False
    assert result.message == 'No employees were imported (2 errors)'
    assert result.errors[1] == 'Row 2: Row is not a record'


def test_import_over_http(auth_client):
    response = auth_client.post('/api?action=import_employees', json={'employees': [
        {'id': 'E1', 'name': 'Asha Perera'},
        {'id': 'E2'},
    ]})
    body = response.get_json()

    assert body['success'] is True
    assert body['message'] == 'Imported 1 employees successfully (1 errors)'
    assert body['data']['successCount'] == 1
    assert body['data']['errorCount'] == 1
    assert body['data']['errors'][0].startswith('Row 2:')

    empty = auth_client.post('/api?action=import_borrowers', json={'vouchers': []}).get_json()
    assert empty['success'] is False
    assert empty['message'] == 'No borrowers data to import'
