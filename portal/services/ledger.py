"""Advance ledger

Borrowers (salary advances) and the vouchers that pay them down. The
outstanding balance of a borrower only ever moves through
``Borrower.apply_payment`` and ``Borrower.rescale_outstanding``, which keep it
between zero and the advance amount.
"""
from decimal import Decimal
from sqlalchemy import func
from portal import db
from portal.errors import (
    DuplicateApplicationNo, EmployeeNotFound, NotFound, ValidationError
)
from portal.models import Borrower, Employee, Voucher
from portal.services.employees import get_employee
from portal.utils.database import atomic
from portal.utils.helpers import (
    application_no_sequence, generate_application_no, generate_voucher_no, month_label, to_money
)

BORROWER_STATUSES = (Borrower.ACTIVE, Borrower.COMPLETED, Borrower.CANCELLED)


# Borrowers

def list_borrowers(status=Borrower.ACTIVE):
    """Borrowers newest first; ``status='all'`` lists every row"""
    query = Borrower.query
    if status and status != 'all':
        if status not in BORROWER_STATUSES:
            raise ValidationError(f'Unknown borrower status: {status}')
        query = query.filter_by(status=status)
    return query.order_by(Borrower.created_at.desc(), Borrower.id.desc()).all()


def get_borrower(borrower_id, lock=False):
    if borrower_id is None:
        return None
    return db.session.get(Borrower, int(borrower_id), with_for_update=lock)


def last_borrower_id():
    return db.session.query(func.max(Borrower.id)).scalar() or 0


def count_active_advances(emp_id, exclude_id=None):
    query = Borrower.query.filter_by(emp_id=emp_id, status=Borrower.ACTIVE)
    if exclude_id is not None:
        query = query.filter(Borrower.id != exclude_id)
    return query.count()


def record_borrower(ctx, emp_id, name, amount, emi, months, disbursed_date,
                    application_no=None, outstanding_amount=None, entry_date=None):
    """Stage a new advance in the current transaction

    Returns ``(borrower, notice)``; ``notice`` is an advisory string when the
    employee already has other active advances, else None.
    """
    if get_employee(emp_id) is None:
        raise EmployeeNotFound(f'Employee ID {emp_id} not found')

    application_no = (application_no or '').strip() or None
    if application_no and Borrower.query.filter_by(application_no=application_no).first():
        raise DuplicateApplicationNo(f'Application number {application_no} already exists')

    # Derived numbers for ids not yet assigned belong to future rows
    reserved_id = application_no_sequence(application_no)
    if reserved_id is not None and reserved_id > last_borrower_id():
        raise DuplicateApplicationNo(f'Application number {application_no} is reserved for automatic numbering')

    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError('Advance amount must be greater than zero')

    status = Borrower.ACTIVE
    if outstanding_amount is None:
        outstanding = amount
    else:
        # Historical balances from imports
        outstanding = max(Decimal('0.00'), min(to_money(outstanding_amount), amount))
        if outstanding == 0:
            status = Borrower.COMPLETED

    other_active = count_active_advances(emp_id)

    borrower = Borrower(
        application_no=application_no,
        emp_id=emp_id,
        name=name,
        amount=amount,
        outstanding_amount=outstanding,
        emi=to_money(emi),
        months=int(months),
        disbursed_date=disbursed_date,
        status=status
    )
    if entry_date is not None:
        borrower.entry_date = entry_date
    db.session.add(borrower)
    db.session.flush()

    # The derived number needs the id assigned by the insert above
    if borrower.application_no is None:
        borrower.application_no = generate_application_no(borrower.id)
        db.session.flush()

    ctx.log('create_borrower', 'borrower', borrower.id,
            f'Created advance {borrower.application_no} of {amount} for {emp_id}')

    notice = None
    if other_active:
        notice = f'Employee {emp_id} already has {other_active} other active advance(s)'
    return borrower, notice


def create_borrower(ctx, emp_id, name, amount, emi, months, disbursed_date, application_no=None):
    with atomic('add borrower'):
        borrower, notice = record_borrower(
            ctx, emp_id, name, amount, emi, months, disbursed_date,
            application_no=application_no
        )
    return borrower, notice


def edit_borrower(ctx, borrower_id, emp_id, name, amount, emi, months, disbursed_date):
    """Administrative correction of an active advance"""
    with atomic('update borrower'):
        borrower = get_borrower(borrower_id, lock=True)
        if borrower is None:
            raise NotFound('Borrower not found')
        borrower.require_active()

        if emp_id != borrower.emp_id and get_employee(emp_id) is None:
            raise EmployeeNotFound(f'Employee ID {emp_id} not found')

        old_amount = to_money(borrower.amount)
        old_outstanding = to_money(borrower.outstanding_amount)
        borrower.rescale_outstanding(amount)

        borrower.emp_id = emp_id
        borrower.name = name
        borrower.emi = to_money(emi)
        borrower.months = int(months)
        borrower.disbursed_date = disbursed_date

        description = f'Updated advance {borrower.application_no}'
        if to_money(borrower.amount) != old_amount:
            description += (f': amount {old_amount} -> {borrower.amount}, '
                            f'outstanding {old_outstanding} -> {borrower.outstanding_amount}')
        ctx.log('update_borrower', 'borrower', borrower.id, description)
    return borrower


def cancel_borrower(ctx, borrower_id):
    """Soft delete of an active advance"""
    with atomic('delete borrower'):
        borrower = get_borrower(borrower_id, lock=True)
        if borrower is None:
            raise NotFound('Borrower not found')
        borrower.cancel()
        ctx.log('delete_borrower', 'borrower', borrower.id,
                f'Cancelled advance {borrower.application_no}')
    return borrower


def borrower_history(emp_id):
    """Every advance of an employee, newest first, with a summary"""
    employee = get_employee(emp_id)
    if employee is None:
        raise EmployeeNotFound(f'Employee ID {emp_id} not found')

    borrowers = employee.borrowers.order_by(Borrower.created_at.desc(), Borrower.id.desc()).all()
    active = [b for b in borrowers if b.status == Borrower.ACTIVE]

    return {
        'employee': employee.to_dict(),
        'borrowers': [b.to_dict() for b in borrowers],
        'summary': {
            'totalBorrowings': len(borrowers),
            'activeBorrowings': len(active),
            'completedBorrowings': sum(1 for b in borrowers if b.status == Borrower.COMPLETED),
            'cancelledBorrowings': sum(1 for b in borrowers if b.status == Borrower.CANCELLED),
            'totalOutstanding': float(sum((to_money(b.outstanding_amount) for b in active), Decimal('0.00'))),
        }
    }


# Vouchers

def list_vouchers(emp_id=None):
    query = Voucher.query
    if emp_id:
        query = query.filter_by(emp_id=emp_id)
    return query.order_by(Voucher.created_at.desc(), Voucher.auto_id.desc()).all()


def find_target_borrower(emp_id, application_no=None):
    """Active advance a voucher pays down, locked for the update

    With an application number only that advance qualifies; without one the
    employee's oldest active advance is used.
    """
    query = Borrower.query.filter_by(status=Borrower.ACTIVE)
    if application_no:
        query = query.filter_by(application_no=application_no)
    else:
        query = query.filter_by(emp_id=emp_id).order_by(Borrower.created_at.asc(), Borrower.id.asc())
    return query.with_for_update().first()


def record_voucher(ctx, emp_id, emp_name, amount, voucher_date, month=None,
                   voucher_no=None, application_no=None):
    """Stage a voucher and its balance effect in the current transaction

    Returns a dict with the voucher, the borrower balance change (or None)
    and a list of non-fatal warnings.
    """
    emp_id = (emp_id or '').strip()
    emp_name = (emp_name or '').strip()
    if not emp_id or not emp_name:
        raise ValidationError('Employee ID and Employee Name are required')
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError('Voucher amount must be greater than zero')
    if voucher_date is None:
        raise ValidationError('Voucher date is required')

    warnings = []
    if get_employee(emp_id) is None:
        warnings.append(f'Employee ID {emp_id} is not registered')

    application_no = (application_no or '').strip() or None
    voucher = Voucher(
        voucher_no=(voucher_no or '').strip() or None,
        emp_id=emp_id,
        emp_name=emp_name,
        application_no=application_no,
        voucher_date=voucher_date,
        amount=amount,
        month=(month or '').strip() or month_label(voucher_date),
        applied_amount=Decimal('0.00')
    )
    db.session.add(voucher)
    db.session.flush()

    if voucher.voucher_no is None:
        voucher.voucher_no = generate_voucher_no(voucher.auto_id)

    borrower_update = None
    borrower = find_target_borrower(emp_id, application_no)
    if borrower is None:
        if application_no:
            warnings.append(f'Application number {application_no} not found or not active')
    else:
        if borrower.emp_id != emp_id:
            warnings.append(f'Application number {borrower.application_no} belongs to employee {borrower.emp_id}')

        old_outstanding = to_money(borrower.outstanding_amount)
        applied = borrower.apply_payment(amount)
        voucher.borrower_id = borrower.id
        voucher.applied_amount = applied
        if voucher.application_no is None:
            voucher.application_no = borrower.application_no

        borrower_update = {
            'borrowerId': borrower.id,
            'applicationNo': borrower.application_no,
            'oldOutstanding': float(old_outstanding),
            'newOutstanding': float(to_money(borrower.outstanding_amount)),
            'appliedAmount': float(applied),
            'status': borrower.status,
        }

    db.session.flush()

    description = f'Recorded voucher {voucher.voucher_no} of {amount} for {emp_id}'
    if borrower_update:
        description += (f'; {borrower_update["applicationNo"]} outstanding '
                        f'{borrower_update["oldOutstanding"]:.2f} -> {borrower_update["newOutstanding"]:.2f}')
    ctx.log('create_voucher', 'voucher', voucher.auto_id, description)

    return {
        'voucher': voucher,
        'borrower_update': borrower_update,
        'warnings': warnings,
    }


def create_voucher(ctx, emp_id, emp_name, amount, voucher_date, month=None,
                   voucher_no=None, application_no=None):
    """Record a voucher and pay down the matching advance atomically"""
    with atomic('add voucher'):
        result = record_voucher(
            ctx, emp_id, emp_name, amount, voucher_date, month=month,
            voucher_no=voucher_no, application_no=application_no
        )
    return result


def get_voucher(auto_id):
    if auto_id is None:
        return None
    return db.session.get(Voucher, int(auto_id))


def edit_voucher(ctx, auto_id, emp_id, emp_name, amount, voucher_date, month=None,
                 voucher_no=None, application_no=None):
    """Correct the stored fields of a voucher

    Balances are not re-applied; returns ``(voucher, warnings)``.
    """
    warnings = []
    with atomic('update voucher'):
        voucher = get_voucher(auto_id)
        if voucher is None:
            raise NotFound('Voucher not found')

        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError('Voucher amount must be greater than zero')
        if voucher.borrower_id and amount != to_money(voucher.amount):
            warnings.append(
                f'Outstanding balance of {voucher.borrower.application_no} was not recalculated'
            )

        voucher.voucher_no = (voucher_no or '').strip() or voucher.voucher_no
        voucher.emp_id = emp_id
        voucher.emp_name = emp_name
        voucher.amount = amount
        voucher.voucher_date = voucher_date
        voucher.month = (month or '').strip() or month_label(voucher_date)
        application_no = (application_no or '').strip() or None
        if voucher.borrower_id:
            # A voucher that paid down an advance keeps naming that advance
            application_no = application_no or voucher.borrower.application_no
        voucher.application_no = application_no

        ctx.log('update_voucher', 'voucher', voucher.auto_id, f'Updated voucher {voucher.voucher_no}')
    return voucher, warnings


def delete_voucher(ctx, auto_id):
    """Hard delete; the balance reduction the voucher caused stays in place

    Returns a list of warnings naming any balance that was not restored.
    """
    warnings = []
    with atomic('delete voucher'):
        voucher = get_voucher(auto_id)
        if voucher is None:
            raise NotFound('Voucher not found')

        applied = to_money(voucher.applied_amount)
        if voucher.borrower_id and applied > 0:
            warnings.append(
                f'{applied} paid against {voucher.borrower.application_no} was not restored to its outstanding balance'
            )

        ctx.log('delete_voucher', 'voucher', voucher.auto_id,
                f'Deleted voucher {voucher.voucher_no} of {voucher.amount} for {voucher.emp_id}')
        db.session.delete(voucher)
    return warnings


# Reporting

def dashboard_stats():
    outstanding = db.session.query(
        func.coalesce(func.sum(Borrower.outstanding_amount), 0)
    ).filter(Borrower.status == Borrower.ACTIVE).scalar()

    return {
        'totalEmployees': Employee.query.filter_by(status=Employee.ACTIVE).count(),
        'activeBorrowers': Borrower.query.filter_by(status=Borrower.ACTIVE).count(),
        # Counts every voucher row, whatever the state of its borrower
        'activeVouchers': Voucher.query.count(),
        'outstandingAmount': float(to_money(outstanding)),
    }
