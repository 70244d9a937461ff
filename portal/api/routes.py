"""JSON API: one endpoint dispatching on ``?action=``"""
from flask import request, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from portal import db
from portal.api import api_bp
from portal.api.forms import (
    EmployeeForm, EmployeeIdForm, BorrowerForm, BorrowerUpdateForm, BorrowerIdForm,
    VoucherForm, VoucherUpdateForm, VoucherIdForm, UpdateEmailForm, ChangePasswordForm
)
from portal.api.imports import import_rows
from portal.errors import DatabaseError, PortalError, ServerError, Unauthenticated, ValidationError
from portal.services import RequestContext, accounts, employees, ledger
from portal.utils.helpers import (
    EMPLOYEE_FIELDS, BORROWER_FIELDS, VOUCHER_FIELDS, ACCOUNT_FIELDS,
    BORROWER_ALIASES, VOUCHER_ALIASES, api_to_columns, build_formdata, json_response
)

ACTIONS = {}


def action(name, methods=('POST',)):
    """Register a handler for ``?action=name``; mutating actions are POST only"""
    def decorator(f):
        ACTIONS[name] = (f, methods)
        return f
    return decorator


def request_payload():
    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError('Invalid JSON data')
        return payload
    return request.form


def bind(form_class, fields, aliases=None):
    """Validate the request payload with ``form_class``, return typed data"""
    columns = api_to_columns(request_payload(), fields, aliases)
    return form_class(formdata=build_formdata(columns)).validated()


def with_warnings(message, warnings):
    if warnings:
        return f'{message}. Warning: ' + '; '.join(warnings)
    return message


@api_bp.route('', methods=['GET', 'POST'])
def dispatch():
    """Run the requested action and wrap the outcome in the JSON envelope"""
    name = request.args.get('action', '')

    if not current_user.is_authenticated:
        return json_response(False, Unauthenticated.default_message)

    entry = ACTIONS.get(name)
    if entry is None:
        return json_response(False, 'Invalid action')

    handler, methods = entry
    if request.method not in methods:
        return json_response(False, 'Method not allowed')

    try:
        return handler(RequestContext.from_request())
    except PortalError as e:
        # DatabaseError was logged where it was raised
        return json_response(False, e.message)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('API database error in action %s', name)
        return json_response(False, DatabaseError.default_message)
    except Exception:
        db.session.rollback()
        current_app.logger.exception('API error in action %s', name)
        return json_response(False, ServerError.default_message)


# Dashboard

@action('get_dashboard_stats', methods=('GET', 'POST'))
def get_dashboard_stats(ctx):
    return json_response(True, 'Stats loaded successfully', ledger.dashboard_stats())


# Employees

@action('get_employees', methods=('GET', 'POST'))
def get_employees(ctx):
    data = [employee.to_dict() for employee in employees.list_employees()]
    return json_response(True, 'Employees loaded successfully', data)


@action('add_employee')
def add_employee(ctx):
    data = bind(EmployeeForm, EMPLOYEE_FIELDS)
    employee = employees.create_employee(ctx, data['id'], data['name'])
    return json_response(True, 'Employee added successfully', employee.to_dict())


@action('update_employee')
def update_employee(ctx):
    data = bind(EmployeeForm, EMPLOYEE_FIELDS)
    employee = employees.rename_employee(ctx, data['id'], data['name'])
    return json_response(True, 'Employee updated successfully', employee.to_dict())


@action('delete_employee')
def delete_employee(ctx):
    data = bind(EmployeeIdForm, EMPLOYEE_FIELDS)
    employees.deactivate_employee(ctx, data['id'])
    return json_response(True, 'Employee deleted successfully')


# Borrowers

@action('get_borrowers', methods=('GET', 'POST'))
def get_borrowers(ctx):
    status = request.args.get('status', 'active')
    data = [borrower.to_dict() for borrower in ledger.list_borrowers(status)]
    return json_response(True, 'Borrowers loaded successfully', data)


@action('get_borrower_history', methods=('GET', 'POST'))
def get_borrower_history(ctx):
    emp_id = (request.args.get('empId') or '').strip()
    if not emp_id:
        raise ValidationError('Employee ID is required')
    return json_response(True, 'Borrower history loaded successfully', ledger.borrower_history(emp_id))


@action('add_borrower')
def add_borrower(ctx):
    data = bind(BorrowerForm, BORROWER_FIELDS, BORROWER_ALIASES)
    borrower, notice = ledger.create_borrower(
        ctx, data['emp_id'], data['name'], data['amount'], data['emi'], data['months'],
        data['disbursed_date'], application_no=data['application_no']
    )
    message = 'Borrower added successfully'
    if notice:
        message += f'. Note: {notice}'
    return json_response(True, message, borrower.to_dict())


@action('update_borrower')
def update_borrower(ctx):
    data = bind(BorrowerUpdateForm, BORROWER_FIELDS, BORROWER_ALIASES)
    borrower = ledger.edit_borrower(
        ctx, data['id'], data['emp_id'], data['name'], data['amount'], data['emi'],
        data['months'], data['disbursed_date']
    )
    return json_response(True, 'Borrower updated successfully', borrower.to_dict())


@action('delete_borrower')
def delete_borrower(ctx):
    data = bind(BorrowerIdForm, BORROWER_FIELDS)
    ledger.cancel_borrower(ctx, data['id'])
    return json_response(True, 'Borrower deleted successfully')


# Vouchers

@action('get_vouchers', methods=('GET', 'POST'))
def get_vouchers(ctx):
    emp_id = (request.args.get('empId') or '').strip() or None
    data = [voucher.to_dict() for voucher in ledger.list_vouchers(emp_id)]
    return json_response(True, 'Vouchers loaded successfully', data)


@action('add_voucher')
def add_voucher(ctx):
    data = bind(VoucherForm, VOUCHER_FIELDS, VOUCHER_ALIASES)
    result = ledger.create_voucher(
        ctx, data['emp_id'], data['emp_name'], data['amount'], data['voucher_date'],
        month=data['month'], voucher_no=data['voucher_no'], application_no=data['application_no']
    )
    update = result['borrower_update']

    message = 'Voucher added successfully'
    if update:
        message += f' and {update["applicationNo"]} outstanding updated'
        if update['status'] == 'completed':
            message += ' (advance completed)'
    return json_response(True, with_warnings(message, result['warnings']), {
        'voucher': result['voucher'].to_dict(),
        'borrowerUpdate': update,
        'warnings': result['warnings'],
    })


@action('update_voucher')
def update_voucher(ctx):
    data = bind(VoucherUpdateForm, VOUCHER_FIELDS, VOUCHER_ALIASES)
    voucher, warnings = ledger.edit_voucher(
        ctx, data['auto_id'], data['emp_id'], data['emp_name'], data['amount'], data['voucher_date'],
        month=data['month'], voucher_no=data['voucher_no'], application_no=data['application_no']
    )
    return json_response(True, with_warnings('Voucher updated successfully', warnings), voucher.to_dict())


@action('delete_voucher')
def delete_voucher(ctx):
    data = bind(VoucherIdForm, VOUCHER_FIELDS, VOUCHER_ALIASES)
    warnings = ledger.delete_voucher(ctx, data['auto_id'])
    return json_response(True, with_warnings('Voucher deleted successfully', warnings), {'warnings': warnings})


# Imports (JSON body)

def _import(ctx, entity):
    if not request.is_json:
        raise ValidationError('Invalid JSON data')
    rows = request_payload().get(entity)
    result = import_rows(ctx, entity, rows)
    return json_response(result.success, result.message, result.to_dict())


@action('import_employees')
def import_employees(ctx):
    return _import(ctx, 'employees')


@action('import_borrowers')
def import_borrowers(ctx):
    return _import(ctx, 'borrowers')


@action('import_vouchers')
def import_vouchers(ctx):
    return _import(ctx, 'vouchers')


# Account

@action('update_email')
def update_email(ctx):
    data = bind(UpdateEmailForm, ACCOUNT_FIELDS)
    user = accounts.update_email(ctx, data['email'])
    return json_response(True, 'Email updated successfully', user.to_dict())


@action('change_password')
def change_password(ctx):
    data = bind(ChangePasswordForm, ACCOUNT_FIELDS)
    accounts.change_password(ctx, data['current_password'], data['new_password'])
    return json_response(True, 'Password changed successfully')
