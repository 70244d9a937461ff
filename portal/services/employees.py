"""Employee registry"""
from portal import db
from portal.errors import DuplicateKey, NotFound, ValidationError
from portal.models import Employee
from portal.utils.database import atomic


def list_employees():
    """Active employees ordered by id"""
    return Employee.query.filter_by(status=Employee.ACTIVE).order_by(Employee.id).all()


def get_employee(emp_id):
    return db.session.get(Employee, emp_id) if emp_id else None


def record_employee(ctx, emp_id, name):
    """Stage a new employee in the current transaction"""
    emp_id = (emp_id or '').strip()
    name = (name or '').strip()
    if not emp_id or not name:
        raise ValidationError('Employee ID and Name are required')

    if get_employee(emp_id) is not None:
        raise DuplicateKey(f'Employee ID {emp_id} already exists')

    employee = Employee(id=emp_id, name=name, status=Employee.ACTIVE)
    db.session.add(employee)
    db.session.flush()

    ctx.log('create_employee', 'employee', emp_id, f'Created employee: {emp_id} - {name}')
    return employee


def create_employee(ctx, emp_id, name):
    with atomic('add employee'):
        employee = record_employee(ctx, emp_id, name)
    return employee


def rename_employee(ctx, emp_id, name):
    """Rename an active employee

    Existing borrower rows keep the name they were created with.
    """
    name = (name or '').strip()
    if not name:
        raise ValidationError('Name is required')

    with atomic('update employee'):
        employee = Employee.query.filter_by(id=emp_id, status=Employee.ACTIVE).first()
        if employee is None:
            raise NotFound('Employee not found')

        old_name = employee.name
        employee.name = name
        ctx.log('update_employee', 'employee', emp_id, f'Renamed employee {emp_id}: {old_name} -> {name}')
    return employee


def deactivate_employee(ctx, emp_id):
    """Soft delete: the row stays for borrower and voucher history"""
    with atomic('delete employee'):
        employee = Employee.query.filter_by(id=emp_id, status=Employee.ACTIVE).first()
        if employee is None:
            raise NotFound('Employee not found')

        employee.deactivate()
        ctx.log('delete_employee', 'employee', emp_id, f'Deactivated employee: {emp_id}')
    return employee
