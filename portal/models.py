"""Database models for the advance portal"""
from datetime import datetime, date
from decimal import Decimal
from portal import db, login_manager
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from portal.errors import InvalidTransition, NotActive
from portal.utils.helpers import (
    EMPLOYEE_FIELDS, BORROWER_FIELDS, VOUCHER_FIELDS, USER_FIELDS,
    columns_to_api, expected_completion_date, format_display_date, to_money
)

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class StatusMixin:
    """Closed status state machine

    Subclasses list every allowed move in ``TRANSITIONS``; any status change
    goes through ``transition_to``.
    """
    TRANSITIONS = {}

    def can_transition_to(self, status):
        return status in self.TRANSITIONS.get(self.status, ())

    def transition_to(self, status):
        if not self.can_transition_to(status):
            raise InvalidTransition(
                f'{type(self).__name__} cannot move from {self.status} to {status}'
            )
        self.status = status


# User and Authentication Models
class User(UserMixin, StatusMixin, db.Model):
    """Portal login"""
    __tablename__ = 'users'

    ACTIVE = 'active'
    INACTIVE = 'inactive'
    TRANSITIONS = {
        ACTIVE: {INACTIVE},
        INACTIVE: {ACTIVE},
    }

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(100), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')  # admin, user
    status = db.Column(db.String(20), nullable=False, default=ACTIVE)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_active(self):
        # Flask-Login refuses to log in inactive users
        return self.status == self.ACTIVE

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        data = columns_to_api(self, USER_FIELDS)
        data['name'] = self.username
        return data

    def __repr__(self):
        return f'<User {self.email}>'


class Employee(StatusMixin, db.Model):
    """Staff member who may take salary advances

    Employees are never physically removed; borrowers and vouchers keep
    referring to them after deactivation.
    """
    __tablename__ = 'employees'

    ACTIVE = 'active'
    INACTIVE = 'inactive'
    TRANSITIONS = {
        ACTIVE: {INACTIVE},
        INACTIVE: set(),
    }

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ACTIVE, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    borrowers = db.relationship('Borrower', backref='employee', lazy='dynamic')

    @property
    def is_active(self):
        return self.status == self.ACTIVE

    def deactivate(self):
        self.transition_to(self.INACTIVE)

    def to_dict(self):
        return columns_to_api(self, EMPLOYEE_FIELDS)

    def __repr__(self):
        return f'<Employee {self.id} - {self.name}>'


class Borrower(StatusMixin, db.Model):
    """One salary advance given to an employee"""
    __tablename__ = 'borrowers'

    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    TRANSITIONS = {
        ACTIVE: {COMPLETED, CANCELLED},
        COMPLETED: set(),
        CANCELLED: set(),
    }

    id = db.Column(db.Integer, primary_key=True)
    # Null only between the insert and the derived-number update
    application_no = db.Column(db.String(50), unique=True, index=True)
    emp_id = db.Column(db.String(20), db.ForeignKey('employees.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Amounts
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    outstanding_amount = db.Column(db.Numeric(12, 2), nullable=False)
    emi = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    months = db.Column(db.Integer, nullable=False)

    # Dates
    disbursed_date = db.Column(db.Date, nullable=False)
    entry_date = db.Column(db.Date, default=date.today)

    status = db.Column(db.String(20), nullable=False, default=ACTIVE, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('outstanding_amount >= 0', name='ck_borrowers_outstanding_non_negative'),
        db.CheckConstraint('outstanding_amount <= amount', name='ck_borrowers_outstanding_within_amount'),
    )

    @property
    def is_active(self):
        return self.status == self.ACTIVE

    def require_active(self):
        if not self.is_active:
            raise NotActive(f'Borrower {self.application_no or self.id} is {self.status}, not active')

    def apply_payment(self, payment):
        """Reduce the outstanding balance by a voucher amount

        The balance never drops below zero; reaching zero completes the
        advance. Returns the amount actually removed from the balance.
        """
        self.require_active()
        payment = to_money(payment)
        old_outstanding = to_money(self.outstanding_amount)
        new_outstanding = old_outstanding - payment

        if new_outstanding <= 0:
            self.outstanding_amount = Decimal('0.00')
            self.transition_to(self.COMPLETED)
        else:
            self.outstanding_amount = new_outstanding

        return old_outstanding - to_money(self.outstanding_amount)

    def rescale_outstanding(self, new_amount):
        """Keep repayment progress proportional when the principal is corrected"""
        new_amount = to_money(new_amount)
        old_amount = to_money(self.amount)
        old_outstanding = to_money(self.outstanding_amount)

        if new_amount == old_amount:
            return
        if old_amount == 0:
            outstanding = new_amount
        else:
            outstanding = to_money(new_amount * old_outstanding / old_amount)

        self.amount = new_amount
        self.outstanding_amount = max(Decimal('0.00'), min(outstanding, new_amount))
        # Rounding to cents can settle a nearly repaid advance
        if self.outstanding_amount == 0 and self.is_active:
            self.transition_to(self.COMPLETED)

    def cancel(self):
        self.require_active()
        self.transition_to(self.CANCELLED)

    @property
    def paid_amount(self):
        return to_money(self.amount) - to_money(self.outstanding_amount)

    def to_dict(self):
        data = columns_to_api(self, BORROWER_FIELDS)
        data['paidAmount'] = float(self.paid_amount)
        data['expectedCompletionDate'] = format_display_date(
            expected_completion_date(self.disbursed_date, self.months)
        )
        return data

    def __repr__(self):
        return f'<Borrower {self.application_no} - {self.emp_id}>'


class Voucher(db.Model):
    """Append-only repayment record

    ``borrower_id`` and ``applied_amount`` record which advance the voucher
    debited and by how much, after clamping at zero.
    """
    __tablename__ = 'vouchers'

    auto_id = db.Column(db.Integer, primary_key=True)
    voucher_no = db.Column(db.String(50), index=True)  # not unique
    emp_id = db.Column(db.String(20), nullable=False, index=True)
    emp_name = db.Column(db.String(255), nullable=False)
    application_no = db.Column(db.String(50), index=True)
    voucher_date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    month = db.Column(db.String(30))

    # Ledger effect
    borrower_id = db.Column(db.Integer, db.ForeignKey('borrowers.id'), nullable=True)
    applied_amount = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    borrower = db.relationship('Borrower', backref=db.backref('vouchers', lazy='dynamic'))

    def to_dict(self):
        return columns_to_api(self, VOUCHER_FIELDS)

    def __repr__(self):
        return f'<Voucher {self.voucher_no} ({self.auto_id})>'


class ActivityLog(db.Model):
    """Activity log for audit trail"""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50))  # employee, borrower, voucher, user
    entity_id = db.Column(db.String(50))
    description = db.Column(db.Text)
    ip_address = db.Column(db.String(50))
    user_agent = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action}>'
