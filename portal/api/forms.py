"""Request validation for API actions

Each form turns a loosely typed payload (form fields or a JSON object,
already mapped to column names) into typed values. Field names match the
storage columns.
"""
from flask_wtf import FlaskForm
from wtforms import StringField, DecimalField, IntegerField, PasswordField
from wtforms.validators import DataRequired, InputRequired, Optional, NumberRange, Length, Email, EqualTo
from portal.errors import ValidationError
from portal.utils.helpers import parse_display_date


def strip(value):
    return value.strip() if isinstance(value, str) else value


class DisplayDateField(StringField):
    """Date given as DD-MM-YYYY (or already YYYY-MM-DD)"""

    def process_formdata(self, valuelist):
        self.raw_data = valuelist
        self.data = None
        if not valuelist or not valuelist[0].strip():
            return
        try:
            self.data = parse_display_date(valuelist[0])
        except ValueError:
            raise ValueError(self.gettext('Not a valid date value. Use DD-MM-YYYY.'))

    def _value(self):
        if self.raw_data:
            return ' '.join(self.raw_data)
        return self.data.strftime('%d-%m-%Y') if self.data else ''


class ApiForm(FlaskForm):
    """Base form for JSON actions; the session cookie is SameSite"""

    class Meta:
        csrf = False

    def validated(self):
        """Validate and return ``self.data`` or raise ValidationError"""
        if not self.validate():
            raise ValidationError(self.error_message())
        return self.data

    def error_message(self):
        messages = []
        for name, errors in self.errors.items():
            label = self[name].label.text if name in self._fields else name
            messages.append(f'{label}: {errors[0]}')
        return '; '.join(messages) or 'Required fields are missing'


# Employees

class EmployeeForm(ApiForm):
    id = StringField('Employee ID', validators=[DataRequired(), Length(max=20)], filters=[strip])
    name = StringField('Name', validators=[DataRequired(), Length(max=255)], filters=[strip])


class EmployeeIdForm(ApiForm):
    id = StringField('Employee ID', validators=[DataRequired(), Length(max=20)], filters=[strip])


# Borrowers

class BorrowerForm(ApiForm):
    emp_id = StringField('Employee ID', validators=[DataRequired(), Length(max=20)], filters=[strip])
    name = StringField('Name', validators=[DataRequired(), Length(max=255)], filters=[strip])
    amount = DecimalField('Advance Amount', places=2, validators=[DataRequired(), NumberRange(min=0.01)])
    emi = DecimalField('EMI', places=2, validators=[InputRequired(), NumberRange(min=0)])
    months = IntegerField('Months', validators=[InputRequired(), NumberRange(min=1, max=600)])
    disbursed_date = DisplayDateField('Disbursed Date', validators=[DataRequired()])
    application_no = StringField('Application No', validators=[Optional(), Length(max=50)], filters=[strip])


class BorrowerImportForm(BorrowerForm):
    outstanding_amount = DecimalField('Outstanding Amount', places=2, validators=[Optional(), NumberRange(min=0)])
    entry_date = DisplayDateField('Entry Date', validators=[Optional()])


class BorrowerUpdateForm(BorrowerForm):
    id = IntegerField('Borrower ID', validators=[InputRequired()])


class BorrowerIdForm(ApiForm):
    id = IntegerField('Borrower ID', validators=[InputRequired()])


# Vouchers

class VoucherForm(ApiForm):
    voucher_no = StringField('Voucher ID', validators=[Optional(), Length(max=50)], filters=[strip])
    emp_id = StringField('Employee ID', validators=[DataRequired(), Length(max=20)], filters=[strip])
    emp_name = StringField('Employee Name', validators=[DataRequired(), Length(max=255)], filters=[strip])
    amount = DecimalField('Amount', places=2, validators=[DataRequired(), NumberRange(min=0.01)])
    voucher_date = DisplayDateField('Voucher Date', validators=[DataRequired()])
    month = StringField('Month', validators=[Optional(), Length(max=30)], filters=[strip])
    application_no = StringField('Application No', validators=[Optional(), Length(max=50)], filters=[strip])


class VoucherUpdateForm(VoucherForm):
    auto_id = IntegerField('Voucher record', validators=[InputRequired()])


class VoucherIdForm(ApiForm):
    auto_id = IntegerField('Voucher record', validators=[InputRequired()])


# Account

class LoginForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email(message='Invalid email format')], filters=[strip])
    password = PasswordField('Password', validators=[DataRequired(message='Password is required')])


class UpdateEmailForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email(message='Invalid email format'), Length(max=100)],
                        filters=[strip])


class ChangePasswordForm(ApiForm):
    current_password = PasswordField('Current Password', validators=[DataRequired()])
    new_password = PasswordField('New Password', validators=[
        DataRequired(),
        Length(min=6, message='Password must be at least 6 characters long')
    ])
    confirm_password = PasswordField('Confirm New Password', validators=[
        DataRequired(),
        EqualTo('new_password', message='Passwords must match')
    ])
