"""Portal user accounts"""
from datetime import datetime
from flask import current_app
from portal import db
from portal.errors import DuplicateKey, Unauthenticated, ValidationError
from portal.models import User
from portal.utils.database import atomic


def authenticate(email, password):
    """Return the active user matching the credentials

    Raises Unauthenticated with a message saying which check failed.
    """
    email = (email or '').strip().lower()
    user = User.query.filter(db.func.lower(User.email) == email).first()

    if user is None:
        current_app.logger.warning('Failed login attempt for unknown email: %s', email)
        raise Unauthenticated('No account found with this email address. '
                              'Please check your email or contact administrator.')
    if not user.is_active:
        current_app.logger.warning('Login attempt for inactive account: %s', email)
        raise Unauthenticated('Account is not active. Please contact administrator.')
    if not user.check_password(password or ''):
        current_app.logger.warning('Failed login attempt for email: %s', email)
        raise Unauthenticated('Invalid password. Please check your password and try again.')

    current_app.logger.info('Successful login for user: %s', email)
    return user


def record_login(ctx):
    with atomic('record login'):
        ctx.user.last_login = datetime.utcnow()
        ctx.log('login', 'user', ctx.user.id, f'User {ctx.user.username} logged in')


def record_logout(ctx):
    with atomic('record logout'):
        ctx.log('logout', 'user', ctx.user.id, f'User {ctx.user.username} logged out')


def update_email(ctx, email):
    email = (email or '').strip().lower()
    if not email:
        raise ValidationError('Email is required')

    with atomic('update email'):
        taken = User.query.filter(db.func.lower(User.email) == email, User.id != ctx.user.id).first()
        if taken is not None:
            raise DuplicateKey('Email address is already in use')

        old_email = ctx.user.email
        ctx.user.email = email
        ctx.log('update_email', 'user', ctx.user.id, f'Email changed from {old_email} to {email}')
    return ctx.user


def change_password(ctx, current_password, new_password):
    if not ctx.user.check_password(current_password or ''):
        raise ValidationError('Current password is incorrect')

    with atomic('change password'):
        ctx.user.set_password(new_password)
        ctx.log('change_password', 'user', ctx.user.id, f'User {ctx.user.username} changed password')
    return ctx.user


def create_user(username, email, password, role='user'):
    """Create a login; returns the existing user when the email is taken"""
    existing = User.query.filter_by(email=email.lower()).first()
    if existing is not None:
        return existing, False

    user = User(username=username, email=email.lower(), role=role, status=User.ACTIVE)
    user.set_password(password)
    with atomic('create user'):
        db.session.add(user)
    return user, True
