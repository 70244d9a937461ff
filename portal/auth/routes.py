"""Authentication routes"""
from flask import redirect, url_for, request, session
from flask_login import login_user, logout_user, current_user
from portal.auth import auth_bp
from portal.api.forms import LoginForm
from portal.errors import PortalError
from portal.services import RequestContext, accounts
from portal.utils.helpers import ACCOUNT_FIELDS, api_to_columns, build_formdata, json_response

@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """User login (JSON)"""
    if current_user.is_authenticated:
        if request.method == 'GET':
            return redirect(url_for('main.dashboard'))
        return json_response(True, 'Already logged in', {'redirect': url_for('main.dashboard')})

    if request.method == 'GET':
        return json_response(False, 'Please log in to access this page.', {'login': url_for('auth.login')})

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return json_response(False, 'Invalid JSON data')

    form = LoginForm(formdata=build_formdata(api_to_columns(payload, ACCOUNT_FIELDS)))
    try:
        data = form.validated()
        user = accounts.authenticate(data['email'], data['password'])
    except PortalError as e:
        return json_response(False, e.message)

    session.permanent = True
    login_user(user)
    accounts.record_login(RequestContext(user, request.remote_addr, request.user_agent.string))

    return json_response(True, 'Login successful', {
        'user': user.to_dict(),
        'redirect': url_for('main.dashboard')
    })

@auth_bp.route('/logout')
def logout():
    """User logout"""
    if current_user.is_authenticated:
        accounts.record_logout(RequestContext.from_request())

    logout_user()
    session.clear()
    return redirect(url_for('auth.login'))
