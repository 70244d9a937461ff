"""Main routes"""
from flask import redirect, url_for
from flask_login import login_required, current_user
from portal.main import main_bp
from portal.services import ledger
from portal.utils.helpers import json_response

@main_bp.route('/dashboard')
@login_required
def dashboard():
    """Signed-in user and the dashboard statistics"""
    return json_response(True, 'Dashboard loaded successfully', {
        'user': current_user.to_dict(),
        'stats': ledger.dashboard_stats()
    })

@main_bp.route('/')
def index():
    """Redirect to dashboard or login"""
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))
    return redirect(url_for('auth.login'))
