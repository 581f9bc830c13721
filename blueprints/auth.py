from functools import wraps

from flask import Blueprint, request, session, g, jsonify

from models import db, User

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


# Helper function - load current user
def load_current_user():
    """Load user into g.current_user for easy access"""
    if 'user_id' in session:
        g.current_user = db.session.get(User, session['user_id'])
    else:
        g.current_user = None


def require_admin(f):
    """Require an administrator session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, 'current_user', None)
        if not user:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        if not user.is_admin:
            return jsonify({'success': False, 'error': 'Administrator access required'}), 403
        return f(*args, **kwargs)
    return decorated_function


@auth_bp.route('/login', methods=['POST'])
def login():
    payload = request.get_json(silent=True) or request.form
    username = (payload.get('username') or '').strip()
    password = payload.get('password') or ''

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        return jsonify({'success': False, 'error': 'Invalid credentials'}), 401

    session.clear()
    session['user_id'] = user.id
    session['username'] = user.username
    session['role'] = user.role
    return jsonify({'success': True, 'data': {'username': user.username, 'role': user.role}})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Logout user"""
    session.clear()
    return jsonify({'success': True})
