# src/storefront/webapp/routes/auth.py
from flask import Blueprint

from storefront.schemas import RegisterRequest, LoginRequest, ProfileUpdate, PasswordChange, parse
from storefront.services import accounts
from storefront.utils.helpers import user_to_dict
from ..auth import login_required, current_user
from ..common import get_db, get_settings, ok, json_body

bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@bp.route('/register', methods=['POST'])
def register():
    payload = parse(RegisterRequest, json_body())
    user = accounts.register(get_db(), **payload.model_dump())
    token = accounts.issue_token(get_settings(), user)
    return ok({'user': user_to_dict(user), 'token': token}, status=201, message='User registered')


@bp.route('/login', methods=['POST'])
def login():
    payload = parse(LoginRequest, json_body())
    user, token = accounts.login(get_db(), get_settings(), payload.email, payload.password)
    return ok({'user': user_to_dict(user), 'token': token}, message='Login successful')


@bp.route('/me')
@login_required
def me():
    return ok(user_to_dict(current_user()))


@bp.route('/check-email/<email>')
def check_email(email):
    email = email.strip().lower()
    return ok({'email': email, 'available': accounts.email_available(get_db(), email)})


@bp.route('/check-username/<username>')
def check_username(username):
    return ok({'username': username, 'available': accounts.username_available(get_db(), username)})


@bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    payload = parse(ProfileUpdate, json_body())
    user = accounts.update_profile(get_db(), current_user().id, payload.model_dump(exclude_unset=True))
    return ok(user_to_dict(user), message='Profile updated')


@bp.route('/change-password', methods=['PUT'])
@login_required
def change_password():
    payload = parse(PasswordChange, json_body())
    accounts.change_password(get_db(), current_user().id, payload.current_password, payload.new_password)
    return ok(None, message='Password changed')


@bp.route('/deactivate', methods=['DELETE'])
@login_required
def deactivate():
    accounts.deactivate_account(get_db(), current_user().id)
    return ok(None, message='Account deactivated')
