from flask import Blueprint, render_template, redirect, url_for, request, flash, current_app, session
from flask_login import login_user, logout_user, login_required, current_user
from lenglogs.models import ROLE_MANAGER, ROLE_STAFF, ROLE_CHOICES
from lenglogs.services.auth_service import AuthService
from lenglogs.utils import safe_next_url
from lenglogs.services.supabase_service import (
    REMOTE_ERRORS, SESSION_ACCESS_TOKEN, clear_session, error_message
)

auth = Blueprint('auth', __name__)


@auth.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.home'))

    values = {'email': '', 'password': ''}
    errors = {}

    if request.method == 'POST':
        values['email'] = request.form.get('email', '').strip()
        values['password'] = request.form.get('password', '')

        errors = AuthService.validate_credentials(values, is_login=True)
        if errors:
            return render_template('login.html', values=values, errors=errors, minimal=True), 400

        try:
            user = AuthService.sign_in(values['email'], values['password'])
            profile = AuthService.load_profile(user.id) if user else None
        except REMOTE_ERRORS as e:
            current_app.logger.info(f"Login failed for {values['email']}: {error_message(e)}")
            flash(error_message(e), 'error')
            return render_template('login.html', values=values, errors=errors, minimal=True), 401

        if not profile:
            current_app.logger.warning(f"Auth user {getattr(user, 'id', None)} has no profile row")
            clear_session()
            flash('Your account has no profile yet. Contact your manager.', 'error')
            return render_template('login.html', values=values, errors=errors, minimal=True), 401

        if not login_user(profile, remember=bool(request.form.get('remember'))):
            clear_session()
            flash('This account has been deactivated.', 'error')
            return render_template('login.html', values=values, errors=errors, minimal=True), 403

        current_app.logger.info(f"Login success: {profile.email} ({profile.role})")
        flash('Signed in successfully!', 'success')
        return redirect(safe_next_url(request.args.get('next')) or url_for('dashboard.home'))

    return render_template('login.html', values=values, errors=errors, minimal=True)


@auth.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.home'))

    values = {
        'first_name': '', 'last_name': '', 'role': ROLE_STAFF,
        'phone': '', 'email': '', 'password': ''
    }
    errors = {}

    if request.method == 'POST':
        for field in values:
            values[field] = request.form.get(field, '').strip() if field != 'password' \
                else request.form.get(field, '')

        errors = AuthService.validate_credentials(values, is_login=False)
        if errors:
            return render_template('register.html', values=values, errors=errors,
                                   role_choices=ROLE_CHOICES, minimal=True), 400

        try:
            user = AuthService.sign_up(values)
        except REMOTE_ERRORS as e:
            current_app.logger.error(f"Sign up failed for {values['email']}: {error_message(e)}")
            flash(error_message(e), 'error')
            return render_template('register.html', values=values, errors=errors,
                                   role_choices=ROLE_CHOICES, minimal=True), 400

        if not user:
            flash('Unknown error while creating the account.', 'error')
            return render_template('register.html', values=values, errors=errors,
                                   role_choices=ROLE_CHOICES, minimal=True), 400

        if values['role'] == ROLE_MANAGER:
            try:
                facility = AuthService.create_facility_for_manager(
                    values['first_name'], values['last_name'], user.id
                )
                flash(f'Account and facility "{facility["name"]}" created successfully! '
                      'Please check your email to verify your account.', 'success')
            except REMOTE_ERRORS as e:
                # The auth user already exists at this point
                current_app.logger.error(f"Facility creation failed for {user.id}: {error_message(e)}")
                flash('Account created but there was an issue creating your facility. '
                      'Contact support for assistance.', 'warning')
        else:
            flash('Account created successfully! Please check your email to verify your account.', 'success')

        # Projects with email confirmation disabled return a live session
        if session.get(SESSION_ACCESS_TOKEN):
            try:
                profile = AuthService.load_profile(user.id)
            except REMOTE_ERRORS as e:
                current_app.logger.error(f"Profile load after sign up failed: {error_message(e)}")
                profile = None
            if profile and login_user(profile):
                return redirect(url_for('dashboard.home'))
            clear_session()

        return redirect(url_for('auth.login'))

    return render_template('register.html', values=values, errors=errors,
                           role_choices=ROLE_CHOICES, minimal=True)


@auth.route('/profile/refresh', methods=['POST'])
@login_required
def refresh_profile():
    try:
        profile = AuthService.load_profile(current_user.user_id)
    except REMOTE_ERRORS as e:
        flash(error_message(e), 'error')
        return redirect(request.referrer or url_for('dashboard.home'))

    if not profile or not login_user(profile):
        logout_user()
        clear_session()
        return redirect(url_for('auth.login'))

    flash('Profile refreshed.', 'success')
    return redirect(request.referrer or url_for('dashboard.home'))


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    try:
        AuthService.sign_out()
    except REMOTE_ERRORS as e:
        current_app.logger.warning(f"Supabase sign out failed: {error_message(e)}")
    logout_user()
    clear_session()
    return redirect(url_for('auth.login'))
