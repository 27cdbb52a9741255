import os
from dotenv import load_dotenv

load_dotenv()  # Load env vars before anything else

import click
from flask import Flask, render_template, session
from flask_login import LoginManager, current_user
from werkzeug.middleware.proxy_fix import ProxyFix
from lenglogs.models import calculate_age, initials, label_for, ROLE_MANAGER
from lenglogs.services.auth_service import AuthService
from lenglogs.services.supabase_service import (
    REMOTE_ERRORS, SESSION_ACCESS_TOKEN, clear_session, error_message
)
from lenglogs.utils import format_date


def create_app(config=None):
    app = Flask(__name__, instance_path='/tmp')
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # --- CONFIGURATION ---
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'lenglogs-dev-key')
    app.config['SUPABASE_URL'] = os.environ.get('SUPABASE_URL')
    app.config['SUPABASE_KEY'] = os.environ.get('SUPABASE_KEY')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    if config:
        app.config.update(config)

    app.logger.setLevel(app.config['LOG_LEVEL'])

    if not app.config['SUPABASE_URL'] or not app.config['SUPABASE_KEY']:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set (see .env).")

    # --- INITIALIZE EXTENSIONS ---
    login_manager = LoginManager()
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please sign in to continue.'
    login_manager.login_message_category = 'info'
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        # No Supabase session means nothing to restore
        if not session.get(SESSION_ACCESS_TOKEN):
            return None
        try:
            profile = AuthService.load_profile(user_id)
        except REMOTE_ERRORS as e:
            app.logger.info(f"Session restore failed for {user_id}: {error_message(e)}")
            clear_session()
            return None
        if profile is None:
            clear_session()
        return profile

    @app.context_processor
    def inject_globals():
        is_manager = bool(current_user and current_user.is_authenticated and current_user.role == ROLE_MANAGER)
        return dict(is_manager=is_manager)

    app.add_template_filter(calculate_age, 'age')
    app.add_template_filter(format_date, 'format_date')
    app.add_template_global(initials, 'initials')
    app.add_template_global(label_for, 'label_for')

    # --- ERROR HANDLERS ---
    @app.errorhandler(403)
    def forbidden_error(error):
        return render_template('access_denied.html', message=error.description), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return render_template('404.html', message=error.description), 404

    def remote_error(error):
        # Remote failures not handled by the view itself
        app.logger.error(f"Supabase error: {error_message(error)}")
        return render_template('500.html', message=error_message(error)), 502

    for exc in REMOTE_ERRORS:
        app.register_error_handler(exc, remote_error)

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Unhandled error: {error}")
        return render_template('500.html'), 500

    # --- REGISTER BLUEPRINTS ---
    from lenglogs.auth import auth as auth_blueprint
    from lenglogs.routes.dashboard import dashboard_bp
    from lenglogs.routes.patients import patients_bp
    from lenglogs.routes.forms import forms_bp

    app.register_blueprint(auth_blueprint)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(patients_bp)
    app.register_blueprint(forms_bp)

    # --- CLI ---
    from lenglogs.maintenance.verify_supabase_connection import verify_connection

    @app.cli.command('verify-supabase')
    def verify_supabase_command():
        """Checks the Supabase configuration and that the project answers."""
        ok, message = verify_connection(app)
        click.echo(message)
        if not ok:
            raise SystemExit(1)

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=5001)
