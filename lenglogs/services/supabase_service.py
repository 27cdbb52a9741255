from flask import current_app, g, session
from supabase import create_client, AuthError, PostgrestAPIError

# Exceptions raised by the Supabase client for a failed remote call
REMOTE_ERRORS = (PostgrestAPIError, AuthError)

SESSION_ACCESS_TOKEN = 'sb_access_token'
SESSION_REFRESH_TOKEN = 'sb_refresh_token'


def init_supabase(app):
    url = app.config.get('SUPABASE_URL')
    key = app.config.get('SUPABASE_KEY')

    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set.")

    return create_client(url, key)


def get_supabase():
    """
    Returns the Supabase client for the current request.

    A client is built per request so auth state is never shared between
    users. When the Flask session holds Supabase tokens they are applied,
    and refreshed tokens are written back to the session.
    """
    if 'supabase' not in g:
        client = init_supabase(current_app)
        access_token = session.get(SESSION_ACCESS_TOKEN)
        refresh_token = session.get(SESSION_REFRESH_TOKEN)
        if access_token and refresh_token:
            res = client.auth.set_session(access_token, refresh_token)
            if res and res.session:
                store_session(res.session)
        g.supabase = client
    return g.supabase


def store_session(sb_session):
    session[SESSION_ACCESS_TOKEN] = sb_session.access_token
    session[SESSION_REFRESH_TOKEN] = sb_session.refresh_token


def clear_session():
    session.pop(SESSION_ACCESS_TOKEN, None)
    session.pop(SESSION_REFRESH_TOKEN, None)
    g.pop('supabase', None)


def error_message(error):
    """The provider's message string for a remote error."""
    return getattr(error, 'message', None) or str(error)
