import functools
import uuid
from datetime import datetime
from urllib.parse import urlsplit
from flask import render_template
from flask_login import current_user
from werkzeug.exceptions import Forbidden, NotFound

NO_FACILITY_MESSAGE = 'Your account is not linked to a facility yet. Contact support for assistance.'


class AccessDenied(Forbidden):
    """Record belongs to another facility, or the role may not perform the action."""


class RecordNotFound(NotFound):
    pass


def manager_required(message='Only managers can access this page.'):
    """
    Gates a view to managers. Staff get a full-page denial instead of a
    redirect so they know why the page is unavailable.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not getattr(current_user, 'is_manager', False):
                return render_template('access_denied.html', message=message), 403
            return func(*args, **kwargs)
        return wrapper
    return decorator


def blank_to_none(value):
    if value is None:
        return None
    value = value.strip()
    return value or None


def format_date(value):
    """ISO date/datetime string -> 'May 15, 1950'."""
    if not value:
        return ''
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return value
    return parsed.strftime('%B %d, %Y').replace(' 0', ' ')


def safe_next_url(target):
    """Returns target only when it is a path on this site, else None."""
    if not target or not target.startswith('/') or target.startswith(('//', '/\\')):
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return None
    return target


def record_id(value, message='Record not found'):
    """
    Record ids are uuids in Supabase; anything else would come back as a
    Postgres cast error, so it is reported as a missing record instead.
    """
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise RecordNotFound(message)
