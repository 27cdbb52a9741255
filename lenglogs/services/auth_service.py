import re
from flask import current_app
from lenglogs.models import UserProfile, ROLE_MANAGER, ROLE_STAFF
from lenglogs.services.supabase_service import get_supabase, store_session

EMAIL_RE = re.compile(r'^\S+@\S+$')
MIN_PASSWORD_LENGTH = 6


class AuthService:
    @staticmethod
    def validate_credentials(values, is_login=True):
        """
        Field-level validation for the sign-in / sign-up form.
        Returns a dict of field -> message (empty when valid).
        """
        errors = {}
        if not EMAIL_RE.match(values.get('email', '')):
            errors['email'] = 'Invalid email'
        if len(values.get('password', '')) < MIN_PASSWORD_LENGTH:
            errors['password'] = f'Password must be at least {MIN_PASSWORD_LENGTH} characters'

        if not is_login:
            if not values.get('first_name'):
                errors['first_name'] = 'First name is required'
            if not values.get('last_name'):
                errors['last_name'] = 'Last name is required'
            if values.get('role') not in (ROLE_MANAGER, ROLE_STAFF):
                errors['role'] = 'Select a role'
        return errors

    @staticmethod
    def sign_in(email, password):
        """Signs in against Supabase Auth and returns the auth user."""
        client = get_supabase()
        res = client.auth.sign_in_with_password({
            "email": email,
            "password": password
        })
        if res.session:
            store_session(res.session)
        return res.user

    @staticmethod
    def sign_up(values):
        """
        Creates the auth user. Profile fields travel as user metadata; the
        `user_profiles` row itself is created by a database trigger.
        """
        client = get_supabase()
        res = client.auth.sign_up({
            "email": values['email'],
            "password": values['password'],
            "options": {
                "data": {
                    "first_name": values['first_name'],
                    "last_name": values['last_name'],
                    "role": values['role'],
                    "phone": values.get('phone') or None
                }
            }
        })
        if res.session:
            store_session(res.session)
        return res.user

    @staticmethod
    def create_facility_for_manager(first_name, last_name, user_id):
        facility_name = f"{first_name} {last_name}'s Adult Day Care"
        current_app.logger.info(f"Creating facility '{facility_name}' for user {user_id}")

        res = get_supabase().table('facilities').insert({
            "name": facility_name,
            "created_by": user_id
        }).execute()
        return res.data[0]

    @staticmethod
    def load_profile(user_id):
        """Returns the UserProfile for an auth user id, or None when no row exists."""
        res = get_supabase().table('user_profiles').select('*').eq('user_id', user_id).limit(1).execute()
        if not res.data:
            return None
        return UserProfile(res.data[0])

    @staticmethod
    def sign_out():
        get_supabase().auth.sign_out()
