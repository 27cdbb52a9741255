from datetime import date, datetime, timezone
from flask_login import UserMixin


def get_now_iso():
    return datetime.now(timezone.utc).isoformat()

# Enums (plain strings, stored as text in Supabase)
ROLE_MANAGER = 'manager'
ROLE_STAFF = 'staff'

ROLE_CHOICES = [
    (ROLE_STAFF, 'Staff Member'),
    (ROLE_MANAGER, 'Manager'),
]

SUBMISSION_COMPLETED = 'completed'
SUBMISSION_DRAFT = 'draft'

# Question types
Q_TEXT = 'text'
Q_LONG_TEXT = 'long_text'
Q_MULTIPLE_CHOICE = 'multiple_choice'
Q_YES_NO = 'yes_no'
Q_RATING = 'rating'
Q_SCALE = 'scale'

QUESTION_TYPE_CHOICES = [
    (Q_TEXT, 'Short Text'),
    (Q_LONG_TEXT, 'Long Text'),
    (Q_MULTIPLE_CHOICE, 'Multiple Choice'),
    (Q_YES_NO, 'Yes/No'),
    (Q_RATING, 'Rating (1-5 stars)'),
    (Q_SCALE, 'Scale (1-10)'),
]
QUESTION_TYPES = [value for value, _ in QUESTION_TYPE_CHOICES]

RATING_MIN, RATING_MAX = 1, 5
SCALE_MIN, SCALE_MAX = 1, 10

# Patient choice lists
GENDER_CHOICES = [
    ('male', 'Male'),
    ('female', 'Female'),
    ('other', 'Other'),
    ('prefer_not_to_say', 'Prefer not to say'),
]

CARE_LEVEL_CHOICES = [
    ('low', 'Low - Independent'),
    ('medium', 'Medium - Some Assistance'),
    ('high', 'High - Significant Care Needed'),
]

MOBILITY_LEVEL_CHOICES = [
    ('independent', 'Independent'),
    ('walker', 'Uses Walker'),
    ('wheelchair', 'Wheelchair'),
    ('assistance', 'Requires Assistance'),
    ('bedbound', 'Bedbound'),
]

RELATIONSHIP_CHOICES = [
    ('spouse', 'Spouse/Partner'),
    ('child', 'Child'),
    ('parent', 'Parent'),
    ('sibling', 'Sibling'),
    ('friend', 'Friend'),
    ('caregiver', 'Professional Caregiver'),
    ('other', 'Other'),
]

PATIENT_FIELDS = [
    'first_name', 'last_name', 'date_of_birth', 'gender', 'phone', 'address',
    'medical_conditions', 'allergies', 'medications', 'dietary_restrictions',
    'emergency_contact_name', 'emergency_contact_phone', 'emergency_contact_relationship',
    'care_level', 'mobility_level', 'notes', 'photo_url',
]


class UserProfile(UserMixin):
    """
    A row of `user_profiles` wrapped for Flask-Login.

    The login id is the Supabase auth user id (`user_id`), while `id` is the
    profile row id used as `created_by` / `submitted_by` on records.
    """

    def __init__(self, row):
        self.id = row.get('id')
        self.user_id = row.get('user_id')
        self.email = row.get('email') or ''
        self.first_name = row.get('first_name') or ''
        self.last_name = row.get('last_name') or ''
        self.role = row.get('role') or ROLE_STAFF
        self.facility_id = row.get('facility_id')
        self.phone = row.get('phone')
        self._is_active = row.get('is_active', True)
        self.created_at = row.get('created_at')

    def get_id(self):
        return str(self.user_id)

    @property
    def is_active(self):
        return bool(self._is_active)

    @property
    def is_manager(self):
        return self.role == ROLE_MANAGER

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def initials(self):
        return initials(self.first_name, self.last_name)

    @property
    def facility_short_id(self):
        if not self.facility_id:
            return None
        return f"{str(self.facility_id)[:8]}..."

    def owns(self, record):
        """True when the record belongs to this user's facility."""
        return bool(self.facility_id) and record.get('facility_id') == self.facility_id


def initials(first_name, last_name):
    return f"{(first_name or ' ')[0]}{(last_name or ' ')[0]}".strip().upper()


def calculate_age(date_of_birth, today=None):
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, str):
        try:
            date_of_birth = date.fromisoformat(date_of_birth[:10])
        except ValueError:
            return None
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def label_for(choices, value):
    return dict(choices).get(value, value)
