import re
from datetime import date
from lenglogs.models import (
    PATIENT_FIELDS, GENDER_CHOICES, CARE_LEVEL_CHOICES, MOBILITY_LEVEL_CHOICES,
    RELATIONSHIP_CHOICES, get_now_iso
)
from lenglogs.services.supabase_service import get_supabase
from lenglogs.utils import AccessDenied, RecordNotFound, blank_to_none, record_id

PHONE_RE = re.compile(r'^\+?[\d\s\-\(\)]+$')

CHOICE_FIELDS = {
    'gender': GENDER_CHOICES,
    'care_level': CARE_LEVEL_CHOICES,
    'mobility_level': MOBILITY_LEVEL_CHOICES,
    'emergency_contact_relationship': RELATIONSHIP_CHOICES,
}


class PatientService:
    @staticmethod
    def list_active(facility_id):
        """Active patients of one facility, ordered by last name."""
        if not facility_id:
            return []
        res = get_supabase().table('patients')\
            .select('*')\
            .eq('is_active', True)\
            .eq('facility_id', facility_id)\
            .order('last_name')\
            .execute()
        return [p for p in (res.data or []) if p.get('facility_id') == facility_id]

    @staticmethod
    def filter_patients(patients, query):
        """
        Local substring search over an already-fetched list.
        Name and medical conditions match case-insensitively, phone literally.
        """
        if not query:
            return list(patients)
        needle = query.lower()
        result = []
        for p in patients:
            full_name = f"{p.get('first_name') or ''} {p.get('last_name') or ''}".lower()
            if needle in full_name \
                    or query in (p.get('phone') or '') \
                    or needle in (p.get('medical_conditions') or '').lower():
                result.append(p)
        return result

    @staticmethod
    def get_for_facility(patient_id, facility_id):
        """
        Fetches one patient by id, active or not, and checks it belongs to
        the caller's facility.
        """
        patient_id = record_id(patient_id, 'Patient not found')
        res = get_supabase().table('patients').select('*').eq('id', patient_id).limit(1).execute()
        if not res.data:
            raise RecordNotFound('Patient not found')
        patient = res.data[0]
        if not facility_id or patient.get('facility_id') != facility_id:
            raise AccessDenied('Access denied: Patient not in your facility')
        return patient

    @staticmethod
    def validate(values):
        errors = {}
        if not values.get('first_name'):
            errors['first_name'] = 'First name is required'
        if not values.get('last_name'):
            errors['last_name'] = 'Last name is required'

        for field in ('phone', 'emergency_contact_phone'):
            if values.get(field) and not PHONE_RE.match(values[field]):
                errors[field] = 'Please enter a valid phone number'

        dob = values.get('date_of_birth')
        if dob:
            try:
                if date.fromisoformat(dob) > date.today():
                    errors['date_of_birth'] = 'Date of birth cannot be in the future'
            except ValueError:
                errors['date_of_birth'] = 'Please enter a valid date (YYYY-MM-DD)'

        for field, choices in CHOICE_FIELDS.items():
            value = values.get(field)
            if value and value not in dict(choices):
                errors[field] = 'Please select a valid option'
        return errors

    @staticmethod
    def values_from_form(form):
        values = {}
        for field in PATIENT_FIELDS:
            values[field] = (form.get(field) or '').strip()
        return values

    @staticmethod
    def build_payload(values):
        payload = {field: blank_to_none(values.get(field)) for field in PATIENT_FIELDS}
        payload['updated_at'] = get_now_iso()
        return payload

    @staticmethod
    def create(values, profile):
        payload = PatientService.build_payload(values)
        payload['facility_id'] = profile.facility_id
        payload['created_by'] = profile.id
        res = get_supabase().table('patients').insert(payload).execute()
        return res.data[0]

    @staticmethod
    def update(patient_id, values):
        payload = PatientService.build_payload(values)
        get_supabase().table('patients').update(payload).eq('id', patient_id).execute()

    @staticmethod
    def set_active(patient_id, is_active):
        get_supabase().table('patients')\
            .update({'is_active': is_active, 'updated_at': get_now_iso()})\
            .eq('id', patient_id)\
            .execute()

    @staticmethod
    def count_active(facility_id):
        if not facility_id:
            return 0
        res = get_supabase().table('patients')\
            .select('id', count='exact')\
            .eq('facility_id', facility_id)\
            .eq('is_active', True)\
            .execute()
        return res.count or 0
