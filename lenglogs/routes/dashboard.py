from flask import Blueprint, render_template, flash, current_app
from flask_login import login_required, current_user
from lenglogs.services.form_service import FormService
from lenglogs.services.patient_service import PatientService
from lenglogs.services.supabase_service import REMOTE_ERRORS, error_message, get_supabase

dashboard_bp = Blueprint('dashboard', __name__)


def count_active_staff(facility_id):
    if not facility_id:
        return 1  # Current user
    res = get_supabase().table('user_profiles')\
        .select('id', count='exact')\
        .eq('facility_id', facility_id)\
        .eq('is_active', True)\
        .execute()
    return res.count or 1


@dashboard_bp.route('/')
@login_required
def home():
    facility_id = current_user.facility_id

    stats = {
        'total_forms': 0,
        'submissions_today': 0,
        'total_patients': 0,
        'total_staff': 1,
    }
    try:
        stats['total_patients'] = PatientService.count_active(facility_id)
        stats['total_forms'] = FormService.count_active(facility_id)
        stats['submissions_today'] = FormService.count_submissions_today(facility_id)
        stats['total_staff'] = count_active_staff(facility_id)
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error fetching dashboard stats for facility {facility_id}: {error_message(e)}")
        flash(error_message(e), 'error')

    return render_template('dashboard.html', stats=stats)
