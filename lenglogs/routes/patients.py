from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from lenglogs.models import (
    PATIENT_FIELDS, GENDER_CHOICES, CARE_LEVEL_CHOICES, MOBILITY_LEVEL_CHOICES, RELATIONSHIP_CHOICES
)
from lenglogs.services.patient_service import PatientService
from lenglogs.services.supabase_service import REMOTE_ERRORS, error_message
from lenglogs.utils import NO_FACILITY_MESSAGE, manager_required

patients_bp = Blueprint('patients', __name__)

MODE_CREATE = 'create'
MODE_EDIT = 'edit'


def render_patient_form(mode, values, errors=None, patient=None, status=200):
    return render_template('patients/form.html',
                           mode=mode,
                           values=values,
                           errors=errors or {},
                           patient=patient,
                           gender_choices=GENDER_CHOICES,
                           care_level_choices=CARE_LEVEL_CHOICES,
                           mobility_level_choices=MOBILITY_LEVEL_CHOICES,
                           relationship_choices=RELATIONSHIP_CHOICES), status


@patients_bp.route('/patients')
@login_required
def patients():
    search_q = request.args.get('q', '').strip()
    patients_list = []
    try:
        patients_list = PatientService.list_active(current_user.facility_id)
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error listing patients: {error_message(e)}")
        flash(error_message(e), 'error')

    filtered = PatientService.filter_patients(patients_list, search_q)
    return render_template('patients/list.html',
                           patients=filtered,
                           total_count=len(patients_list),
                           search_q=search_q)


@patients_bp.route('/patients/new', methods=['GET', 'POST'])
@login_required
@manager_required('Only managers can add patients.')
def new_patient():
    if request.method == 'POST':
        values = PatientService.values_from_form(request.form)
        if not current_user.facility_id:
            flash(NO_FACILITY_MESSAGE, 'error')
            return render_patient_form(MODE_CREATE, values, status=400)

        errors = PatientService.validate(values)
        if errors:
            return render_patient_form(MODE_CREATE, values, errors, status=400)

        try:
            patient = PatientService.create(values, current_user)
        except REMOTE_ERRORS as e:
            current_app.logger.error(f"Error creating patient: {error_message(e)}")
            flash(error_message(e), 'error')
            return render_patient_form(MODE_CREATE, values, status=400)

        flash('Patient added successfully', 'success')
        return redirect(url_for('patients.patient_details', id=patient['id']))

    return render_patient_form(MODE_CREATE, {field: '' for field in PATIENT_FIELDS})


@patients_bp.route('/patients/<id>')
@login_required
def patient_details(id):
    patient = PatientService.get_for_facility(id, current_user.facility_id)
    return render_template('patients/detail.html',
                           patient=patient,
                           gender_choices=GENDER_CHOICES,
                           mobility_level_choices=MOBILITY_LEVEL_CHOICES,
                           relationship_choices=RELATIONSHIP_CHOICES)


@patients_bp.route('/patients/<id>/edit', methods=['GET', 'POST'])
@login_required
@manager_required('Only managers can edit patients.')
def edit_patient(id):
    patient = PatientService.get_for_facility(id, current_user.facility_id)

    if request.method == 'POST':
        values = PatientService.values_from_form(request.form)
        errors = PatientService.validate(values)
        if errors:
            return render_patient_form(MODE_EDIT, values, errors, patient=patient, status=400)

        try:
            PatientService.update(id, values)
        except REMOTE_ERRORS as e:
            current_app.logger.error(f"Error updating patient {id}: {error_message(e)}")
            flash(error_message(e), 'error')
            return render_patient_form(MODE_EDIT, values, patient=patient, status=400)

        flash('Patient updated successfully', 'success')
        return redirect(url_for('patients.patient_details', id=id))

    values = {field: patient.get(field) or '' for field in PATIENT_FIELDS}
    return render_patient_form(MODE_EDIT, values, patient=patient)


@patients_bp.route('/patients/<id>/deactivate', methods=['POST'])
@login_required
@manager_required('Only managers can deactivate patients.')
def deactivate_patient(id):
    return _set_active(id, False)


@patients_bp.route('/patients/<id>/reactivate', methods=['POST'])
@login_required
@manager_required('Only managers can reactivate patients.')
def reactivate_patient(id):
    return _set_active(id, True)


def _set_active(id, is_active):
    PatientService.get_for_facility(id, current_user.facility_id)
    try:
        PatientService.set_active(id, is_active)
        flash('Patient reactivated successfully' if is_active else 'Patient deactivated successfully', 'success')
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error changing patient {id} status: {error_message(e)}")
        flash(error_message(e), 'error')
    if is_active:
        return redirect(url_for('patients.patient_details', id=id))
    return redirect(url_for('patients.patients'))
