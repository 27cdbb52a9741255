from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from lenglogs.models import QUESTION_TYPE_CHOICES
from lenglogs.services.form_service import FormService
from lenglogs.services.supabase_service import REMOTE_ERRORS, error_message
from lenglogs.utils import NO_FACILITY_MESSAGE, manager_required

forms_bp = Blueprint('forms', __name__)


def render_builder(title, description, drafts, errors=None, form=None, status=200):
    return render_template('forms/builder.html',
                           title=title,
                           description=description,
                           drafts=drafts,
                           errors=errors or {},
                           form=form,
                           is_editing=form is not None,
                           question_type_choices=QUESTION_TYPE_CHOICES), status


def handle_builder_post(form=None):
    """
    Shared POST handling for new and edit. Non-save actions only reshape the
    drafts and re-render; 'save' validates then writes.
    """
    title = request.form.get('title', '').strip()
    description = request.form.get('description', '').strip()
    drafts = FormService.drafts_from_request(request.form)
    action = request.form.get('action', 'save')

    if action != 'save':
        FormService.apply_builder_action(drafts, action)
        return render_builder(title, description, drafts, form=form)

    errors = FormService.validate_builder(title, drafts)
    if errors:
        return render_builder(title, description, drafts, errors, form=form, status=400)

    if not current_user.facility_id:
        flash(NO_FACILITY_MESSAGE, 'error')
        return render_builder(title, description, drafts, form=form, status=400)

    try:
        form_id = FormService.save_form(title, description, drafts, current_user,
                                        form_id=form['id'] if form else None)
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error saving form '{title}': {error_message(e)}")
        flash(error_message(e), 'error')
        return render_builder(title, description, drafts, form=form, status=400)

    current_app.logger.info(f"Form {form_id} saved with {len(drafts)} questions")
    flash('Form updated successfully' if form else 'Form created successfully', 'success')
    return redirect(url_for('forms.forms'))


@forms_bp.route('/forms')
@login_required
def forms():
    forms_list = []
    try:
        forms_list = FormService.list_active(current_user.facility_id)
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error listing forms: {error_message(e)}")
        flash(error_message(e), 'error')
    return render_template('forms/list.html', forms=forms_list)


@forms_bp.route('/forms/new', methods=['GET', 'POST'])
@login_required
@manager_required('Only managers can create forms.')
def new_form():
    if request.method == 'POST':
        return handle_builder_post()
    return render_builder('', '', [])


@forms_bp.route('/forms/<id>/edit', methods=['GET', 'POST'])
@login_required
@manager_required('Only managers can edit forms.')
def edit_form(id):
    form = FormService.get_form(id, current_user.facility_id)
    if request.method == 'POST':
        return handle_builder_post(form)

    drafts = FormService.drafts_from_questions(FormService.get_questions(id))
    return render_builder(form.get('title') or '', form.get('description') or '', drafts, form=form)


@forms_bp.route('/forms/<id>', methods=['GET', 'POST'])
@login_required
def fill_form(id):
    form = FormService.get_form(id, current_user.facility_id)
    questions = FormService.get_questions(id)

    if request.method == 'POST':
        values = FormService.values_from_request(questions, request.form)
        errors = FormService.validate_answers(questions, values)
        if errors:
            return render_template('forms/fill.html', form=form, questions=questions,
                                   values=values, errors=errors), 400

        try:
            submission_id = FormService.submit(id, questions, values, current_user)
        except REMOTE_ERRORS as e:
            current_app.logger.error(f"Error submitting form {id}: {error_message(e)}")
            flash(error_message(e), 'error')
            return render_template('forms/fill.html', form=form, questions=questions,
                                   values=values, errors={}), 400

        current_app.logger.info(f"Submission {submission_id} recorded for form {id} by {current_user.id}")
        flash('Form submitted successfully!', 'success')
        return redirect(url_for('forms.forms'))

    return render_template('forms/fill.html', form=form, questions=questions,
                           values=FormService.initial_values(questions), errors={})


@forms_bp.route('/forms/<id>/deactivate', methods=['POST'])
@login_required
@manager_required('Only managers can delete forms.')
def deactivate_form(id):
    FormService.get_form(id, current_user.facility_id)
    try:
        FormService.deactivate(id)
        flash('Form deleted successfully', 'success')
    except REMOTE_ERRORS as e:
        current_app.logger.error(f"Error deactivating form {id}: {error_message(e)}")
        flash(error_message(e), 'error')
    return redirect(url_for('forms.forms'))
