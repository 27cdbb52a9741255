from datetime import date
from flask import current_app
from lenglogs.models import (
    QUESTION_TYPES, Q_TEXT, Q_MULTIPLE_CHOICE, Q_YES_NO, Q_RATING, Q_SCALE,
    RATING_MIN, RATING_MAX, SCALE_MIN, SCALE_MAX, SUBMISSION_COMPLETED, get_now_iso
)
from lenglogs.services.supabase_service import REMOTE_ERRORS, get_supabase
from lenglogs.utils import AccessDenied, RecordNotFound, record_id

YES_NO_VALUES = ('yes', 'no')


def new_draft():
    return {'question_text': '', 'question_type': Q_TEXT, 'options': [], 'required': False}


class FormService:
    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @staticmethod
    def list_active(facility_id):
        if not facility_id:
            return []
        res = get_supabase().table('forms')\
            .select('*')\
            .eq('is_active', True)\
            .eq('facility_id', facility_id)\
            .order('created_at', desc=True)\
            .execute()
        return res.data or []

    @staticmethod
    def get_form(form_id, facility_id, active_only=True):
        form_id = record_id(form_id, 'Form not found')
        query = get_supabase().table('forms').select('*').eq('id', form_id)
        if active_only:
            query = query.eq('is_active', True)
        res = query.limit(1).execute()
        if not res.data:
            raise RecordNotFound('Form not found')
        form = res.data[0]
        if not facility_id or form.get('facility_id') != facility_id:
            raise AccessDenied('Access denied: Form not in your facility')
        return form

    @staticmethod
    def get_questions(form_id):
        res = get_supabase().table('questions')\
            .select('*')\
            .eq('form_id', form_id)\
            .order('order_index')\
            .execute()
        return sorted(res.data or [], key=lambda q: q.get('order_index') or 0)

    @staticmethod
    def count_active(facility_id):
        if not facility_id:
            return 0
        res = get_supabase().table('forms')\
            .select('id', count='exact')\
            .eq('facility_id', facility_id)\
            .eq('is_active', True)\
            .execute()
        return res.count or 0

    @staticmethod
    def count_submissions_today(facility_id):
        form_ids = [f['id'] for f in FormService.list_active(facility_id)]
        if not form_ids:
            return 0
        res = get_supabase().table('form_submissions')\
            .select('id', count='exact')\
            .in_('form_id', form_ids)\
            .gte('submitted_at', date.today().isoformat())\
            .execute()
        return res.count or 0

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------
    @staticmethod
    def drafts_from_request(form):
        """Rebuilds the ordered question drafts posted by the builder page."""
        drafts = []
        count = form.get('question_count', 0, type=int)
        for i in range(count):
            prefix = f'questions-{i}-'
            qtype = form.get(prefix + 'type', Q_TEXT)
            drafts.append({
                'question_text': form.get(prefix + 'text', '').strip(),
                'question_type': qtype if qtype in QUESTION_TYPES else Q_TEXT,
                'options': form.getlist(prefix + 'options'),
                'required': form.get(prefix + 'required') == 'on',
            })
        return drafts

    @staticmethod
    def drafts_from_questions(questions):
        return [{
            'question_text': q.get('question_text') or '',
            'question_type': q.get('question_type') or Q_TEXT,
            'options': list(q.get('options') or []),
            'required': bool(q.get('required')),
        } for q in questions]

    @staticmethod
    def apply_builder_action(drafts, action):
        """
        Edits the draft list in place for the builder's non-saving buttons:
        add_question, remove_question:<i>, add_option:<i>, remove_option:<i>:<j>.
        Returns False for unknown actions.
        """
        parts = (action or '').split(':')
        try:
            if parts[0] == 'add_question':
                drafts.append(new_draft())
            elif parts[0] == 'remove_question':
                drafts.pop(int(parts[1]))
            elif parts[0] == 'add_option':
                drafts[int(parts[1])]['options'].append('')
            elif parts[0] == 'remove_option':
                drafts[int(parts[1])]['options'].pop(int(parts[2]))
            else:
                return False
        except (IndexError, ValueError):
            return False
        return True

    @staticmethod
    def validate_builder(title, drafts):
        errors = {}
        if not title:
            errors['title'] = 'Title is required'
        if not drafts:
            errors['questions'] = 'Add at least one question'
        for i, draft in enumerate(drafts):
            if not draft['question_text']:
                errors[f'questions-{i}-text'] = 'Question text is required'
            if draft['question_type'] == Q_MULTIPLE_CHOICE \
                    and not [o for o in draft['options'] if o.strip()]:
                errors[f'questions-{i}-options'] = 'Add at least one option'
        return errors

    @staticmethod
    def save_form(title, description, drafts, profile, form_id=None):
        """
        Writes the form and replaces its questions. Steps run in sequence
        with no rollback: a failure part-way leaves earlier writes in place.
        Returns the form id.
        """
        client = get_supabase()

        if form_id:
            client.table('forms').update({
                'title': title,
                'description': description,
                'updated_at': get_now_iso()
            }).eq('id', form_id).execute()

            client.table('questions').delete().eq('form_id', form_id).execute()
        else:
            res = client.table('forms').insert({
                'title': title,
                'description': description,
                'facility_id': profile.facility_id,
                'created_by': profile.id
            }).execute()
            form_id = res.data[0]['id']

        if drafts:
            rows = []
            for index, draft in enumerate(drafts):
                is_choice = draft['question_type'] == Q_MULTIPLE_CHOICE
                rows.append({
                    'form_id': form_id,
                    'question_text': draft['question_text'],
                    'question_type': draft['question_type'],
                    'options': [o.strip() for o in draft['options'] if o.strip()] if is_choice else None,
                    'required': draft['required'],
                    'order_index': index
                })
            client.table('questions').insert(rows).execute()

        return form_id

    @staticmethod
    def deactivate(form_id):
        get_supabase().table('forms')\
            .update({'is_active': False, 'updated_at': get_now_iso()})\
            .eq('id', form_id)\
            .execute()

    # ------------------------------------------------------------------
    # Renderer
    # ------------------------------------------------------------------
    @staticmethod
    def default_value(question_type):
        if question_type == Q_RATING:
            return 0
        if question_type == Q_SCALE:
            return 1
        return ''

    @staticmethod
    def initial_values(questions):
        return {q['id']: FormService.default_value(q['question_type']) for q in questions}

    @staticmethod
    def values_from_request(questions, form):
        """
        Reads posted answers keyed by question id. Numeric types are parsed
        to int; unparseable input is kept as None so validation reports it.
        """
        values = {}
        for q in questions:
            raw = form.get(f"answer-{q['id']}")
            if q['question_type'] in (Q_RATING, Q_SCALE):
                if raw is None or not raw.strip():
                    values[q['id']] = FormService.default_value(q['question_type'])
                    continue
                try:
                    values[q['id']] = int(raw)
                except ValueError:
                    values[q['id']] = None
            else:
                values[q['id']] = (raw or '').strip()
        return values

    @staticmethod
    def validate_answer(question, value):
        qtype = question['question_type']
        required = question.get('required')

        if qtype == Q_SCALE:
            if value is None or not SCALE_MIN <= value <= SCALE_MAX:
                return f'Please select a value between {SCALE_MIN} and {SCALE_MAX}'
            return None

        if qtype == Q_RATING:
            if value is None:
                return 'Please provide a rating'
            if value == 0 and not required:
                return None
            if not RATING_MIN <= value <= RATING_MAX:
                return 'Please provide a rating'
            return None

        if not value:
            return 'This field is required' if required else None

        if qtype == Q_YES_NO and value not in YES_NO_VALUES:
            return 'Please answer yes or no'
        if qtype == Q_MULTIPLE_CHOICE and value not in (question.get('options') or []):
            return 'Please select one of the options'
        return None

    @staticmethod
    def validate_answers(questions, values):
        errors = {}
        for q in questions:
            message = FormService.validate_answer(q, values.get(q['id']))
            if message:
                errors[q['id']] = message
        return errors

    @staticmethod
    def submit(form_id, questions, values, profile):
        """
        Inserts the submission, then one answer per question. The two writes
        are not atomic; if the answers fail the submission row stays behind.
        Returns the submission id.
        """
        client = get_supabase()
        res = client.table('form_submissions').insert({
            'form_id': form_id,
            'submitted_by': profile.id,
            'status': SUBMISSION_COMPLETED
        }).execute()
        submission = res.data[0]

        answers = [{
            'submission_id': submission['id'],
            'question_id': q['id'],
            'answer_value': str(values.get(q['id']) or '')
        } for q in questions]

        if answers:
            try:
                client.table('answers').insert(answers).execute()
            except REMOTE_ERRORS:
                current_app.logger.warning(
                    f"Answers insert failed; submission {submission['id']} for form {form_id} is orphaned"
                )
                raise

        return submission['id']
