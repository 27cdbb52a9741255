from lenglogs.services.supabase_service import REMOTE_ERRORS, error_message, init_supabase


def verify_connection(app):
    """
    Returns (ok, message). Any answer from the server, including a
    row-level-security refusal, counts as a working connection.
    """
    try:
        supabase = init_supabase(app)
    except RuntimeError as e:
        return False, f"Configuration error: {e}"

    app.logger.info(f"Checking Supabase project at {app.config['SUPABASE_URL']}")
    try:
        res = supabase.table('facilities').select('id').limit(1).execute()
    except REMOTE_ERRORS as e:
        return True, f"Connection made (server answered: {error_message(e)})"
    except Exception as e:
        return False, f"Could not reach Supabase: {e}"

    return True, f"Connection OK ({len(res.data or [])} facility rows visible with this key)"
