"""
Fire-and-forget execution of work that must not affect the caller's result
"""
import threading
from app import db


def run_after_commit(app, label, target, *args):
    """
    Run target(*args) after the caller's transaction has committed.

    With BACKGROUND_TASKS enabled the work runs on a daemon thread inside its
    own app context; otherwise it runs inline. Failures are printed and never
    propagated to the caller.
    """
    if app.config.get('BACKGROUND_TASKS', True):
        thread = threading.Thread(target=_run_in_app_context, args=(app, label, target, args))
        thread.daemon = True
        thread.start()
        return thread

    _run_guarded(label, target, args)
    return None


def _run_in_app_context(app, label, target, args):
    with app.app_context():
        _run_guarded(label, target, args)


def _run_guarded(label, target, args):
    try:
        target(*args)
    except Exception as e:
        db.session.rollback()
        print(f"[{label}] Warning: background task {getattr(target, '__name__', target)} failed: {e}")
