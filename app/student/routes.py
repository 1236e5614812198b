"""
Student routes
"""
from functools import wraps
from flask import Response, jsonify, request, stream_with_context
from flask_login import login_required, current_user
from app.student import student_bp
from app.services.errors import SubmissionError, ValidationError
from app.services.notification_dispatcher import notification_dispatcher
from app.services.notification_service import NotificationService
from app.services.submission_manager import SubmissionManager
from app.services.xp_ledger import XPLedger


def student_required(f):
    """Decorator to require student role"""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if current_user.role != 'student':
            return jsonify({
                'success': False,
                'error': 'Forbidden',
                'message': 'Access denied. This area is for students only.'
            }), 403
        return f(*args, **kwargs)
    return decorated_function


@student_bp.errorhandler(SubmissionError)
def handle_submission_error(error):
    return jsonify(error.to_dict()), error.status_code


def _payload():
    return request.get_json(silent=True) or {}


def _require_int(data, key):
    try:
        return int(data[key])
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"'{key}' must be an integer")


@student_bp.route('/submissions/start', methods=['POST'])
@student_required
def start_submission():
    """Start (or resume) the attempt at an assignment"""
    assignment_id = _require_int(_payload(), 'assignment_id')
    submission, already_existed = SubmissionManager().start_or_get(assignment_id, current_user.id)

    return jsonify({
        'success': True,
        'submission_id': submission.id,
        'already_existed': already_existed,
        'submission': submission.to_dict()
    }), 200 if already_existed else 201


@student_bp.route('/submissions/<int:submission_id>/answer', methods=['POST'])
@student_required
def answer_question(submission_id):
    """Record (or replace) the answer to one question"""
    data = _payload()
    result = SubmissionManager().record_answer(
        submission_id,
        _require_int(data, 'question_id'),
        selected_option=data.get('selected_option'),
        answer_text=data.get('answer_text'),
        student_id=current_user.id
    )
    return jsonify(dict(result, success=True))


@student_bp.route('/submissions/<int:submission_id>/submit', methods=['POST'])
@student_required
def submit_submission(submission_id):
    """Finalize the submission and collect XP"""
    result = SubmissionManager().finalize(
        submission_id,
        student_id=current_user.id,
        time_spent_seconds=_payload().get('time_spent_seconds')
    )
    return jsonify(dict(
        result,
        success=True,
        message=f"Assignment submitted! You earned {result['xp_earned']} XP!"
    ))


@student_bp.route('/submissions/<int:submission_id>/code', methods=['POST'])
@student_required
def submit_code(submission_id):
    """Send code for execution; poll /code/<id>/result for the outcome"""
    data = _payload()
    result = SubmissionManager().submit_code(
        submission_id,
        _require_int(data, 'question_id'),
        data.get('language', 'python'),
        data.get('source_code', ''),
        student_id=current_user.id
    )
    return jsonify(dict(result, success=True, message='Code sent! Waiting for execution...')), 202


@student_bp.route('/code/<int:artifact_id>/result')
@student_required
def code_result(artifact_id):
    result = SubmissionManager().get_code_result(artifact_id, student_id=current_user.id)
    return jsonify(dict(result, success=True))


@student_bp.route('/submissions/<int:submission_id>/design', methods=['POST'])
@student_required
def save_design(submission_id):
    """Save the pixel art of a design assignment"""
    result = SubmissionManager().save_design(
        submission_id, _payload().get('canvas_data'), student_id=current_user.id
    )
    return jsonify(dict(result, success=True, message='Design saved!'))


@student_bp.route('/xp')
@student_required
def xp_summary():
    """Total XP, level and recent ledger history"""
    return jsonify(dict(XPLedger.get_summary(current_user.id), success=True))


@student_bp.route('/ranking')
@student_required
def ranking():
    class_id = request.args.get('class_id', type=int)
    limit = min(request.args.get('limit', 20, type=int), 100)
    return jsonify({'success': True, 'ranking': XPLedger.ranking(class_id, limit)})


@student_bp.route('/notifications')
@student_required
def notifications():
    return jsonify({'success': True, 'notifications': NotificationService.list_for_user(current_user.id)})


@student_bp.route('/notifications/<int:notification_id>/read', methods=['PUT'])
@student_required
def mark_notification_read(notification_id):
    return jsonify({'success': NotificationService.mark_read(current_user.id, notification_id)})


@student_bp.route('/notifications/read-all', methods=['PUT'])
@student_required
def mark_all_notifications_read():
    updated = NotificationService.mark_all_read(current_user.id)
    return jsonify({'success': True, 'updated': updated})


@student_bp.route('/notifications/stream')
@student_required
def notification_stream():
    """Server-Sent Events stream of live notifications"""
    session = notification_dispatcher.register(current_user.id)
    return Response(
        stream_with_context(notification_dispatcher.stream(session)),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'}
    )
