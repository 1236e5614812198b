"""
Teacher routes
"""
from functools import wraps
from flask import current_app, jsonify, request
from flask_login import login_required, current_user
from app.teacher import teacher_bp
from app.services.background import run_after_commit
from app.services.code_evaluation import CodeEvaluationClient
from app.services.errors import SubmissionError, ValidationError
from app.services.notification_dispatcher import notification_dispatcher
from app.services.submission_manager import SubmissionManager
from app.services.xp_ledger import XPLedger


def teacher_required(f):
    """Decorator to require teacher/admin role"""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if current_user.role not in ['teacher', 'admin']:
            return jsonify({
                'success': False,
                'error': 'Forbidden',
                'message': 'Access denied. This area is for teachers and administrators only.'
            }), 403
        return f(*args, **kwargs)
    return decorated_function


@teacher_bp.errorhandler(SubmissionError)
def handle_submission_error(error):
    return jsonify(error.to_dict()), error.status_code


def _payload():
    return request.get_json(silent=True) or {}


@teacher_bp.route('/submissions/<int:submission_id>/grade', methods=['PUT'])
@teacher_required
def grade_submission(submission_id):
    """Grade an open-ended submission"""
    data = _payload()
    if data.get('score') is None:
        raise ValidationError("'score' is required")

    result = SubmissionManager().grade_open_submission(
        submission_id, data['score'], data.get('feedback'), grader_id=current_user.id
    )
    return jsonify(dict(result, success=True, message='Submission graded'))


@teacher_bp.route('/designs/<int:design_id>/rate', methods=['PUT'])
@teacher_required
def rate_design(design_id):
    """Rate a pixel art design (0-100)"""
    data = _payload()
    result = SubmissionManager().rate_design(
        design_id, data.get('rating'), data.get('comment'), grader_id=current_user.id
    )
    return jsonify(dict(result, success=True, message='Design rated!'))


@teacher_bp.route('/code/execute', methods=['POST'])
@teacher_required
def execute_code():
    """Run code in the sandbox without creating a submission"""
    data = _payload()
    result = CodeEvaluationClient().run(data.get('language'), data.get('code'), data.get('stdin'))
    return jsonify(dict(result, success=True))


@teacher_bp.route('/xp/award', methods=['POST'])
@teacher_required
def award_xp():
    """Bonus, attendance, achievement or penalty XP"""
    data = _payload()
    try:
        student_id = int(data['student_id'])
        amount = int(data['amount'])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("'student_id' and 'amount' must be integers")

    result = XPLedger.award(
        student_id, amount, data.get('source_type', 'bonus'),
        description=data.get('description') or f'Awarded by {current_user.username}'
    )

    run_after_commit(current_app._get_current_object(), 'Notifications',
                     notification_dispatcher.notify_user, student_id, dict(result, type='XP_CHANGED'))
    return jsonify(dict(result, success=True))


@teacher_bp.route('/xp/<int:student_id>')
@teacher_required
def student_xp(student_id):
    """XP summary of a student plus a ledger consistency check"""
    summary = XPLedger.get_summary(student_id)
    summary['ledger_check'] = XPLedger.verify(student_id)
    return jsonify(dict(summary, success=True))


@teacher_bp.route('/ranking')
@teacher_required
def ranking():
    class_id = request.args.get('class_id', type=int)
    limit = min(request.args.get('limit', 20, type=int), 100)
    return jsonify({'success': True, 'ranking': XPLedger.ranking(class_id, limit)})
