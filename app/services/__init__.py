"""
Services package
"""
from app.services.auto_grader import AutoGrader
from app.services.code_evaluation import CodeEvaluationClient
from app.services.gradebook_updater import GradeBookUpdater
from app.services.notification_dispatcher import NotificationDispatcher, notification_dispatcher
from app.services.submission_manager import SubmissionManager
from app.services.xp_ledger import XPLedger

__all__ = [
    'AutoGrader',
    'CodeEvaluationClient',
    'GradeBookUpdater',
    'NotificationDispatcher',
    'notification_dispatcher',
    'SubmissionManager',
    'XPLedger'
]
