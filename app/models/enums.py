"""
Closed vocabularies shared by models and services
"""
from enum import Enum


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = 'multiple_choice'
    TRUE_FALSE = 'true_false'
    OPEN = 'open'
    CODE = 'code'
    DESIGN = 'design'

    @property
    def is_objective(self):
        return self in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)


class AssignmentStatus(str, Enum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    CLOSED = 'closed'


class SubmissionStatus(str, Enum):
    IN_PROGRESS = 'in_progress'
    SUBMITTED = 'submitted'
    GRADED = 'graded'
    LATE = 'late'


class CompileStatus(str, Enum):
    PENDING = 'pending'
    SUCCESS = 'success'
    ERROR = 'error'
    TIMEOUT = 'timeout'


class RunStatus(str, Enum):
    PENDING = 'pending'
    SUCCESS = 'success'
    ERROR = 'error'
    TIMEOUT = 'timeout'
    WRONG_ANSWER = 'wrong_answer'


class ArtifactPhase(str, Enum):
    """Dispatch lifecycle of a code artifact: pending -> dispatched -> completed"""
    PENDING = 'pending'
    DISPATCHED = 'dispatched'
    COMPLETED = 'completed'


class XPSource(str, Enum):
    SUBMISSION = 'submission'
    BONUS = 'bonus'
    ACHIEVEMENT = 'achievement'
    ATTENDANCE = 'attendance'
    PENALTY = 'penalty'


class NotificationType(str, Enum):
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'
    ASSIGNMENT = 'assignment'
    GRADE = 'grade'


class CodeLanguage(str, Enum):
    PYTHON = 'python'
    JAVASCRIPT = 'javascript'
    JAVA = 'java'
