"""
Database models
"""
from app.models.user import User
from app.models.school_class import SchoolClass, ClassStudent
from app.models.subject import Subject
from app.models.question import Question, QuestionOption
from app.models.assignment import Assignment, AssignmentQuestion
from app.models.submission import Submission
from app.models.answer import Answer
from app.models.code_artifact import CodeArtifact
from app.models.design_artifact import DesignArtifact
from app.models.student_xp import StudentXP, XPTransaction
from app.models.grade import Grade
from app.models.notification import Notification

__all__ = [
    'User',
    'SchoolClass',
    'ClassStudent',
    'Subject',
    'Question',
    'QuestionOption',
    'Assignment',
    'AssignmentQuestion',
    'Submission',
    'Answer',
    'CodeArtifact',
    'DesignArtifact',
    'StudentXP',
    'XPTransaction',
    'Grade',
    'Notification'
]
