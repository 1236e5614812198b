"""
Assignment models
"""
from datetime import datetime
from app import db
from app.models.enums import AssignmentStatus


class Assignment(db.Model):
    """Assignment (exam, quiz, code or design practice) published to a class"""
    __tablename__ = 'assignments'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    assignment_type = db.Column(db.String(30), default='quiz')  # exam, quiz, practice_code, practice_design, homework
    status = db.Column(db.String(20), default=AssignmentStatus.DRAFT.value)

    max_score = db.Column(db.Numeric(5, 2), default=100)
    xp_reward = db.Column(db.Integer, default=100)

    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    school_class = db.relationship('SchoolClass', backref=db.backref('assignments', lazy='dynamic'))
    questions = db.relationship('AssignmentQuestion', backref='assignment', lazy='select',
                                cascade='all, delete-orphan', order_by='AssignmentQuestion.order_index')

    def is_published(self):
        return self.status == AssignmentStatus.PUBLISHED.value

    def is_closed(self, now=None):
        """Closed once the deadline passed (or when explicitly closed)"""
        if self.status == AssignmentStatus.CLOSED.value:
            return True
        if self.ends_at is None:
            return False
        return (now or datetime.utcnow()) > self.ends_at

    def __repr__(self):
        return f'<Assignment {self.id} {self.title!r} ({self.status})>'


class AssignmentQuestion(db.Model):
    """Question attached to an assignment, optionally with its own point value"""
    __tablename__ = 'assignment_questions'
    __table_args__ = (
        db.UniqueConstraint('assignment_id', 'question_id', name='uq_assignment_question'),
    )

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), nullable=False)
    order_index = db.Column(db.Integer, default=0)
    points_override = db.Column(db.Numeric(5, 2), nullable=True)

    question = db.relationship('Question')

    def __repr__(self):
        return f'<AssignmentQuestion a={self.assignment_id} q={self.question_id}>'
