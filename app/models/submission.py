"""
Submission model
"""
from datetime import datetime
from app import db
from app.models.enums import SubmissionStatus


class Submission(db.Model):
    """A student's single attempt at an assignment"""
    __tablename__ = 'submissions'
    __table_args__ = (
        db.UniqueConstraint('assignment_id', 'student_id', name='uq_submission_assignment_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # in_progress -> submitted -> graded (never backwards)
    status = db.Column(db.String(20), nullable=False, default=SubmissionStatus.IN_PROGRESS.value)

    # Scoring
    score = db.Column(db.Numeric(5, 2), nullable=True)
    xp_earned = db.Column(db.Integer, default=0)  # XP already credited to the ledger for this submission

    # Timestamps
    started_at = db.Column(db.DateTime, default=datetime.utcnow)
    submitted_at = db.Column(db.DateTime, nullable=True)
    graded_at = db.Column(db.DateTime, nullable=True)
    time_spent_seconds = db.Column(db.Integer, nullable=True)  # reported by the client on submit

    # Manual grading
    graded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    feedback = db.Column(db.Text)

    # Relationships
    assignment = db.relationship('Assignment', backref=db.backref('submissions', lazy='dynamic'))
    answers = db.relationship('Answer', backref='submission', lazy='dynamic', cascade='all, delete-orphan')
    code_artifacts = db.relationship('CodeArtifact', backref='submission', lazy='dynamic',
                                     cascade='all, delete-orphan')
    design_artifact = db.relationship('DesignArtifact', backref='submission', uselist=False,
                                      cascade='all, delete-orphan')

    @property
    def is_in_progress(self):
        return self.status == SubmissionStatus.IN_PROGRESS.value

    def to_dict(self):
        return {
            'id': self.id,
            'assignment_id': self.assignment_id,
            'student_id': self.student_id,
            'status': self.status,
            'score': float(self.score) if self.score is not None else None,
            'xp_earned': self.xp_earned or 0,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'graded_at': self.graded_at.isoformat() if self.graded_at else None,
            'time_spent_seconds': self.time_spent_seconds,
            'feedback': self.feedback
        }

    def __repr__(self):
        return f'<Submission student={self.student_id} assignment={self.assignment_id} status={self.status}>'
