"""
Answer model
"""
from datetime import datetime
from app import db


class Answer(db.Model):
    """Answer to one question inside a submission (one row per question)"""
    __tablename__ = 'submission_answers'
    __table_args__ = (
        db.UniqueConstraint('submission_id', 'question_id', name='uq_answer_submission_question'),
    )

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id', ondelete='CASCADE'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), nullable=False)

    selected_option = db.Column(db.String(1), nullable=True)
    answer_text = db.Column(db.Text, nullable=True)

    # None while grading is deferred (open, code, design)
    is_correct = db.Column(db.Boolean, nullable=True)
    score_earned = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    answered_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    question = db.relationship('Question')

    def __repr__(self):
        return f'<Answer submission={self.submission_id} question={self.question_id} score={self.score_earned}>'
