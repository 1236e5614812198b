"""
Question bank models
"""
from datetime import datetime
from app import db


class Question(db.Model):
    """Question from the bank"""
    __tablename__ = 'questions'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=True)
    title = db.Column(db.String(500), nullable=False)
    content = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(20), nullable=False)  # see QuestionType
    points = db.Column(db.Numeric(5, 2), default=10)
    explanation = db.Column(db.Text)

    # Type specific settings, e.g. {"stdin": "...", "expected_output": "..."} for code questions
    config = db.Column(db.JSON)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    options = db.relationship('QuestionOption', backref='question', lazy='select',
                              cascade='all, delete-orphan', order_by='QuestionOption.order_index')

    @property
    def correct_option(self):
        """Option flagged as correct, if any"""
        for option in self.options:
            if option.is_correct:
                return option
        return None

    def get_config(self, key, default=None):
        return (self.config or {}).get(key, default)

    def __repr__(self):
        return f'<Question {self.id} ({self.question_type})>'


class QuestionOption(db.Model):
    """Option of a multiple choice / true-false question"""
    __tablename__ = 'question_options'

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False)
    option_letter = db.Column(db.String(1), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, default=False)
    order_index = db.Column(db.Integer, default=0)

    def __repr__(self):
        return f'<QuestionOption {self.question_id}{self.option_letter}>'
