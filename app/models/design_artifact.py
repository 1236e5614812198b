"""
Design artifact model
"""
from datetime import datetime
from app import db


class DesignArtifact(db.Model):
    """Pixel art drawn for a design assignment, rated manually by a teacher"""
    __tablename__ = 'design_submissions'

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id', ondelete='CASCADE'),
                              nullable=False, unique=True)
    canvas_data = db.Column(db.JSON, nullable=False)
    teacher_rating = db.Column(db.Integer, nullable=True)  # 0-100
    teacher_comment = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('teacher_rating IS NULL OR (teacher_rating BETWEEN 0 AND 100)',
                           name='ck_design_rating_range'),
    )

    def __repr__(self):
        return f'<DesignArtifact submission={self.submission_id} rating={self.teacher_rating}>'
