"""
Grade book model
"""
from datetime import datetime
from app import db


class Grade(db.Model):
    """Period (bimester) average of a student in a class subject"""
    __tablename__ = 'grades'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', 'subject_id', 'bimester', 'academic_year',
                            name='uq_grade_period'),
        db.CheckConstraint('bimester BETWEEN 1 AND 4', name='ck_grade_bimester'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    bimester = db.Column(db.Integer, nullable=False)
    academic_year = db.Column(db.Integer, nullable=False)
    grade = db.Column(db.Numeric(5, 2))
    absences = db.Column(db.Integer, default=0)
    observations = db.Column(db.Text)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Grade student={self.student_id} subject={self.subject_id} b{self.bimester}/{self.academic_year}={self.grade}>'
