"""
Class (group of students) and enrollment models
"""
from datetime import datetime
from app import db


class SchoolClass(db.Model):
    """A class of students for one academic year"""
    __tablename__ = 'classes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), nullable=False, unique=True)
    academic_year = db.Column(db.Integer, nullable=False, default=lambda: datetime.utcnow().year)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollments = db.relationship('ClassStudent', backref='school_class', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def __repr__(self):
        return f'<SchoolClass {self.code}>'


class ClassStudent(db.Model):
    """Roster entry: student enrolled in a class"""
    __tablename__ = 'class_students'
    __table_args__ = (
        db.UniqueConstraint('class_id', 'student_id', name='uq_class_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow)

    @staticmethod
    def is_enrolled(student_id, class_id):
        """Roster lookup used by the submission lifecycle"""
        return db.session.query(
            ClassStudent.query.filter_by(class_id=class_id, student_id=student_id).exists()
        ).scalar()

    def __repr__(self):
        return f'<ClassStudent class={self.class_id} student={self.student_id}>'
