"""
Experience point models: append-only ledger and per-student projection
"""
from datetime import datetime
from app import db


class XPTransaction(db.Model):
    """
    Ledger row. Rows are only ever inserted; the ledger is the source of
    truth for StudentXP.total_xp.
    """
    __tablename__ = 'xp_transactions'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    xp_amount = db.Column(db.Integer, nullable=False)  # negative for penalties
    source_type = db.Column(db.String(20), nullable=False)  # see XPSource
    source_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.xp_amount,
            'source_type': self.source_type,
            'source_id': self.source_id,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<XPTransaction student={self.student_id} amount={self.xp_amount} {self.source_type}>'


class StudentXP(db.Model):
    """Materialized XP total and level of a student"""
    __tablename__ = 'student_xp'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)

    total_xp = db.Column(db.Integer, nullable=False, default=0)
    level = db.Column(db.Integer, nullable=False, default=1)

    # Recomputed lazily by reporting, never by the ledger
    class_rank = db.Column(db.Integer, nullable=True)
    year_rank = db.Column(db.Integer, nullable=True)
    school_rank = db.Column(db.Integer, nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'total_xp': self.total_xp,
            'level': self.level,
            'class_rank': self.class_rank,
            'year_rank': self.year_rank,
            'school_rank': self.school_rank
        }

    def __repr__(self):
        return f'<StudentXP student={self.student_id} xp={self.total_xp} level={self.level}>'
