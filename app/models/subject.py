"""
Subject model
"""
from app import db


class Subject(db.Model):
    """School subject (Math, Programming, ...)"""
    __tablename__ = 'subjects'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), nullable=False, unique=True)

    def __repr__(self):
        return f'<Subject {self.code}>'
