"""
Code artifact model
"""
from datetime import datetime
from app import db
from app.models.enums import ArtifactPhase, CompileStatus, RunStatus


class CodeArtifact(db.Model):
    """
    Source code sent for a code question.

    The row is created synchronously when the student submits, then moves
    pending -> dispatched -> completed while the sandbox result is reconciled.
    compile_status / run_status hold the terminal outcome once completed.
    """
    __tablename__ = 'code_submissions'

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id', ondelete='CASCADE'),
                              nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), nullable=True)

    language = db.Column(db.String(20), nullable=False, default='python')
    source_code = db.Column(db.Text, nullable=False)
    stdin = db.Column(db.Text)
    expected_output = db.Column(db.Text)

    # Execution results
    actual_output = db.Column(db.Text)
    execution_time_ms = db.Column(db.Integer)
    error_message = db.Column(db.Text)

    phase = db.Column(db.String(20), nullable=False, default=ArtifactPhase.PENDING.value, index=True)
    compile_status = db.Column(db.String(20), nullable=False, default=CompileStatus.PENDING.value)
    run_status = db.Column(db.String(20), nullable=False, default=RunStatus.PENDING.value)

    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    dispatched_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_terminal(self):
        return self.phase == ArtifactPhase.COMPLETED.value

    def to_result(self):
        return {
            'artifact_id': self.id,
            'phase': self.phase,
            'compile_status': self.compile_status,
            'run_status': self.run_status,
            'actual_output': self.actual_output,
            'error_message': self.error_message,
            'execution_time_ms': self.execution_time_ms
        }

    def __repr__(self):
        return f'<CodeArtifact {self.id} {self.phase} run={self.run_status}>'
