"""
Code evaluation: dispatch to the external sandbox and reconcile its results
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional
import requests
from flask import current_app
from sqlalchemy import select, update
from app import db
from app.models.answer import Answer
from app.models.assignment import AssignmentQuestion
from app.models.code_artifact import CodeArtifact
from app.models.enums import ArtifactPhase, CodeLanguage, CompileStatus, RunStatus, SubmissionStatus
from app.models.question import Question
from app.models.submission import Submission
from app.services.cache_service import cache_service
from app.services.errors import NotFound, SandboxUnavailable, ValidationError
from app.services.notification_dispatcher import notification_dispatcher

MAX_OUTPUT_CHARS = 10000
MAX_ERROR_CHARS = 5000

# One connection pool per process, shared by every sandbox client
sandbox_http = requests.Session()


@dataclass
class SandboxResult:
    """Normalized sandbox response"""
    stdout: str = ''
    stderr: str = ''
    exit_code: Optional[int] = None
    execution_time_ms: Optional[int] = None
    compile_failed: bool = False
    compile_output: str = ''
    signal: Optional[str] = None


class PistonSandbox:
    """HTTP client for a Piston compatible execution service"""

    LANGUAGES = {
        CodeLanguage.PYTHON.value: 'python3',
        CodeLanguage.JAVASCRIPT.value: 'javascript',
        CodeLanguage.JAVA.value: 'java'
    }

    def __init__(self, base_url: str, request_timeout: float = 30, compile_timeout_ms: int = 10000,
                 run_timeout_ms: int = 5000, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.request_timeout = request_timeout
        self.compile_timeout_ms = compile_timeout_ms
        self.run_timeout_ms = run_timeout_ms
        self.session = session or sandbox_http

    @classmethod
    def from_config(cls, config) -> 'PistonSandbox':
        return cls(
            base_url=config['SANDBOX_API_URL'],
            request_timeout=config['SANDBOX_REQUEST_TIMEOUT'],
            compile_timeout_ms=config['SANDBOX_COMPILE_TIMEOUT_MS'],
            run_timeout_ms=config['SANDBOX_RUN_TIMEOUT_MS']
        )

    def execute(self, language: str, source_code: str, stdin: str = '') -> SandboxResult:
        """
        Run source code in the sandbox

        Raises:
            SandboxUnavailable: network failure, timeout, HTTP error or unreadable response
        """
        payload = {
            'language': self.LANGUAGES.get(language, language),
            'version': '*',
            'files': [{'content': source_code}],
            'stdin': stdin or '',
            'args': [],
            'compile_timeout': self.compile_timeout_ms,
            'run_timeout': self.run_timeout_ms,
            'compile_memory_limit': -1,
            'run_memory_limit': -1
        }

        try:
            response = self.session.post(f'{self.base_url}/execute', json=payload,
                                         timeout=self.request_timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise SandboxUnavailable(f'Sandbox did not answer within {self.request_timeout}s', timed_out=True) from e
        except requests.RequestException as e:
            raise SandboxUnavailable(f'Sandbox request failed: {e}') from e
        except ValueError as e:
            raise SandboxUnavailable(f'Invalid sandbox response: {e}') from e

        return self.parse_response(data)

    @staticmethod
    def parse_response(data: Dict[str, Any]) -> SandboxResult:
        run = data.get('run') or {}
        compile_stage = data.get('compile')

        compile_failed = bool(compile_stage) and compile_stage.get('code') not in (0, None)
        compile_output = ''
        if compile_stage:
            compile_output = compile_stage.get('stderr') or compile_stage.get('stdout') or ''

        time_ms = run.get('wall_time', run.get('time'))
        return SandboxResult(
            stdout=run.get('stdout') or '',
            stderr=run.get('stderr') or '',
            exit_code=run.get('code'),
            execution_time_ms=int(round(time_ms)) if time_ms is not None else None,
            compile_failed=compile_failed,
            compile_output=compile_output,
            signal=run.get('signal')
        )


def evaluate(result: SandboxResult, expected_output: Optional[str]) -> Dict[str, Any]:
    """
    Map a sandbox result to terminal artifact fields

    compile failure -> compile error; killed run -> timeout; non-zero exit or
    stderr -> run error; otherwise compare trimmed stdout with the expected
    output when one is defined.
    """
    output = (result.stdout or '')[:MAX_OUTPUT_CHARS]
    outcome = {
        'compile_status': CompileStatus.SUCCESS.value,
        'run_status': RunStatus.SUCCESS.value,
        'actual_output': output,
        'error_message': None,
        'execution_time_ms': result.execution_time_ms
    }

    if result.compile_failed:
        outcome['compile_status'] = CompileStatus.ERROR.value
        outcome['run_status'] = RunStatus.ERROR.value
        outcome['error_message'] = (result.compile_output or 'Compilation failed')[:MAX_ERROR_CHARS]
        return outcome

    if result.signal == 'SIGKILL':
        outcome['run_status'] = RunStatus.TIMEOUT.value
        outcome['error_message'] = (result.stderr or 'Execution time limit exceeded')[:MAX_ERROR_CHARS]
        return outcome

    if result.exit_code != 0 or result.stderr:
        outcome['run_status'] = RunStatus.ERROR.value
        outcome['error_message'] = (result.stderr or f'Process exited with code {result.exit_code}')[:MAX_ERROR_CHARS]
        return outcome

    if expected_output and output.strip() != expected_output.strip():
        outcome['run_status'] = RunStatus.WRONG_ANSWER.value

    return outcome


class CodeEvaluationClient:
    """
    Artifact lifecycle: accept (pending) -> dispatch (dispatched) -> complete/fail (completed).

    complete() and fail() are the completion entry points; they are called by
    dispatch() but also work for results delivered by a callback or a poller.
    """

    NON_TERMINAL = (ArtifactPhase.PENDING.value, ArtifactPhase.DISPATCHED.value)

    def __init__(self, sandbox: PistonSandbox = None, dispatcher=None, cache=None):
        self._sandbox = sandbox
        self.dispatcher = dispatcher or notification_dispatcher
        self.cache = cache or cache_service

    @property
    def sandbox(self) -> PistonSandbox:
        if self._sandbox is None:
            self._sandbox = PistonSandbox.from_config(current_app.config)
        return self._sandbox

    @staticmethod
    def validate_language(language: str) -> str:
        try:
            return CodeLanguage(language).value
        except ValueError:
            raise ValidationError(f'Unsupported language: {language}')

    def run(self, language: str, source_code: str, stdin: str = None) -> Dict[str, Any]:
        """
        Execute code directly, without an artifact or a submission

        Used by teachers to try out code questions. Nothing is persisted.

        Raises:
            ValidationError, SandboxUnavailable
        """
        language = self.validate_language(language)
        if not source_code or not source_code.strip():
            raise ValidationError('Source code is empty')

        result = self.sandbox.execute(language, source_code, stdin or '')
        error_output = result.compile_output if result.compile_failed else result.stderr
        return {
            'output': (result.stdout or '')[:MAX_OUTPUT_CHARS],
            'stderr': (error_output or '')[:MAX_ERROR_CHARS],
            'exit_code': result.exit_code,
            'execution_time_ms': result.execution_time_ms
        }

    def accept(self, submission: Submission, question: Question, language: str, source_code: str) -> CodeArtifact:
        """Create the pending artifact inside the caller's transaction"""
        if not source_code or not source_code.strip():
            raise ValidationError('Source code is empty')

        artifact = CodeArtifact(
            submission_id=submission.id,
            question_id=question.id if question else None,
            language=self.validate_language(language),
            source_code=source_code,
            stdin=question.get_config('stdin') if question else None,
            expected_output=question.get_config('expected_output') if question else None
        )
        db.session.add(artifact)
        db.session.flush()
        return artifact

    def dispatch(self, artifact_id: int) -> Optional[Dict[str, Any]]:
        """
        Send a pending artifact to the sandbox and reconcile the outcome.

        Sandbox failures end in a terminal error/timeout state instead of raising.
        """
        claimed = db.session.execute(
            update(CodeArtifact)
            .where(CodeArtifact.id == artifact_id, CodeArtifact.phase == ArtifactPhase.PENDING.value)
            .values(phase=ArtifactPhase.DISPATCHED.value, dispatched_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
        if claimed != 1:
            print(f"[CodeEvaluation] Artifact {artifact_id} already dispatched, skipping")
            return None

        artifact = db.session.get(CodeArtifact, artifact_id, populate_existing=True)
        print(f"[CodeEvaluation] Dispatching artifact {artifact_id} ({artifact.language})")

        try:
            result = self.sandbox.execute(artifact.language, artifact.source_code, artifact.stdin)
        except SandboxUnavailable as e:
            print(f"[CodeEvaluation] Sandbox unavailable for artifact {artifact_id}: {e.message}")
            return self.fail(artifact_id, e.message, timed_out=e.timed_out)

        return self.complete(artifact_id, result)

    def complete(self, artifact_id: int, result: SandboxResult) -> Optional[Dict[str, Any]]:
        """Completion entry point for a sandbox response"""
        artifact = db.session.get(CodeArtifact, artifact_id)
        if artifact is None:
            raise NotFound('Code artifact not found')
        return self._finish(artifact_id, evaluate(result, artifact.expected_output))

    def fail(self, artifact_id: int, message: str, timed_out: bool = False) -> Optional[Dict[str, Any]]:
        """Completion entry point when the sandbox could not produce a result"""
        status = 'timeout' if timed_out else 'error'
        return self._finish(artifact_id, {
            'compile_status': status,
            'run_status': status,
            'actual_output': None,
            'error_message': (message or 'Sandbox unavailable')[:MAX_ERROR_CHARS],
            'execution_time_ms': None
        })

    def _finish(self, artifact_id: int, outcome: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        finished = db.session.execute(
            update(CodeArtifact)
            .where(CodeArtifact.id == artifact_id, CodeArtifact.phase.in_(self.NON_TERMINAL))
            .values(phase=ArtifactPhase.COMPLETED.value, completed_at=datetime.utcnow(), **outcome)
            .execution_options(synchronize_session=False)
        ).rowcount
        if finished != 1:
            db.session.rollback()
            print(f"[CodeEvaluation] Artifact {artifact_id} already completed, result ignored")
            return None

        artifact = db.session.get(CodeArtifact, artifact_id, populate_existing=True)
        reconciled = self._reconcile_answer(artifact)
        db.session.commit()

        print(f"[CodeEvaluation] Artifact {artifact_id}: compile={outcome['compile_status']} "
              f"run={outcome['run_status']} answer_reconciled={reconciled}")

        student_id = db.session.execute(
            select(Submission.student_id).where(Submission.id == artifact.submission_id)
        ).scalar()
        result = artifact.to_result()
        self.dispatcher.notify_user(student_id, dict(result, type='CODE_RESULT'))
        return result

    def _reconcile_answer(self, artifact: CodeArtifact) -> bool:
        """
        Auto-grade the code answer while its submission is still open.

        Only the newest artifact for the question counts, and the write is
        guarded by the submission status so a finalized score never changes.
        """
        if artifact.question_id is None:
            return False

        newest_id = db.session.execute(
            select(CodeArtifact.id)
            .where(CodeArtifact.submission_id == artifact.submission_id,
                   CodeArtifact.question_id == artifact.question_id)
            .order_by(CodeArtifact.id.desc())
            .limit(1)
        ).scalar()
        if newest_id != artifact.id:
            return False

        is_correct = artifact.run_status == RunStatus.SUCCESS.value
        score = self._question_value(artifact) if is_correct else Decimal('0')

        open_submission = select(Submission.id).where(
            Submission.id == artifact.submission_id,
            Submission.status == SubmissionStatus.IN_PROGRESS.value
        )
        updated = db.session.execute(
            update(Answer)
            .where(Answer.submission_id == artifact.submission_id,
                   Answer.question_id == artifact.question_id,
                   Answer.submission_id.in_(open_submission))
            .values(is_correct=is_correct, score_earned=score)
            .execution_options(synchronize_session=False)
        ).rowcount
        return updated == 1

    @staticmethod
    def _question_value(artifact: CodeArtifact) -> Decimal:
        row = db.session.execute(
            select(AssignmentQuestion.points_override, Question.points)
            .join(Question, AssignmentQuestion.question_id == Question.id)
            .join(Submission, Submission.assignment_id == AssignmentQuestion.assignment_id)
            .where(Submission.id == artifact.submission_id,
                   AssignmentQuestion.question_id == artifact.question_id)
        ).first()
        if row is None:
            return Decimal('0')
        override, points = row
        return Decimal(override if override is not None else (points or 0))

    def sweep_stale(self, max_age_seconds: int = None, now: datetime = None) -> int:
        """Force artifacts stuck before completion past the bound into timeout"""
        if max_age_seconds is None:
            max_age_seconds = current_app.config['CODE_ARTIFACT_MAX_PENDING_SECONDS']
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=max_age_seconds)

        stale_ids = db.session.execute(
            select(CodeArtifact.id)
            .where(CodeArtifact.phase.in_(self.NON_TERMINAL), CodeArtifact.submitted_at < cutoff)
        ).scalars().all()

        swept = 0
        for artifact_id in stale_ids:
            if self.fail(artifact_id, f'No sandbox result after {max_age_seconds}s', timed_out=True):
                swept += 1
        if swept:
            print(f"[CodeEvaluation] Swept {swept} stale artifact(s) into timeout")
        return swept

    def get_result(self, artifact_id: int) -> Dict[str, Any]:
        """Current state of an artifact; terminal results are cached"""
        ttl = current_app.config.get('CODE_RESULT_CACHE_TTL', 3600)
        if ttl:
            cached = self.cache.get_code_result(artifact_id)
            if cached:
                return cached

        artifact = db.session.get(CodeArtifact, artifact_id)
        if artifact is None:
            raise NotFound('Code artifact not found')

        result = artifact.to_result()
        if ttl and artifact.is_terminal:
            self.cache.store_code_result(artifact_id, result, ttl)
        return result
