"""
Submission lifecycle: start, answer, finalize, manual grading
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from flask import current_app
from sqlalchemy import func, select, update
from app import db
from app.models.answer import Answer
from app.models.assignment import Assignment, AssignmentQuestion
from app.models.code_artifact import CodeArtifact
from app.models.design_artifact import DesignArtifact
from app.models.enums import NotificationType, QuestionType, SubmissionStatus, XPSource
from app.models.school_class import ClassStudent
from app.models.submission import Submission
from app.services.auto_grader import AutoGrader, QuestionKey, normalize_option
from app.services.background import run_after_commit
from app.services.code_evaluation import CodeEvaluationClient
from app.services.db_utils import insert_ignore, upsert
from app.services.errors import (AlreadyFinalized, Closed, InvalidState, NotEligible, NotFound,
                                 NotPublished, ValidationError)
from app.services.gradebook_updater import GradeBookUpdater
from app.services.notification_dispatcher import notification_dispatcher
from app.services.notification_service import NotificationService
from app.services.xp_ledger import XPLedger

IN_PROGRESS = SubmissionStatus.IN_PROGRESS.value
SUBMITTED = SubmissionStatus.SUBMITTED.value
GRADED = SubmissionStatus.GRADED.value
LATE = SubmissionStatus.LATE.value


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _round_half_up(value: Decimal, places: str = '1') -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


class SubmissionManager:
    """
    Orchestrates a student's attempt at an assignment.

    Score, ledger row and XP projection are always written in one transaction.
    Notifications and grade book updates run after commit and can never undo
    or fail an operation that already committed.
    """

    def __init__(self, code_client: CodeEvaluationClient = None, dispatcher=None,
                 gradebook=GradeBookUpdater, ledger=XPLedger):
        self.dispatcher = dispatcher or notification_dispatcher
        self.code_client = code_client or CodeEvaluationClient(dispatcher=self.dispatcher)
        self.gradebook = gradebook
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start_or_get(self, assignment_id: int, student_id: int, now: datetime = None):
        """
        Create the student's submission, or return the existing one unchanged

        Returns:
            Tuple (submission, already_existed)

        Raises:
            NotFound, NotEligible, NotPublished, Closed
        """
        assignment = db.session.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFound('Assignment not found')
        if not ClassStudent.is_enrolled(student_id, assignment.class_id):
            raise NotEligible('Student is not enrolled in this class')
        if not assignment.is_published():
            raise NotPublished('Assignment is not published')
        if assignment.is_closed(now):
            raise Closed('Assignment deadline has passed')

        created = insert_ignore(
            Submission, ['assignment_id', 'student_id'],
            assignment_id=assignment_id,
            student_id=student_id,
            status=IN_PROGRESS,
            xp_earned=0,
            started_at=now or datetime.utcnow()
        )
        db.session.commit()

        submission = Submission.query.filter_by(assignment_id=assignment_id, student_id=student_id).one()
        if created:
            print(f"[SubmissionManager] Started submission {submission.id} "
                  f"(assignment={assignment_id}, student={student_id})")
        return submission, not created

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def record_answer(self, submission_id: int, question_id: int, selected_option: str = None,
                      answer_text: str = None, student_id: int = None) -> dict:
        """
        Upsert the answer for one question, auto-grading objective types

        Re-recording replaces the previous answer; scores never accumulate.
        Only the fields relevant to the question type are stored, the others
        are cleared.

        Raises:
            NotFound, InvalidState, ValidationError
        """
        submission = self._lock_submission(submission_id, student_id)
        if not submission.is_in_progress:
            db.session.rollback()
            raise InvalidState('Submission is not in progress')

        link = self._assignment_question(submission.assignment_id, question_id)
        question = link.question
        key = self._question_key(link)

        if key.question_type.is_objective:
            stored_option, stored_text = normalize_option(selected_option), None
            if stored_option is not None and len(stored_option) > 1:
                db.session.rollback()
                raise ValidationError('Selected option must be a single letter')
        else:
            stored_option, stored_text = None, answer_text
        result = AutoGrader.grade(key, stored_option)

        upsert(
            Answer, ['submission_id', 'question_id'],
            {
                'submission_id': submission.id,
                'question_id': question_id,
                'selected_option': stored_option,
                'answer_text': stored_text,
                'is_correct': result.is_correct,
                'score_earned': result.score_earned,
                'answered_at': datetime.utcnow()
            },
            ['selected_option', 'answer_text', 'is_correct', 'score_earned', 'answered_at']
        )
        db.session.commit()

        correct_option = None
        if result.is_correct is False and question.correct_option is not None:
            correct_option = {
                'option_letter': question.correct_option.option_letter,
                'content': question.correct_option.content
            }

        return {
            'is_correct': result.is_correct,
            'score_earned': float(result.score_earned),
            'correct_option': correct_option,
            'explanation': question.explanation
        }

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def finalize(self, submission_id: int, student_id: int = None, now: datetime = None,
                 time_spent_seconds=None) -> dict:
        """
        Close the submission: aggregate score, credit XP, exactly once

        The in_progress -> submitted transition is one conditional UPDATE; a
        caller whose UPDATE touched no row lost the race and gets
        AlreadyFinalized with the stored result.

        Returns:
            Dict with score, percent and xp_earned

        Raises:
            NotFound, AlreadyFinalized, ValidationError
        """
        time_spent_seconds = self._time_spent(time_spent_seconds)
        submission = self._get_submission(submission_id, student_id)
        if not submission.is_in_progress:
            raise self._already_finalized(submission)

        now = now or datetime.utcnow()
        try:
            claimed = db.session.execute(
                update(Submission)
                .where(Submission.id == submission_id, Submission.status == IN_PROGRESS)
                .values(status=SUBMITTED, submitted_at=now, time_spent_seconds=time_spent_seconds)
                .execution_options(synchronize_session=False)
            ).rowcount
            if claimed != 1:
                db.session.rollback()
                raise self._already_finalized(self._get_submission(submission_id, student_id, refresh=True))

            assignment = db.session.get(Assignment, submission.assignment_id)
            score = self._aggregate_score(submission_id)
            percent, xp_earned = self._score_to_xp(score, assignment)

            db.session.execute(
                update(Submission)
                .where(Submission.id == submission_id)
                .values(score=score, xp_earned=xp_earned)
                .execution_options(synchronize_session=False)
            )
            totals = self.ledger.credit(
                submission.student_id, xp_earned, XPSource.SUBMISSION, assignment.id,
                f'Assignment submitted - {_round_half_up(percent)}%'
            )
            db.session.commit()
        except AlreadyFinalized:
            raise
        except Exception:
            db.session.rollback()
            raise

        result = {
            'submission_id': submission_id,
            'score': float(score),
            'percent': float(_round_half_up(percent, '0.01')),
            'xp_earned': xp_earned
        }
        print(f"[SubmissionManager] Finalized submission {submission_id}: "
              f"score={result['score']} percent={result['percent']} xp={xp_earned}")

        self._after_commit(self.dispatcher.notify_user, submission.student_id, dict(
            result, type='SUBMISSION_COMPLETE', total_xp=totals['total_xp'], level=totals['level']
        ))
        self._after_commit(self.gradebook.update_for_submission, submission_id)
        return result

    # ------------------------------------------------------------------
    # Manual grading
    # ------------------------------------------------------------------

    def grade_open_submission(self, submission_id: int, score, feedback: str = None,
                              grader_id: int = None) -> dict:
        """
        Teacher grade for a submission with open/code/design work

        XP credited here is the difference to what finalize already credited,
        so the ledger total for a submission equals its final xp_earned.

        Raises:
            NotFound, ValidationError, InvalidState
        """
        submission = self._get_submission(submission_id)
        try:
            result = self._apply_grade(submission, score, feedback, grader_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        self._after_grade(submission, result)
        return result

    def rate_design(self, artifact_id: int, rating, comment: str = None, grader_id: int = None) -> dict:
        """
        Store a teacher rating (0-100) for a design and grade its submission

        The rating is a percentage of the assignment's max score.
        """
        artifact = db.session.get(DesignArtifact, artifact_id)
        if artifact is None:
            raise NotFound('Design not found')
        try:
            rating = int(rating)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Rating must be an integer between 0 and 100')
        if not 0 <= rating <= 100:
            raise ValidationError('Rating must be an integer between 0 and 100')

        submission = self._get_submission(artifact.submission_id)
        assignment = db.session.get(Assignment, submission.assignment_id)
        score = _round_half_up(_to_decimal(assignment.max_score) * rating / 100, '0.01')

        try:
            artifact.teacher_rating = rating
            artifact.teacher_comment = comment
            result = self._apply_grade(submission, score, comment, grader_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        result['rating'] = rating
        self._after_grade(submission, result)
        return result

    def _apply_grade(self, submission: Submission, score, feedback, grader_id) -> dict:
        """Grade transition + ledger delta inside the caller's transaction"""
        assignment = db.session.get(Assignment, submission.assignment_id)
        try:
            score = _to_decimal(score)
        except InvalidOperation:
            raise ValidationError('Score must be a number')
        if not score.is_finite():
            raise ValidationError('Score must be a number')
        max_score = _to_decimal(assignment.max_score)
        if score < 0 or score > max_score:
            raise ValidationError(f'Score must be between 0 and {max_score}')
        if submission.status == GRADED:
            raise InvalidState('Submission is already graded')

        percent, xp_earned = self._score_to_xp(score, assignment)
        previous_xp = submission.xp_earned or 0
        now = datetime.utcnow()

        graded = db.session.execute(
            update(Submission)
            .where(Submission.id == submission.id,
                   Submission.status.in_((IN_PROGRESS, SUBMITTED, LATE)),
                   Submission.xp_earned == previous_xp)
            .values(status=GRADED, score=score, xp_earned=xp_earned, graded_at=now,
                    graded_by=grader_id, feedback=feedback,
                    submitted_at=func.coalesce(Submission.submitted_at, now))
            .execution_options(synchronize_session=False)
        ).rowcount
        if graded != 1:
            raise InvalidState('Submission changed while grading, reload and try again')

        delta = xp_earned - previous_xp
        totals = None
        if delta:
            totals = self.ledger.credit(
                submission.student_id, delta, XPSource.SUBMISSION, assignment.id,
                'Assignment graded by teacher'
            )

        print(f"[SubmissionManager] Graded submission {submission.id}: score={score} "
              f"xp={xp_earned} (ledger {delta:+d})")
        return {
            'submission_id': submission.id,
            'score': float(score),
            'percent': float(_round_half_up(percent, '0.01')),
            'xp_earned': xp_earned,
            'xp_credited': delta,
            'total_xp': totals['total_xp'] if totals else None,
            'level': totals['level'] if totals else None
        }

    def _after_grade(self, submission: Submission, result: dict):
        student_id = submission.student_id
        self._after_commit(
            NotificationService.record, student_id, 'Assignment graded!',
            f"Your score: {result['score']:g} ({result['percent']:g}%). Feedback is available on your dashboard.",
            NotificationType.GRADE
        )
        self._after_commit(self.dispatcher.notify_user, student_id, dict(result, type='SUBMISSION_GRADED'))
        self._after_commit(self.gradebook.update_for_submission, submission.id)

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def submit_code(self, submission_id: int, question_id: int, language: str, source_code: str,
                    student_id: int = None) -> dict:
        """
        Accept code for a code question; execution happens out of band

        Returns:
            Dict with the new artifact_id
        """
        submission = self._lock_submission(submission_id, student_id)
        if not submission.is_in_progress:
            db.session.rollback()
            raise InvalidState('Submission is not in progress')

        link = self._assignment_question(submission.assignment_id, question_id)
        if link.question.question_type != QuestionType.CODE.value:
            db.session.rollback()
            raise ValidationError('Question does not accept code')

        try:
            artifact = self.code_client.accept(submission, link.question, language, source_code)
            upsert(
                Answer, ['submission_id', 'question_id'],
                {
                    'submission_id': submission.id,
                    'question_id': question_id,
                    'selected_option': None,
                    'answer_text': source_code,
                    'is_correct': None,
                    'score_earned': Decimal('0'),
                    'answered_at': datetime.utcnow()
                },
                ['selected_option', 'answer_text', 'is_correct', 'score_earned', 'answered_at']
            )
            artifact_id = artifact.id
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        print(f"[SubmissionManager] Accepted code artifact {artifact_id} for submission {submission_id}")
        self._after_commit(self.code_client.dispatch, artifact_id, label='CodeEvaluation')
        return {'artifact_id': artifact_id}

    def get_code_result(self, artifact_id: int, student_id: int = None) -> dict:
        if student_id is not None:
            owner = db.session.execute(
                select(Submission.student_id)
                .join(CodeArtifact, CodeArtifact.submission_id == Submission.id)
                .where(CodeArtifact.id == artifact_id)
            ).scalar()
            if owner != student_id:
                raise NotFound('Code artifact not found')
        return self.code_client.get_result(artifact_id)

    def save_design(self, submission_id: int, canvas_data, student_id: int = None) -> dict:
        """Create or replace the design of an in-progress submission"""
        if canvas_data is None:
            raise ValidationError('Canvas data is required')

        submission = self._lock_submission(submission_id, student_id)
        if not submission.is_in_progress:
            db.session.rollback()
            raise InvalidState('Submission is not in progress')

        now = datetime.utcnow()
        upsert(
            DesignArtifact, ['submission_id'],
            {'submission_id': submission.id, 'canvas_data': canvas_data, 'created_at': now, 'updated_at': now},
            ['canvas_data', 'updated_at']
        )
        db.session.commit()

        artifact_id = db.session.execute(
            select(DesignArtifact.id).where(DesignArtifact.submission_id == submission.id)
        ).scalar()
        return {'design_id': artifact_id}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_submission(self, submission_id, student_id=None, refresh=False) -> Submission:
        submission = db.session.get(Submission, submission_id, populate_existing=refresh)
        if submission is None or (student_id is not None and submission.student_id != student_id):
            raise NotFound('Submission not found')
        return submission

    @staticmethod
    def _lock_submission(submission_id, student_id=None) -> Submission:
        """Row lock on the submission so answers serialize with finalize"""
        submission = (Submission.query
                      .filter_by(id=submission_id)
                      .with_for_update()
                      .populate_existing()
                      .first())
        if submission is None or (student_id is not None and submission.student_id != student_id):
            db.session.rollback()
            raise NotFound('Submission not found')
        return submission

    @staticmethod
    def _assignment_question(assignment_id, question_id) -> AssignmentQuestion:
        link = AssignmentQuestion.query.filter_by(assignment_id=assignment_id, question_id=question_id).first()
        if link is None:
            db.session.rollback()
            raise NotFound('Question not found in this assignment')
        return link

    @staticmethod
    def _question_key(link: AssignmentQuestion) -> QuestionKey:
        question = link.question
        correct = question.correct_option
        return QuestionKey(
            question_type=QuestionType(question.question_type),
            correct_option=correct.option_letter if correct else None,
            points=_to_decimal(question.points),
            points_override=_to_decimal(link.points_override) if link.points_override is not None else None
        )

    @staticmethod
    def _aggregate_score(submission_id) -> Decimal:
        total = db.session.execute(
            select(func.coalesce(func.sum(Answer.score_earned), 0))
            .where(Answer.submission_id == submission_id)
        ).scalar()
        return _round_half_up(_to_decimal(total), '0.01')

    @staticmethod
    def _score_to_xp(score: Decimal, assignment: Assignment):
        """percent = score / max_score * 100; xp = round(xp_reward * percent / 100)"""
        max_score = _to_decimal(assignment.max_score)
        if max_score <= 0:
            return Decimal('0'), 0
        percent = score / max_score * 100
        xp_earned = int(_round_half_up(Decimal(assignment.xp_reward or 0) * percent / 100))
        return percent, xp_earned

    @staticmethod
    def _time_spent(value):
        if value is None:
            return None
        try:
            if isinstance(value, bool):
                raise TypeError(value)
            seconds = int(value)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError("'time_spent_seconds' must be a non-negative integer")
        if seconds < 0:
            raise ValidationError("'time_spent_seconds' must be a non-negative integer")
        return seconds

    @staticmethod
    def _already_finalized(submission: Submission) -> AlreadyFinalized:
        return AlreadyFinalized(
            'Submission was already finalized',
            status=submission.status,
            score=float(submission.score) if submission.score is not None else None,
            xp_earned=submission.xp_earned or 0
        )

    @staticmethod
    def _after_commit(target, *args, label='SubmissionManager'):
        run_after_commit(current_app._get_current_object(), label, target, *args)
