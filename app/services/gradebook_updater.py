"""
Grade book updater: period average from finalized submissions
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import func, select
from app import db
from app.models.assignment import Assignment
from app.models.enums import SubmissionStatus
from app.models.grade import Grade
from app.models.submission import Submission
from app.services.db_utils import upsert


class GradeBookUpdater:
    """Recomputes a student's bimester average for a class subject"""

    COUNTED_STATUSES = (SubmissionStatus.SUBMITTED.value, SubmissionStatus.GRADED.value)

    @staticmethod
    def bimester_for(month: int) -> int:
        """Months 1-3 -> 1, 4-6 -> 2, 7-9 -> 3, 10-12 -> 4"""
        return (month - 1) // 3 + 1

    @classmethod
    def average_score(cls, student_id: int, class_id: int, subject_id: int):
        """Mean score of counted submissions, None when there are none"""
        average = db.session.execute(
            select(func.avg(Submission.score))
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(
                Submission.student_id == student_id,
                Assignment.class_id == class_id,
                Assignment.subject_id == subject_id,
                Submission.status.in_(cls.COUNTED_STATUSES),
                Submission.score.isnot(None)
            )
        ).scalar()
        if average is None:
            return None
        return Decimal(str(average)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    @classmethod
    def update_average(cls, student_id: int, class_id: int, subject_id: int, today: date = None):
        """
        Upsert the current period grade with the recomputed average

        The stored value is replaced outright, never blended with the previous one.

        Args:
            student_id: Student user ID
            class_id: Class of the assignments
            subject_id: Subject of the assignments
            today: Reference date for period/year (defaults to now)

        Returns:
            The stored average, or None when there is nothing to average
        """
        average = cls.average_score(student_id, class_id, subject_id)
        if average is None:
            return None

        today = today or datetime.utcnow().date()
        upsert(
            Grade,
            ['student_id', 'class_id', 'subject_id', 'bimester', 'academic_year'],
            {
                'student_id': student_id,
                'class_id': class_id,
                'subject_id': subject_id,
                'bimester': cls.bimester_for(today.month),
                'academic_year': today.year,
                'grade': average,
                'updated_at': datetime.utcnow()
            },
            ['grade', 'updated_at']
        )
        db.session.commit()
        print(f"[GradeBook] student={student_id} class={class_id} subject={subject_id} "
              f"b{cls.bimester_for(today.month)}/{today.year} -> {average}")
        return average

    @classmethod
    def update_for_submission(cls, submission_id: int):
        """Resolve class/subject from the submission's assignment and update"""
        row = db.session.execute(
            select(Submission.student_id, Assignment.class_id, Assignment.subject_id)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(Submission.id == submission_id)
        ).first()
        if row is None:
            return None
        return cls.update_average(row.student_id, row.class_id, row.subject_id)
