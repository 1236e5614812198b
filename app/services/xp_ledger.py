"""
XP ledger: append-only transaction log plus the StudentXP projection
"""
from datetime import datetime
from sqlalchemy import case, func, select, update
from app import db
from app.models.enums import XPSource
from app.models.school_class import ClassStudent
from app.models.student_xp import StudentXP, XPTransaction
from app.models.user import User
from app.services.db_utils import insert_ignore
from app.services.errors import LedgerInvariantError, ValidationError


class XPLedger:
    """
    Every XP change is one ledger insert plus one atomic increment of the
    projection, both inside the caller's transaction.
    """

    XP_PER_LEVEL = 1000
    HISTORY_LIMIT = 50

    @classmethod
    def level_for(cls, total_xp: int) -> int:
        """level = max(1, floor(total_xp / 1000) + 1)"""
        return max(1, total_xp // cls.XP_PER_LEVEL + 1)

    @classmethod
    def credit(cls, student_id: int, amount: int, source_kind, source_id: int = None,
               description: str = None) -> dict:
        """
        Append a ledger row and increment the student's total in the current transaction.

        Does not commit; the caller owns the unit of work so that the ledger,
        the projection and whatever caused the credit land together.

        Args:
            student_id: Student user ID
            amount: Signed XP amount (negative for penalties)
            source_kind: XPSource value
            source_id: Optional id of the originating entity (e.g. assignment)
            description: Human readable reason

        Returns:
            Dict with the new total_xp and level
        """
        kind = cls._source_kind(source_kind)
        amount = int(amount)

        insert_ignore(StudentXP, ['student_id'], student_id=student_id, total_xp=0, level=1,
                      updated_at=datetime.utcnow())

        db.session.add(XPTransaction(
            student_id=student_id,
            xp_amount=amount,
            source_type=kind.value,
            source_id=source_id,
            description=(description or '')[:255] or None
        ))
        db.session.flush()

        # Single statement add; SET expressions see the pre-update total
        new_total = StudentXP.total_xp + amount
        result = db.session.execute(
            update(StudentXP)
            .where(StudentXP.student_id == student_id)
            .values(
                total_xp=new_total,
                level=case((new_total < cls.XP_PER_LEVEL, 1), else_=new_total // cls.XP_PER_LEVEL + 1),
                updated_at=datetime.utcnow()
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise LedgerInvariantError(f'XP projection missing for student {student_id}')

        total_xp, level = db.session.execute(
            select(StudentXP.total_xp, StudentXP.level).where(StudentXP.student_id == student_id)
        ).one()

        print(f"[XPLedger] {amount:+d} XP ({kind.value}) -> student {student_id}: total={total_xp} level={level}")
        return {'total_xp': total_xp, 'level': level, 'amount': amount}

    @classmethod
    def award(cls, student_id: int, amount: int, source_kind, description: str = None,
              source_id: int = None) -> dict:
        """
        Standalone credit (bonus, attendance, achievement, penalty) committed on its own

        Raises:
            ValidationError: unknown student, unknown source kind or zero amount
        """
        student = db.session.get(User, student_id)
        if not student or student.role != 'student':
            raise ValidationError(f'User {student_id} is not a student')
        if int(amount) == 0:
            raise ValidationError('XP amount must not be zero')

        kind = cls._source_kind(source_kind)
        if kind == XPSource.PENALTY and amount > 0:
            amount = -amount

        try:
            result = cls.credit(student_id, amount, kind, source_id, description)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    @staticmethod
    def _source_kind(source_kind) -> XPSource:
        try:
            return XPSource(source_kind)
        except ValueError:
            raise ValidationError(f'Unknown XP source: {source_kind}')

    @staticmethod
    def ledger_total(student_id: int) -> int:
        return db.session.execute(
            select(func.coalesce(func.sum(XPTransaction.xp_amount), 0))
            .where(XPTransaction.student_id == student_id)
        ).scalar_one()

    @classmethod
    def verify(cls, student_id: int) -> dict:
        """Compare the projection with the ledger sum"""
        projection = StudentXP.query.filter_by(student_id=student_id).first()
        ledger = cls.ledger_total(student_id)
        total = projection.total_xp if projection else 0
        return {
            'student_id': student_id,
            'ledger_total': ledger,
            'projection_total': total,
            'consistent': ledger == total and (projection is None or projection.level == cls.level_for(total))
        }

    @classmethod
    def get_summary(cls, student_id: int) -> dict:
        """Total, level, ranks and recent ledger rows of a student"""
        projection = StudentXP.query.filter_by(student_id=student_id).first()
        history = (XPTransaction.query
                   .filter_by(student_id=student_id)
                   .order_by(XPTransaction.created_at.desc(), XPTransaction.id.desc())
                   .limit(cls.HISTORY_LIMIT)
                   .all())

        if projection:
            summary = projection.to_dict()
        else:
            summary = {
                'student_id': student_id,
                'total_xp': 0,
                'level': 1,
                'class_rank': None,
                'year_rank': None,
                'school_rank': None
            }
        summary['xp_to_next_level'] = cls.XP_PER_LEVEL - (max(summary['total_xp'], 0) % cls.XP_PER_LEVEL)
        summary['history'] = [transaction.to_dict() for transaction in history]
        return summary

    @staticmethod
    def ranking(class_id: int = None, limit: int = 20) -> list:
        """Students ordered by total XP, optionally restricted to one class"""
        query = db.session.query(StudentXP, User).join(User, StudentXP.student_id == User.id)
        if class_id:
            query = query.filter(StudentXP.student_id.in_(
                select(ClassStudent.student_id).where(ClassStudent.class_id == class_id)
            ))
        rows = query.order_by(StudentXP.total_xp.desc(), StudentXP.student_id).limit(limit).all()

        return [{
            'position': position,
            'student_id': user.id,
            'display_name': user.display_name or user.username,
            'total_xp': xp.total_xp,
            'level': xp.level
        } for position, (xp, user) in enumerate(rows, start=1)]
