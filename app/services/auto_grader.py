"""
Auto grading policies for objective questions
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from app.models.enums import QuestionType


@dataclass(frozen=True)
class QuestionKey:
    """Everything the grader needs to know about a question inside an assignment"""
    question_type: QuestionType
    correct_option: Optional[str] = None
    points: Decimal = Decimal('0')
    points_override: Optional[Decimal] = None

    @property
    def value(self) -> Decimal:
        """Points the question is worth in this assignment"""
        if self.points_override is not None:
            return Decimal(self.points_override)
        return Decimal(self.points or 0)


@dataclass(frozen=True)
class GradeResult:
    is_correct: Optional[bool]
    score_earned: Decimal
    deferred: bool = False


DEFERRED = GradeResult(is_correct=None, score_earned=Decimal('0'), deferred=True)


def normalize_option(option):
    """Option letter as stored and compared: trimmed, upper-cased, None when blank"""
    if option is None:
        return None
    option = str(option).strip().upper()
    return option or None


def grade_choice(key: QuestionKey, selected_option: Optional[str]) -> GradeResult:
    """Single correct option: full value when the letters match, else zero"""
    correct = normalize_option(key.correct_option)
    selected = normalize_option(selected_option)
    is_correct = correct is not None and selected == correct
    return GradeResult(is_correct=is_correct, score_earned=key.value if is_correct else Decimal('0'))


def grade_deferred(key: QuestionKey, selected_option: Optional[str]) -> GradeResult:
    """Open, code and design answers are graded later (teacher or sandbox)"""
    return DEFERRED


class AutoGrader:
    """Pure mapping (question, answer) -> correctness and score"""

    POLICIES = {
        QuestionType.MULTIPLE_CHOICE: grade_choice,
        QuestionType.TRUE_FALSE: grade_choice,
        QuestionType.OPEN: grade_deferred,
        QuestionType.CODE: grade_deferred,
        QuestionType.DESIGN: grade_deferred,
    }

    @classmethod
    def grade(cls, key: QuestionKey, selected_option: Optional[str] = None) -> GradeResult:
        """
        Grade one answer

        Args:
            key: Question type, correct option letter and point value
            selected_option: Option letter chosen by the student

        Returns:
            GradeResult (is_correct is None when grading is deferred)
        """
        policy = cls.POLICIES[QuestionType(key.question_type)]
        return policy(key, selected_option)

    @staticmethod
    def is_auto_gradable(question_type) -> bool:
        return QuestionType(question_type).is_objective
