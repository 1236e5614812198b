import pytest

from app import db
from app.models.student_xp import StudentXP, XPTransaction
from app.services.errors import ValidationError
from app.services.xp_ledger import XPLedger


@pytest.mark.parametrize("total, level", [
    (0, 1), (999, 1), (1000, 2), (1999, 2), (2500, 3), (-5, 1), (-2000, 1),
])
def test_level_for(total, level):
    assert XPLedger.level_for(total) == level


def projection(student_id):
    return db.session.execute(
        db.select(StudentXP).where(StudentXP.student_id == student_id)
    ).scalar_one()


def test_credit_creates_projection_and_ledger_row(school):
    result = XPLedger.credit(school.student.id, 1500, "submission", 7, "Assignment submitted - 100%")
    db.session.commit()

    assert result == {"total_xp": 1500, "level": 2, "amount": 1500}
    row = XPTransaction.query.filter_by(student_id=school.student.id).one()
    assert row.xp_amount == 1500
    assert row.source_type == "submission"
    assert row.source_id == 7
    assert projection(school.student.id).level == 2


def test_projection_tracks_ledger_sum(school):
    student_id = school.student.id
    for amount, kind in [(400, "submission"), (700, "bonus"), (-300, "penalty"), (250, "attendance")]:
        XPLedger.credit(student_id, amount, kind)
    db.session.commit()

    check = XPLedger.verify(student_id)
    assert check["consistent"] is True
    assert check["ledger_total"] == check["projection_total"] == 1050
    assert projection(student_id).level == 2


def test_negative_total_stays_at_level_one(school):
    result = XPLedger.credit(school.student.id, -120, "penalty")
    db.session.commit()

    assert result["total_xp"] == -120
    assert result["level"] == 1


def test_credit_does_not_commit(school):
    XPLedger.credit(school.student.id, 100, "bonus")
    db.session.rollback()

    assert XPTransaction.query.count() == 0
    assert XPLedger.verify(school.student.id)["projection_total"] == 0


def test_award_flips_penalty_sign(school):
    result = XPLedger.award(school.student.id, 50, "penalty", description="Late delivery")

    assert result["amount"] == -50
    assert result["total_xp"] == -50
    assert XPTransaction.query.one().description == "Late delivery"


@pytest.mark.parametrize("kwargs", [
    {"amount": 0, "source_kind": "bonus"},
    {"amount": 10, "source_kind": "lottery"},
])
def test_award_rejects_invalid_input(school, kwargs):
    with pytest.raises(ValidationError):
        XPLedger.award(school.student.id, **kwargs)

    assert XPTransaction.query.count() == 0


def test_award_requires_a_student(school):
    with pytest.raises(ValidationError):
        XPLedger.award(school.teacher.id, 10, "bonus")
    with pytest.raises(ValidationError):
        XPLedger.award(9999, 10, "bonus")


def test_summary_for_student_without_xp(school):
    summary = XPLedger.get_summary(school.classmate.id)

    assert summary["total_xp"] == 0
    assert summary["level"] == 1
    assert summary["xp_to_next_level"] == 1000
    assert summary["history"] == []


def test_summary_lists_history_newest_first(school):
    XPLedger.award(school.student.id, 100, "bonus", description="first")
    XPLedger.award(school.student.id, 1200, "achievement", description="second")

    summary = XPLedger.get_summary(school.student.id)

    assert summary["total_xp"] == 1300
    assert summary["level"] == 2
    assert summary["xp_to_next_level"] == 700
    assert [row["description"] for row in summary["history"]] == ["second", "first"]


def test_ranking_orders_by_total_and_filters_by_class(school):
    XPLedger.award(school.student.id, 300, "bonus")
    XPLedger.award(school.classmate.id, 900, "bonus")
    XPLedger.award(school.outsider.id, 5000, "bonus")

    everyone = XPLedger.ranking()
    in_class = XPLedger.ranking(school.school_class.id)

    assert [row["student_id"] for row in everyone] == [school.outsider.id, school.classmate.id, school.student.id]
    assert [row["student_id"] for row in in_class] == [school.classmate.id, school.student.id]
    assert in_class[0]["position"] == 1
    assert in_class[0]["display_name"] == "Joao"
