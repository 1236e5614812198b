# tests/conftest.py

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import requests
from flask import g, request_tearing_down
from flask_login import FlaskLoginClient

from app import create_app, db
from app.models.assignment import Assignment, AssignmentQuestion
from app.models.enums import AssignmentStatus, QuestionType
from app.models.question import Question, QuestionOption
from app.models.school_class import ClassStudent, SchoolClass
from app.models.subject import Subject
from app.models.user import User
from app.services.code_evaluation import CodeEvaluationClient, PistonSandbox
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.submission_manager import SubmissionManager


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self.payload


class FakeSandboxSession:
    """Stands in for requests.Session; replays canned responses or errors"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def queue(self, outcome):
        self.outcomes.append(outcome)

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0) if self.outcomes else piston_ok("")
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, FakeResponse):
            return outcome
        return FakeResponse(outcome)


def piston_ok(stdout, stderr="", code=0, signal=None, compile_stage=None):
    payload = {
        "language": "python",
        "version": "3.10.0",
        "run": {"stdout": stdout, "stderr": stderr, "code": code, "signal": signal,
                "output": stdout + stderr, "wall_time": 42},
    }
    if compile_stage is not None:
        payload["compile"] = compile_stage
    return payload


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client_for(app):
    """
    Test clients share the fixture's app context, so the user Flask-Login
    caches on g must be dropped after every request
    """
    app.test_client_class = FlaskLoginClient

    def forget_user(sender, **extra):
        g.pop("_login_user", None)

    def _client(user=None):
        if user is None:
            return app.test_client()
        return app.test_client(user=user)

    request_tearing_down.connect(forget_user, app)
    yield _client
    request_tearing_down.disconnect(forget_user, app)


def _user(username, role="student"):
    user = User(username=username, role=role, display_name=username.title())
    user.set_password("secret")
    db.session.add(user)
    return user


def _choice_question(teacher, subject, points, correct="A", title="Choice"):
    question = Question(
        teacher_id=teacher.id,
        subject_id=subject.id,
        title=title,
        content=f"{title}?",
        question_type=QuestionType.MULTIPLE_CHOICE.value,
        points=points,
        explanation=f"{correct} is right",
    )
    question.options = [
        QuestionOption(option_letter=letter, content=f"Option {letter}", is_correct=(letter == correct),
                       order_index=index)
        for index, letter in enumerate("ABCD")
    ]
    return question


def _assignment(teacher, school_class, subject, questions, title="Quiz", **fields):
    values = dict(
        teacher_id=teacher.id,
        class_id=school_class.id,
        subject_id=subject.id,
        title=title,
        status=AssignmentStatus.PUBLISHED.value,
        max_score=100,
        xp_reward=100,
        ends_at=datetime.utcnow() + timedelta(days=7),
    )
    values.update(fields)
    assignment = Assignment(**values)
    for index, (question, override) in enumerate(questions):
        assignment.questions.append(
            AssignmentQuestion(question=question, order_index=index, points_override=override)
        )
    db.session.add(assignment)
    return assignment


@pytest.fixture
def school(app):
    """
    One class with two enrolled students plus an outsider.

    quiz:   two multiple choice questions worth 50 each (correct option 'A')
    mixed:  multiple choice 40, open 30 and code 30 (expected output 'hello')
    """
    teacher = _user("prof", role="teacher")
    student = _user("maria")
    classmate = _user("joao")
    outsider = _user("lucia")
    subject = Subject(name="Programming", code="PROG")
    other_subject = Subject(name="Math", code="MATH")
    school_class = SchoolClass(name="1st Year A", code="1A", academic_year=2026)
    db.session.add_all([subject, other_subject, school_class])
    db.session.flush()

    db.session.add_all([
        ClassStudent(class_id=school_class.id, student_id=student.id),
        ClassStudent(class_id=school_class.id, student_id=classmate.id),
    ])

    q1 = _choice_question(teacher, subject, 50, title="Q1")
    q2 = _choice_question(teacher, subject, 50, title="Q2")
    quiz = _assignment(teacher, school_class, subject, [(q1, None), (q2, None)])

    mc = _choice_question(teacher, subject, 10, title="MC")
    open_question = Question(teacher_id=teacher.id, subject_id=subject.id, title="Essay",
                             content="Explain recursion", question_type=QuestionType.OPEN.value, points=30)
    code_question = Question(teacher_id=teacher.id, subject_id=subject.id, title="Hello",
                             content="Print hello", question_type=QuestionType.CODE.value, points=30,
                             config={"stdin": "", "expected_output": "hello"})
    mixed = _assignment(teacher, school_class, subject,
                        [(mc, 40), (open_question, None), (code_question, None)], title="Mixed")
    db.session.commit()

    return SimpleNamespace(
        teacher=teacher,
        student=student,
        classmate=classmate,
        outsider=outsider,
        subject=subject,
        other_subject=other_subject,
        school_class=school_class,
        quiz=quiz,
        q1=q1,
        q2=q2,
        mixed=mixed,
        mc=mc,
        open_question=open_question,
        code_question=code_question,
    )


@pytest.fixture
def make_assignment(school):
    def _make(questions, **fields):
        assignment = _assignment(school.teacher, school.school_class, school.subject, questions, **fields)
        db.session.commit()
        return assignment

    return _make


@pytest.fixture
def choice_question(school):
    def _make(points, correct="A", title="Extra"):
        question = _choice_question(school.teacher, school.subject, points, correct=correct, title=title)
        db.session.add(question)
        db.session.flush()
        return question

    return _make


@pytest.fixture
def dispatcher():
    return NotificationDispatcher(queue_size=10)


@pytest.fixture
def sandbox_session():
    return FakeSandboxSession()


@pytest.fixture
def code_client(app, sandbox_session, dispatcher):
    sandbox = PistonSandbox("http://sandbox.test/api/v2", request_timeout=2, session=sandbox_session)
    return CodeEvaluationClient(sandbox=sandbox, dispatcher=dispatcher)


@pytest.fixture
def manager(code_client, dispatcher):
    return SubmissionManager(code_client=code_client, dispatcher=dispatcher)
