import pytest
import requests

from app import db
from app.models.code_artifact import CodeArtifact
from app.models.student_xp import XPTransaction
from app.models.submission import Submission
from app.services.notification_service import NotificationService
from tests.conftest import FakeResponse, piston_ok


@pytest.fixture
def student_client(client_for, school):
    return client_for(school.student)


@pytest.fixture
def teacher_client(client_for, school):
    return client_for(school.teacher)


@pytest.fixture
def fake_sandbox(monkeypatch):
    calls = []

    def post(self, url, json=None, timeout=None):
        calls.append(json)
        return FakeResponse(piston_ok("hello\n"))

    monkeypatch.setattr(requests.Session, "post", post)
    return calls


def start(client, assignment):
    response = client.post("/student/submissions/start", json={"assignment_id": assignment.id})
    return response.get_json()["submission_id"]


def test_health(client_for):
    response = client_for().get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_anonymous_requests_are_rejected(client_for, school):
    response = client_for().post("/student/submissions/start", json={"assignment_id": school.quiz.id})

    assert response.status_code == 401
    assert response.get_json()["error"] == "Unauthorized"


def test_roles_are_enforced(student_client, teacher_client, school):
    assert teacher_client.post("/student/submissions/start",
                               json={"assignment_id": school.quiz.id}).status_code == 403
    assert student_client.post("/teacher/xp/award",
                               json={"student_id": school.student.id, "amount": 10}).status_code == 403


def test_clients_do_not_share_login(student_client, teacher_client, school):
    assert student_client.get("/student/notifications").status_code == 200
    assert teacher_client.get("/student/notifications").status_code == 403
    assert student_client.get("/student/notifications").status_code == 200
    assert teacher_client.get(f"/teacher/xp/{school.student.id}").status_code == 200


def test_quiz_flow(student_client, school):
    response = student_client.post("/student/submissions/start", json={"assignment_id": school.quiz.id})
    assert response.status_code == 201
    submission_id = response.get_json()["submission_id"]

    again = student_client.post("/student/submissions/start", json={"assignment_id": school.quiz.id})
    assert again.status_code == 200
    assert again.get_json()["already_existed"] is True
    assert again.get_json()["submission_id"] == submission_id

    answer = student_client.post(f"/student/submissions/{submission_id}/answer",
                                 json={"question_id": school.q1.id, "selected_option": "A"})
    assert answer.get_json()["is_correct"] is True
    assert answer.get_json()["score_earned"] == 50.0

    submitted = student_client.post(f"/student/submissions/{submission_id}/submit")
    body = submitted.get_json()
    assert submitted.status_code == 200
    assert body["xp_earned"] == 50
    assert body["percent"] == 50.0

    duplicate = student_client.post(f"/student/submissions/{submission_id}/submit")
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"] == "AlreadyFinalized"
    assert duplicate.get_json()["score"] == 50.0
    assert duplicate.get_json()["xp_earned"] == 50

    xp = student_client.get("/student/xp").get_json()
    assert xp["total_xp"] == 50
    assert xp["history"][0]["description"] == "Assignment submitted - 50%"


def test_start_errors_map_to_statuses(client_for, school):
    outsider = client_for(school.outsider)

    not_enrolled = outsider.post("/student/submissions/start", json={"assignment_id": school.quiz.id})
    assert not_enrolled.status_code == 403
    assert not_enrolled.get_json()["error"] == "NotEligible"

    missing = outsider.post("/student/submissions/start", json={"assignment_id": 9999})
    assert missing.status_code == 404

    invalid = outsider.post("/student/submissions/start", json={"assignment_id": "abc"})
    assert invalid.status_code == 400
    assert invalid.get_json()["error"] == "ValidationError"


def test_code_submission_flow(student_client, school, fake_sandbox):
    submission_id = start(student_client, school.mixed)

    response = student_client.post(f"/student/submissions/{submission_id}/code",
                                   json={"question_id": school.code_question.id, "language": "python",
                                         "source_code": "print('hello')"})
    assert response.status_code == 202
    artifact_id = response.get_json()["artifact_id"]

    result = student_client.get(f"/student/code/{artifact_id}/result").get_json()
    assert result["phase"] == "completed"
    assert result["run_status"] == "success"
    assert fake_sandbox[0]["language"] == "python3"


def test_design_and_rating_flow(student_client, teacher_client, school):
    submission_id = start(student_client, school.mixed)
    design = student_client.post(f"/student/submissions/{submission_id}/design",
                                 json={"canvas_data": {"pixels": [[0, 0, "#ff0000"]]}}).get_json()
    student_client.post(f"/student/submissions/{submission_id}/submit")

    rated = teacher_client.put(f"/teacher/designs/{design['design_id']}/rate",
                               json={"rating": 90, "comment": "Great colours"})

    assert rated.status_code == 200
    assert rated.get_json()["score"] == 90.0
    assert rated.get_json()["xp_earned"] == 90


def test_manual_grade_flow(student_client, teacher_client, school):
    submission_id = start(student_client, school.mixed)
    student_client.post(f"/student/submissions/{submission_id}/submit")

    missing_score = teacher_client.put(f"/teacher/submissions/{submission_id}/grade", json={})
    assert missing_score.status_code == 400

    graded = teacher_client.put(f"/teacher/submissions/{submission_id}/grade",
                                json={"score": 75, "feedback": "Well argued"})
    assert graded.status_code == 200
    assert graded.get_json()["xp_credited"] == 75

    regrade = teacher_client.put(f"/teacher/submissions/{submission_id}/grade", json={"score": 80})
    assert regrade.status_code == 409
    assert regrade.get_json()["error"] == "InvalidState"

    notifications = student_client.get("/student/notifications").get_json()["notifications"]
    assert len(notifications) == 1
    assert notifications[0]["type"] == "grade"


def test_award_and_inspect_xp(teacher_client, school):
    awarded = teacher_client.post("/teacher/xp/award",
                                  json={"student_id": school.student.id, "amount": 1200, "source_type": "achievement"})
    assert awarded.status_code == 200
    assert awarded.get_json()["level"] == 2

    penalty = teacher_client.post("/teacher/xp/award",
                                  json={"student_id": school.student.id, "amount": 300, "source_type": "penalty"})
    assert penalty.get_json()["amount"] == -300

    summary = teacher_client.get(f"/teacher/xp/{school.student.id}").get_json()
    assert summary["total_xp"] == 900
    assert summary["level"] == 1
    assert summary["ledger_check"]["consistent"] is True
    assert XPTransaction.query.count() == 2

    bad = teacher_client.post("/teacher/xp/award", json={"student_id": school.student.id, "amount": "lots"})
    assert bad.status_code == 400


def test_ranking(student_client, teacher_client, school):
    teacher_client.post("/teacher/xp/award", json={"student_id": school.classmate.id, "amount": 500})
    teacher_client.post("/teacher/xp/award", json={"student_id": school.student.id, "amount": 200})

    ranking = student_client.get(f"/student/ranking?class_id={school.school_class.id}").get_json()["ranking"]

    assert [row["student_id"] for row in ranking] == [school.classmate.id, school.student.id]


def test_notification_inbox(student_client, school):
    first = NotificationService.record(school.student.id, "Welcome", "Hello!")
    NotificationService.record(school.student.id, "Reminder", "Quiz tomorrow", "assignment")

    read_one = student_client.put(f"/student/notifications/{first.id}/read")
    assert read_one.get_json()["success"] is True

    read_all = student_client.put("/student/notifications/read-all")
    assert read_all.get_json()["updated"] == 1

    notifications = student_client.get("/student/notifications").get_json()["notifications"]
    assert all(item["is_read"] for item in notifications)


def test_submit_records_time_spent(student_client, school):
    submission_id = start(student_client, school.quiz)

    bad = student_client.post(f"/student/submissions/{submission_id}/submit", json={"time_spent_seconds": -1})
    assert bad.status_code == 400

    submitted = student_client.post(f"/student/submissions/{submission_id}/submit",
                                    json={"time_spent_seconds": 312})
    assert submitted.status_code == 200
    assert db.session.get(Submission, submission_id, populate_existing=True).time_spent_seconds == 312


def test_manual_grade_rejects_nan_score(student_client, teacher_client, school):
    submission_id = start(student_client, school.mixed)
    student_client.post(f"/student/submissions/{submission_id}/submit")

    response = teacher_client.put(f"/teacher/submissions/{submission_id}/grade",
                                  data='{"score": NaN}', content_type="application/json")

    assert response.status_code == 400
    assert response.get_json()["error"] == "ValidationError"


def test_teacher_executes_code(teacher_client, fake_sandbox):
    response = teacher_client.post("/teacher/code/execute",
                                   json={"language": "python", "code": "print('hello')", "stdin": ""})

    body = response.get_json()
    assert response.status_code == 200
    assert body["output"] == "hello\n"
    assert body["exit_code"] == 0
    assert body["execution_time_ms"] == 42
    assert fake_sandbox[0]["language"] == "python3"
    assert CodeArtifact.query.count() == 0


def test_execute_rejects_bad_requests(student_client, teacher_client, fake_sandbox):
    assert student_client.post("/teacher/code/execute",
                               json={"language": "python", "code": "print(1)"}).status_code == 403

    unknown = teacher_client.post("/teacher/code/execute", json={"language": "cobol", "code": "DISPLAY 1"})
    assert unknown.status_code == 400
    assert unknown.get_json()["error"] == "ValidationError"
    assert fake_sandbox == []


def test_execute_with_unreachable_sandbox(teacher_client, monkeypatch):
    def post(self, url, json=None, timeout=None):
        raise requests.Timeout("sandbox too slow")

    monkeypatch.setattr(requests.Session, "post", post)

    response = teacher_client.post("/teacher/code/execute", json={"language": "python", "code": "print(1)"})

    assert response.status_code == 503
    assert response.get_json()["error"] == "SandboxUnavailable"
