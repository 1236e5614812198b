"""
Initialize database and create demo data
"""
import os
import sys
from datetime import datetime, timedelta

# Add app to path
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app, db
from app.models.assignment import Assignment, AssignmentQuestion
from app.models.enums import AssignmentStatus, QuestionType
from app.models.question import Question, QuestionOption
from app.models.school_class import ClassStudent, SchoolClass
from app.models.student_xp import StudentXP
from app.models.subject import Subject
from app.models.user import User


def _get_or_create_user(username, role, display_name, password):
    user = User.query.filter_by(username=username).first()
    if not user:
        print(f"Creating {role}: {username}...")
        user = User(username=username, role=role, display_name=display_name)
        user.set_password(password)  # Change this in production!
        db.session.add(user)
        db.session.flush()
    if role == 'student' and not StudentXP.query.filter_by(student_id=user.id).first():
        db.session.add(StudentXP(student_id=user.id))
    return user


def _demo_assignment(teacher, school_class, subject):
    """Quiz with two objective questions, one open question and one code question"""
    if Assignment.query.filter_by(title='Demo Quiz').first():
        return

    print("Creating demo assignment...")
    mc = Question(teacher_id=teacher.id, subject_id=subject.id, title='Binary',
                  content='What is 1010 in decimal?',
                  question_type=QuestionType.MULTIPLE_CHOICE.value, points=25,
                  explanation='1010b = 8 + 2 = 10')
    mc.options = [
        QuestionOption(option_letter='A', content='8', order_index=0),
        QuestionOption(option_letter='B', content='10', is_correct=True, order_index=1),
        QuestionOption(option_letter='C', content='12', order_index=2),
    ]
    tf = Question(teacher_id=teacher.id, subject_id=subject.id, title='Python lists',
                  content='Python lists are mutable.',
                  question_type=QuestionType.TRUE_FALSE.value, points=25)
    tf.options = [
        QuestionOption(option_letter='T', content='True', is_correct=True, order_index=0),
        QuestionOption(option_letter='F', content='False', order_index=1),
    ]
    open_question = Question(teacher_id=teacher.id, subject_id=subject.id, title='Algorithms',
                             content='Explain what an algorithm is.',
                             question_type=QuestionType.OPEN.value, points=25)
    code = Question(teacher_id=teacher.id, subject_id=subject.id, title='Hello',
                    content='Print "Hello, Nexus!"',
                    question_type=QuestionType.CODE.value, points=25,
                    config={'stdin': '', 'expected_output': 'Hello, Nexus!'})

    assignment = Assignment(
        teacher_id=teacher.id, class_id=school_class.id, subject_id=subject.id,
        title='Demo Quiz', assignment_type='quiz', status=AssignmentStatus.PUBLISHED.value,
        max_score=100, xp_reward=100, ends_at=datetime.utcnow() + timedelta(days=30)
    )
    for index, question in enumerate([mc, tf, open_question, code]):
        assignment.questions.append(AssignmentQuestion(question=question, order_index=index))
    db.session.add(assignment)


def init_database():
    """Initialize database and create tables"""
    app = create_app()

    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        _get_or_create_user('admin', 'admin', 'Administrator', 'admin123')
        teacher = _get_or_create_user('prof', 'teacher', 'Professor', 'professor123')

        subject = Subject.query.filter_by(code='PROG').first()
        if not subject:
            subject = Subject(name='Programming', code='PROG')
            db.session.add(subject)

        school_class = SchoolClass.query.filter_by(code='1A').first()
        if not school_class:
            school_class = SchoolClass(name='1st Year A', code='1A')
            db.session.add(school_class)
        db.session.flush()

        for username, display_name in [('maria', 'Maria'), ('joao', 'João'), ('lucia', 'Lúcia')]:
            student = _get_or_create_user(username, 'student', display_name, 'student123')
            if not ClassStudent.is_enrolled(student.id, school_class.id):
                db.session.add(ClassStudent(class_id=school_class.id, student_id=student.id))

        _demo_assignment(teacher, school_class, subject)

        db.session.commit()
        print("\nDatabase initialized successfully!")
        print("\nDemo users created:")
        print("Admin: username='admin', password='admin123'")
        print("Teacher: username='prof', password='professor123'")
        print("Students: username='maria/joao/lucia', password='student123'")
        print("\nIMPORTANT: Change these passwords in production!")


if __name__ == '__main__':
    init_database()
