"""
Force code artifacts that never got a sandbox result into the timeout state
Usage: python sweep_code_artifacts.py [max_age_seconds]
Meant to run periodically (cron / container scheduler).
"""
import os
import sys

# Add app to path
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app
from app.services.code_evaluation import CodeEvaluationClient


def sweep(max_age_seconds=None):
    app = create_app()

    with app.app_context():
        swept = CodeEvaluationClient().sweep_stale(max_age_seconds)
        print(f"✅ {swept} stale artifact(s) moved to timeout")
        return swept


if __name__ == '__main__':
    max_age = None
    if len(sys.argv) > 1:
        try:
            max_age = int(sys.argv[1])
        except ValueError:
            print("❌ Error: max_age_seconds must be an integer")
            sys.exit(1)

    sweep(max_age)
