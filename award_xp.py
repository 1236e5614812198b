"""
Script to credit (or debit) XP to a student through the ledger
Usage: python award_xp.py <username> <amount> [source] [description]
Example: python award_xp.py maria 100 bonus "Science fair winner"
         python award_xp.py juan 50 penalty "Late delivery"
"""
import os
import sys

# Add app to path
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app
from app.models.enums import XPSource
from app.models.user import User
from app.services.errors import SubmissionError
from app.services.xp_ledger import XPLedger


def award_xp(username, amount, source, description=None):
    """Credit XP to a student's account"""
    app = create_app()

    with app.app_context():
        user = User.query.filter_by(username=username).first()

        if not user:
            print(f"❌ Error: User '{username}' not found")
            return False

        before = XPLedger.get_summary(user.id)
        print(f"\n📊 Current state of '{username}':")
        print(f"   Total XP: {before['total_xp']}")
        print(f"   Level: {before['level']}")

        try:
            result = XPLedger.award(user.id, amount, source, description=description)
        except SubmissionError as e:
            print(f"❌ Error: {e.message}")
            return False

        print(f"\n✅ {result['amount']:+d} XP ({source}) recorded!")
        print(f"\n📊 Updated state:")
        print(f"   Total XP: {result['total_xp']}")
        print(f"   Level: {result['level']}")

        check = XPLedger.verify(user.id)
        if not check['consistent']:
            print(f"⚠️  Ledger total {check['ledger_total']} != projection {check['projection_total']}")
            return False

        return True


if __name__ == '__main__':
    if len(sys.argv) < 3:
        print("Usage: python award_xp.py <username> <amount> [source] [description]")
        print(f"Sources: {', '.join(kind.value for kind in XPSource)}")
        sys.exit(1)

    username = sys.argv[1]
    try:
        amount = int(sys.argv[2])
    except ValueError:
        print("❌ Error: The amount must be an integer")
        sys.exit(1)

    source = sys.argv[3] if len(sys.argv) > 3 else 'bonus'
    description = sys.argv[4] if len(sys.argv) > 4 else None

    success = award_xp(username, amount, source, description)
    sys.exit(0 if success else 1)
