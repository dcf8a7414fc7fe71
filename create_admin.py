"""Grant the admin role to an existing profile.

Usage: python create_admin.py someone@example.org
The person must have signed in once so their profile exists.
"""
import sys

from sqlmodel import Session, select

from app.db.db import create_db_and_tables, engine
from app.models.profile import Profile
from app.models.user_role import UserRole


def main(email: str) -> int:
    create_db_and_tables()

    with Session(engine) as session:
        profile = session.exec(select(Profile).where(Profile.email == email.lower().strip())).first()
        if not profile:
            print(f"No profile with email {email}. Sign in once first.")
            return 1

        record = session.exec(select(UserRole).where(UserRole.user_id == profile.id)).first()
        if record:
            print(f"User {email} already has a role record. Updating role to admin.")
            record.role = "admin"
        else:
            record = UserRole(user_id=profile.id, role="admin")

        session.add(record)
        session.commit()
        print("Admin granted:", profile.email)

    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(main(sys.argv[1]))
