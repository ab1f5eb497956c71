"""
Create a sign-in account, or reset the password of an existing one.

Usage:
    python scripts/create_user.py EMAIL PASSWORD [--name "Full Name"] [--inactive]
"""
import sys
import os
import argparse
from typing import Optional

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

load_dotenv()

from sitetrack.config import Settings
from sitetrack.db import Base, create_db_engine, create_session_factory
from sitetrack.models.models import User
from sitetrack.auth.security import get_password_hash


def create_user(settings: Settings, email: str, password: str, full_name: Optional[str] = None, active: bool = True) -> User:
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    db = create_session_factory(engine)()
    try:
        email = email.strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email, password_hash=get_password_hash(password), full_name=full_name, is_active=active)
            db.add(user)
            print(f"[CREATE] {email}")
        else:
            user.password_hash = get_password_hash(password)
            user.is_active = active
            if full_name:
                user.full_name = full_name
            print(f"[UPDATE] {email}: password reset")
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()
        engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create or reset a SiteTrack sign-in account")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", dest="full_name", default=None)
    parser.add_argument("--inactive", action="store_true", help="Create the account disabled")
    args = parser.parse_args()

    if len(args.password) < 6:
        parser.error("password must be at least 6 characters")

    user = create_user(Settings(), args.email, args.password, args.full_name, active=not args.inactive)
    print(f"✅ User #{user.id} ready ({'active' if user.is_active else 'inactive'})")


if __name__ == "__main__":
    main()
