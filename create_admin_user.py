#!/usr/bin/env python3
"""
Script to create (or reset the password of) a studio admin account

Usage: python create_admin_user.py admin@studio.com "Jane Doe"
The password is read from ADMIN_PASSWORD or prompted for.
"""

import getpass
import os
import sys

from studiodesk import models, models_appointments, models_billing, models_calendar, models_envelopes  # noqa: F401
from studiodesk.database import Base, SessionLocal, engine
from studiodesk.models import AdminUser
from studiodesk.security_utils import hash_password


def create_admin(email: str, name: str, password: str) -> None:
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()

    try:
        email = email.strip().lower()
        admin = db.query(AdminUser).filter(AdminUser.email == email).first()
        if admin:
            admin.password_hash = hash_password(password)
            admin.is_active = True
            print(f"🔄 Password reset for existing admin {email}")
        else:
            db.add(AdminUser(email=email, name=name, password_hash=hash_password(password)))
            print(f"✅ Created admin {email}")
        db.commit()
    except Exception as e:
        db.rollback()
        print(f"❌ Failed to create admin: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    admin_email = sys.argv[1]
    admin_name = sys.argv[2] if len(sys.argv) > 2 else admin_email.split("@")[0]
    admin_password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(admin_password) < 8:
        print("❌ Password must be at least 8 characters")
        sys.exit(1)

    create_admin(admin_email, admin_name, admin_password)
