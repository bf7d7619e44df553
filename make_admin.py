# make_admin.py
# Usage: flask make-admin someone@example.com [--password ...]
#    or: python make_admin.py someone@example.com [password]
import sys

from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User


def promote_to_admin(email, password=None):
    """
    Promote the user with `email` to admin, creating them first when a
    password is supplied and no such user exists. Needs an app context.
    """
    from commissions.referral_tree import ReferralTreeHelper

    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()

    if user:
        print(f"Found user id={user.id}, email={user.email}. Promoting to admin...")
    else:
        if not password:
            raise RuntimeError(f"No user with email {email}; pass a password to create one.")
        print(f"No user with email {email} found, creating a new user.")
        user = ReferralTreeHelper.register_user(email=email, password=password)

    user.is_admin = True
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise RuntimeError(f"Failed to promote {email}") from e

    print(f"User (id={user.id}, email={user.email}) is now admin.")
    return user


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python make_admin.py EMAIL [PASSWORD]")
        sys.exit(1)

    from app import create_app

    app = create_app()
    with app.app_context():
        promote_to_admin(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None)
