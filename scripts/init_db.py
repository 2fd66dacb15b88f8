"""Create the database tables for the configured database."""

from app import create_app
from models import db


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        print(f"Tables created for {app.config['SQLALCHEMY_DATABASE_URI']}")


if __name__ == "__main__":
    main()
