"""
Database initialization script
Run with: python init_db.py
"""

from app import create_app
from models import db, init_default_data


def initialize_database():
    """Initialize database tables and default data"""
    app = create_app()
    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print("Initializing default data...")
        init_default_data()

        print("Database initialized successfully!")
        print("Default admin username: admin (password from ADMIN_PASSWORD, default admin123)")


if __name__ == "__main__":
    initialize_database()
