"""Initialize the database - creates all tables."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from planner.database import engine, Base
import planner.models  # noqa: F401 - registers all models


def init_db():
    print("Creating planner tables (weekly plans, versions, audit log)...")
    Base.metadata.create_all(bind=engine)
    print("Database initialized successfully.")


if __name__ == "__main__":
    init_db()
