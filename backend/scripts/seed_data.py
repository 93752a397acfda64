"""Seed the database with demo users and a few weeks of plans."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date
from planner.database import SessionLocal, engine, Base
import planner.models  # noqa: F401

from planner.models.user import User
from planner.models.enums import WeeklyPlanStatus
from planner.services import temporal_calendar, weekly_plan_service


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        users = [
            User(email="planner1@company.com", name="김주간", timezone="Asia/Seoul"),
            User(email="planner2@company.com", name="이계획", timezone="UTC"),
        ]
        db.add_all(users)
        db.commit()

        # Previous, current and next week for the first user
        this_week = temporal_calendar.week_start(date.today())
        for offset, status in ((-1, WeeklyPlanStatus.COMPLETED), (0, WeeklyPlanStatus.ACTIVE), (1, WeeklyPlanStatus.DRAFT)):
            week_start = temporal_calendar.add_weeks(this_week, offset).date()
            weekly_plan_service.create_plan_for_week(
                db,
                users[0].id,
                week_start,
                weekly_goals=[
                    {"id": f"g{offset + 2}-1", "title": "주간 목표 정리", "priority": 1, "completed": offset < 0},
                    {"id": f"g{offset + 2}-2", "title": "회고 작성", "priority": 3, "completed": False},
                ],
                intentions="집중할 일 세 가지를 먼저 끝낸다",
                status=status,
            )

        print("Seed data created successfully!")
        print(f"  Users: {len(users)}")
        print("  Weekly plans: 3")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
