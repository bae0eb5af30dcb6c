#!/usr/bin/env python
"""
Seed Data
Populate the database with a demo user, medications, schedules and dose history
"""

import sys
import os
import argparse
import logging
import random
from datetime import datetime, timedelta, date
from typing import List

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, engine, Base, drop_db, DatabaseHealthCheck
from models import User, Medication, Schedule, DoseLog, DoseLogStatus, MedicationForm
from tools.dose_types import TimingConfig
from tools.dose_classifier import taken_timeliness
from tools.schedule_expander import sunday_weekday


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@dosekeeper.app"

DEMO_MEDICATIONS = [
    {
        "name": "Metformin",
        "dosage": "1000mg",
        "form": MedicationForm.PILL,
        "instructions": "Take with meals",
        "frequency_type": "Twice daily",
        "pills_remaining": 40,
        "total_pills": 60,
        "refill_reminder_threshold": 10,
        "times": ["08:00", "18:00"],
        "days": None,
        "with_food": True,
        "rate": 0.88,
    },
    {
        "name": "Lisinopril",
        "dosage": "20mg",
        "form": MedicationForm.PILL,
        "instructions": "Take in the morning",
        "frequency_type": "Once daily",
        "pills_remaining": 6,
        "total_pills": 30,
        "refill_reminder_threshold": 7,
        "times": ["08:00"],
        "days": None,
        "with_food": False,
        "rate": 0.93,
    },
    {
        "name": "Vitamin D",
        "dosage": "50000 IU",
        "form": MedicationForm.CAPSULE,
        "instructions": "Weekly, with a fatty meal",
        "frequency_type": "Weekly",
        "pills_remaining": 12,
        "total_pills": 12,
        "refill_reminder_threshold": 2,
        "times": ["12:00"],
        "days": [0],
        "with_food": True,
        "rate": 0.80,
    },
]


def create_tables():
    """Create all database tables"""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created successfully")


def seed_demo_user(db) -> User:
    """Create the demo user, or return it if it already exists"""
    existing = db.query(User).filter(User.email == DEMO_EMAIL).first()
    if existing:
        logger.info("Demo user already exists")
        return existing

    user = User(display_name="Demo User", email=DEMO_EMAIL, external_id="demo")
    db.add(user)
    db.flush()
    logger.info(f"Created user: {user.display_name} (ID: {user.id})")
    return user


def seed_medications(db, user_id: int, history_days: int) -> List[Medication]:
    """Add the demo medications with their schedules"""
    logger.info("Adding medications...")
    medications = []

    for data in DEMO_MEDICATIONS:
        medication = Medication(
            user_id=user_id,
            name=data["name"],
            dosage=data["dosage"],
            form=data["form"],
            instructions=data["instructions"],
            frequency_type=data["frequency_type"],
            pills_remaining=data["pills_remaining"],
            total_pills=data["total_pills"],
            refill_reminder_threshold=data["refill_reminder_threshold"],
            start_date=date.today() - timedelta(days=history_days),
            active=True,
        )
        db.add(medication)
        db.flush()

        for time_of_day in data["times"]:
            medication.schedules.append(Schedule(
                time_of_day=time_of_day,
                days_of_week=data["days"],
                with_food=data["with_food"],
            ))
        db.flush()

        medications.append(medication)
        logger.info(f"  Added: {medication.name} ({medication.dosage}) at {', '.join(data['times'])}")

    return medications


def seed_dose_history(db, medications: List[Medication], days: int = 30) -> int:
    """Log taken/skipped doses for past days; unlogged doses stay missed"""
    logger.info(f"Seeding {days} days of dose history...")

    random.seed(42)
    today = date.today()
    rates = {data["name"]: data["rate"] for data in DEMO_MEDICATIONS}
    created = 0

    for medication in medications:
        timing = TimingConfig.for_medication(medication)
        rate = rates.get(medication.name, 0.85)

        for day_offset in range(1, days + 1):
            day = today - timedelta(days=day_offset)

            for schedule in medication.schedules:
                if schedule.days_of_week is not None and sunday_weekday(day) not in schedule.days_of_week:
                    continue

                hour, minute = (int(part) for part in schedule.time_of_day.split(":"))
                scheduled = datetime(day.year, day.month, day.day, hour, minute)
                roll = random.random()

                if roll < rate:
                    taken_at = scheduled + timedelta(minutes=random.randint(-10, 90))
                    log = DoseLog(
                        medication_id=medication.id,
                        schedule_id=schedule.id,
                        scheduled_time=scheduled,
                        status=DoseLogStatus.TAKEN,
                        taken_at=taken_at,
                        timeliness=taken_timeliness(
                            scheduled,
                            taken_at,
                            timing.grace_period_minutes,
                            timing.missed_dose_cutoff_minutes
                        ).value,
                    )
                elif roll < rate + 0.04:
                    log = DoseLog(
                        medication_id=medication.id,
                        schedule_id=schedule.id,
                        scheduled_time=scheduled,
                        status=DoseLogStatus.SKIPPED,
                        notes="Seeded skip",
                    )
                else:
                    continue

                db.add(log)
                created += 1

    db.flush()
    logger.info(f"Created {created} dose logs")
    return created


def seed_all(clear_existing: bool = False, days: int = 30):
    """Run all seed operations"""
    if clear_existing:
        logger.info("Clearing existing data...")
        drop_db()

    create_tables()

    db = SessionLocal()

    try:
        user = seed_demo_user(db)
        db.commit()

        if db.query(Medication).filter(Medication.user_id == user.id).count():
            logger.info("Demo medications already present, skipping")
            return

        medications = seed_medications(db, user.id, history_days=days)
        db.commit()

        seed_dose_history(db, medications, days=days)
        db.commit()

        counts = DatabaseHealthCheck.get_table_counts()
        logger.info(f"Seeding complete: {counts}")
        logger.info(f"Demo user ID: {user.id} ({user.email})")

    except Exception as e:
        db.rollback()
        logger.error(f"Error during seeding: {e}")
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="Seed the database with demo DoseKeeper data"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear existing data before seeding"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Days of dose history to generate"
    )

    args = parser.parse_args()

    seed_all(clear_existing=args.clear, days=args.days)


if __name__ == "__main__":
    main()
