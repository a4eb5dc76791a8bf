#!/usr/bin/env python3
"""
Database Seed Script
====================

Creates the tables and fills them with a small, coherent data set:

1. An admin account
2. A manager owning one team bound to a 09:00-17:00 timetable
3. Two employees, members of that team and reporting to the manager

Existing users (matched by email) are left untouched, so the script can be
run repeatedly.

Usage:
    python seed_database.py
"""

import logging
from sqlalchemy.orm import Session
from app.db.database import Base, engine, SessionLocal
from app.core.security import get_password_hash
from app.models.user import User, UserRole
from app.models.team import Team, TeamMember, Timetable

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_USERS = [
    {"name": "Ada", "surname": "Admin", "email": "admin@example.com", "password": "Admin123!",
     "role": UserRole.admin, "mobile_number": "0600000000"},
    {"name": "Alice", "surname": "Smith", "email": "alice.manager@example.com", "password": "Manager123!",
     "role": UserRole.manager, "mobile_number": "0987654321"},
    {"name": "Kevin", "surname": "Martin", "email": "kevin@example.com", "password": "Password123!",
     "role": UserRole.employee, "mobile_number": "0611223344"},
    {"name": "John", "surname": "Doe", "email": "john.employee@example.com", "password": "Employee123!",
     "role": UserRole.employee, "mobile_number": "0123456789"},
]

def _get_or_create_user(db: Session, data: dict, manager_id: int | None = None) -> User:
    user = db.query(User).filter(User.email == data["email"]).first()
    if user:
        logger.info(f"User {data['email']} already exists, skipping")
        return user

    user = User(
        name=data["name"],
        surname=data["surname"],
        email=data["email"],
        mobile_number=data["mobile_number"],
        password_hash=get_password_hash(data["password"]),
        role=data["role"],
        id_manager=manager_id,
    )
    db.add(user)
    db.flush()
    logger.info(f"Created {data['role'].value} {data['email']} (id={user.id})")
    return user

def seed(db: Session) -> dict:
    """Insert the seed data set; returns the users keyed by email."""
    admin = _get_or_create_user(db, SEED_USERS[0])
    manager = _get_or_create_user(db, SEED_USERS[1])
    employees = [_get_or_create_user(db, data, manager_id=manager.id) for data in SEED_USERS[2:]]

    team = db.query(Team).filter(Team.name == "Support", Team.id_manager == manager.id).first()
    if not team:
        timetable = Timetable(start_time="09:00", end_time="17:00")
        db.add(timetable)
        db.flush()
        team = Team(name="Support", id_manager=manager.id, id_timetable=timetable.id)
        db.add(team)
        db.flush()
        for employee in employees:
            db.add(TeamMember(id_team=team.id, id_user=employee.id))
        logger.info(f"Created team '{team.name}' with {len(employees)} members")

    db.commit()
    return {user.email: user for user in [admin, manager, *employees]}

def main():
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        try:
            seed(db)
            logger.info("Seeding completed successfully!")
        except Exception as e:
            logger.error(f"Seeding failed: {e}")
            db.rollback()
            raise

if __name__ == "__main__":
    main()
