"""Database package for MongoDB operations using Beanie ODM.

Modules:
    manager: DatabaseManager singleton for connection handling
    models: Beanie Document models for workouts, routes and jobs

Usage:
    from db.models import Workout

    workouts = await Workout.find_all().sort("-start_time").to_list()
"""

from db.manager import DatabaseManager, db_manager
from db.models import ALL_DOCUMENT_MODELS, Job, Workout, WorkoutRoute

__all__ = [
    "ALL_DOCUMENT_MODELS",
    "DatabaseManager",
    "Job",
    "Workout",
    "WorkoutRoute",
    "db_manager",
]
