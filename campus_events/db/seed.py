"""
Default venue and resource catalogue.
"""

import logging
from typing import Dict

from campus_events.models import Resource, ResourceCategory, Venue, VenueStatus
from .database import DatabaseManager
from .repositories import ResourceRepository, VenueRepository

logger = logging.getLogger(__name__)

DEFAULT_VENUES = [
    {"name": "Main Auditorium", "capacity": 500, "type": "Auditorium",
     "features": ["Projector", "Sound System", "AC", "Stage"]},
    {"name": "Conference Hall A", "capacity": 150, "type": "Conference Hall",
     "features": ["Projector", "Whiteboard", "AC", "WiFi"]},
    {"name": "Seminar Room 101", "capacity": 60, "type": "Seminar Room",
     "features": ["Projector", "Whiteboard", "AC"]},
    {"name": "Open Amphitheater", "capacity": 300, "type": "Outdoor",
     "features": ["Stage", "Sound System"]},
    {"name": "Computer Lab 3", "capacity": 80, "type": "Lab",
     "features": ["Computers", "Projector", "AC", "WiFi"]},
]

DEFAULT_RESOURCES = [
    ("Projector", ResourceCategory.EQUIPMENT, 15, "units"),
    ("Microphone", ResourceCategory.EQUIPMENT, 25, "units"),
    ("Chairs", ResourceCategory.FACILITY, 1000, "units"),
    ("Tables", ResourceCategory.FACILITY, 200, "units"),
    ("Laptop", ResourceCategory.ITC, 50, "units"),
    ("Sound System", ResourceCategory.EQUIPMENT, 8, "sets"),
    ("Catering Service", ResourceCategory.FOOD, 5000, "servings"),
    ("Coffee Break Kit", ResourceCategory.FOOD, 500, "kits"),
    ("Banners", ResourceCategory.FACILITY, 30, "units"),
    ("Extension Cords", ResourceCategory.ITC, 100, "units"),
]


def seed_catalog(database: DatabaseManager) -> Dict[str, int]:
    """
    Load the default catalogue, skipping entries whose name already exists.

    Returns:
        Number of venues and resources inserted
    """
    inserted = {"venues": 0, "resources": 0}

    with database.get_session() as session:
        venues = VenueRepository(session)
        existing_venues = {name for (name,) in session.query(Venue.name).all()}
        for venue in DEFAULT_VENUES:
            if venue["name"] in existing_venues:
                continue
            venues.create({**venue, "availability_status": VenueStatus.AVAILABLE})
            inserted["venues"] += 1

        resources = ResourceRepository(session)
        existing_resources = {name for (name,) in session.query(Resource.name).all()}
        for name, category, quantity, unit in DEFAULT_RESOURCES:
            if name in existing_resources:
                continue
            resources.create({
                "name": name,
                "category": category,
                "total_quantity": quantity,
                "available_quantity": quantity,
                "unit": unit,
            })
            inserted["resources"] += 1

    logger.info(f"Seeded {inserted['venues']} venue(s) and {inserted['resources']} resource(s)")
    return inserted
