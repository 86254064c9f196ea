#!/usr/bin/env python3
"""
Seed reference data: a default location, the menu categories and the
restaurant config row. Safe to run repeatedly.
"""
import logging

from sqlalchemy.orm import Session

import models  # noqa: F401
from core.config import settings
from core.db import Base, db_session, engine
from core.logging_config import setup_logging
from models.location import Location
from models.menu_category import MenuCategory
from models.restaurant_config import RestaurantConfig

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = {
    "name": "Main Branch",
    "address": "123 Main Street",
    "city": "Kathmandu",
    "state": "Bagmati",
    "country": "Nepal",
    "postal_code": "44600",
    "phone_number": "+977-1-4123456",
    "email": "main@himalayan-resto.com",
    "opening_hours": "Mon-Sun: 10:00 AM - 10:00 PM",
}

MENU_CATEGORIES = [
    ("STARTER", "Appetizers and small bites to start your meal"),
    ("CHOWMEIN", "Stir-fried noodle dishes"),
    ("BIRYANI", "Aromatic rice dishes with spices"),
    ("SEKUWA/SUKUTI", "Grilled and dried meat specialties"),
    ("CURRY", "Traditional curry dishes"),
    ("THALI", "Complete meal platters with variety"),
    ("FRIED RICE", "Stir-fried rice dishes"),
    ("DUMPLING/MOMO", "Traditional Nepali dumplings - steamed, fried, or in soup"),
    ("SIDES", "Accompaniments and side dishes"),
]


def seed_location(db: Session) -> bool:
    if db.query(Location).filter(Location.name == DEFAULT_LOCATION["name"]).first():
        return False
    db.add(Location(**DEFAULT_LOCATION))
    return True


def seed_categories(db: Session) -> int:
    existing = {name for (name,) in db.query(MenuCategory.name).all()}
    created = 0
    for name, description in MENU_CATEGORIES:
        if name not in existing:
            db.add(MenuCategory(name=name, description=description))
            created += 1
    return created


def seed_restaurant_config(db: Session) -> bool:
    if db.query(RestaurantConfig).first():
        return False
    db.add(RestaurantConfig(name="Himalayan Restaurant", currency=settings.STRIPE_CURRENCY))
    return True


def run() -> None:
    Base.metadata.create_all(bind=engine)
    with db_session() as db:
        location_created = seed_location(db)
        categories_created = seed_categories(db)
        config_created = seed_restaurant_config(db)
    logger.info(
        "Seed complete: location=%s categories=%s config=%s",
        location_created, categories_created, config_created,
    )


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    run()
