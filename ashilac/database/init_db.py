"""
Database schema bootstrap.

Creates the tables used by the services if they do not exist yet, then
checks that every critical table is present. With --seed it also inserts a
small catalogue of events and formations, since the API has no endpoint
for creating them.

Usage:
    python -m ashilac.database.init_db [--seed]
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone

from ashilac.database.db_connection import get_db

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id        SERIAL PRIMARY KEY,
    name           TEXT NOT NULL,
    email          TEXT NOT NULL UNIQUE,
    password_hash  TEXT NOT NULL,
    role           TEXT NOT NULL DEFAULT 'member',
    phone          TEXT,
    location       TEXT,
    interests      TEXT[] NOT NULL DEFAULT '{}',
    created_at     TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS events (
    event_id     SERIAL PRIMARY KEY,
    title        TEXT NOT NULL,
    description  TEXT,
    date         TIMESTAMPTZ,
    location     TEXT,
    capacity     INTEGER NOT NULL CHECK (capacity >= 0),
    price        NUMERIC(12, 2) NOT NULL DEFAULT 0,
    category     TEXT,
    image        TEXT,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS event_registrations (
    registration_id  SERIAL PRIMARY KEY,
    event_id         INTEGER NOT NULL REFERENCES events(event_id) ON DELETE CASCADE,
    user_id          INTEGER NOT NULL REFERENCES users(user_id),
    participants     INTEGER NOT NULL CHECK (participants > 0),
    registered_at    TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_event_registrations_event
    ON event_registrations (event_id);

CREATE TABLE IF NOT EXISTS formations (
    formation_id  SERIAL PRIMARY KEY,
    title         TEXT NOT NULL,
    description   TEXT,
    duration      TEXT,
    level         TEXT,
    instructor    TEXT,
    schedule      JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS formation_students (
    enrollment_id  SERIAL PRIMARY KEY,
    formation_id   INTEGER NOT NULL REFERENCES formations(formation_id) ON DELETE CASCADE,
    user_id        INTEGER NOT NULL REFERENCES users(user_id),
    progress       INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
    completed      BOOLEAN NOT NULL DEFAULT FALSE,
    enrolled_at    TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_formation_students_formation
    ON formation_students (formation_id);
"""

TABLES = ["users", "events", "event_registrations", "formations", "formation_students"]


def _sample_events():
    start = datetime.now(timezone.utc).replace(hour=18, minute=0, second=0, microsecond=0)
    return [
        ("Soirée culturelle", "Musique et danses traditionnelles.", start + timedelta(days=14),
         "Salle des fêtes", 120, 5000, "culture", "events/soiree.jpg"),
        ("Tournoi de football", "Tournoi amical inter-quartiers.", start + timedelta(days=21),
         "Stade municipal", 64, 0, "sport", "events/football.jpg"),
        ("Atelier entrepreneuriat", "Monter son projet pas à pas.", start + timedelta(days=30),
         "Maison des associations", 25, 2500, "formation", "events/atelier.jpg"),
    ]


def _sample_formations():
    return [
        ("Initiation à l'informatique", "Bureautique et internet.", "8 semaines", "debutant",
         "A. Diallo", [{"day": "Lundi", "time": "18:00"}, {"day": "Mercredi", "time": "18:00"}]),
        ("Comptabilité associative", "Tenir les comptes d'une association.", "4 semaines",
         "intermediaire", "M. Koné", [{"day": "Samedi", "time": "10:00"}]),
    ]


def seed(cur) -> None:
    """Insert the sample catalogue. Safe to call only on an empty catalogue."""
    cur.execute("SELECT COUNT(*) AS count FROM events;")
    if cur.fetchone()["count"]:
        print("Events already present, skipping seed.")
        return

    for row in _sample_events():
        cur.execute(
            """
            INSERT INTO events (title, description, date, location, capacity, price, category, image)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s);
            """,
            row,
        )

    for title, description, duration, level, instructor, schedule in _sample_formations():
        cur.execute(
            """
            INSERT INTO formations (title, description, duration, level, instructor, schedule)
            VALUES (%s, %s, %s, %s, %s, %s);
            """,
            (title, description, duration, level, instructor, json.dumps(schedule)),
        )

    print("Sample events and formations inserted.")


def init_db(with_seed: bool = False) -> bool:
    """
    Apply the schema and verify the critical tables exist.

    Returns:
        bool: True when every table was found after applying the schema.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA)

            print("Checking if critical tables exist...")
            all_found = True
            for t in TABLES:
                cur.execute("SELECT to_regclass(%s) AS oid;", (t,))
                exists = cur.fetchone()["oid"]
                print(f" - {t}: {'Found' if exists else 'MISSING'}")
                all_found = all_found and bool(exists)

            if with_seed and all_found:
                seed(cur)

    return all_found


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the Ashilac database schema.")
    parser.add_argument("--seed", action="store_true", help="insert sample events and formations")
    args = parser.parse_args()

    if not init_db(with_seed=args.seed):
        sys.exit(1)
    print("Database ready.")
