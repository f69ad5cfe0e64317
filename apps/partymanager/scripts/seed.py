from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta
from pathlib import Path

from faker import Faker

from partymanager.bookings import create_booking, list_bookings
from partymanager.config import Config
from partymanager.db import get_runner, init_db
from partymanager.eligibility import eligible_masters, eligible_players
from partymanager.exceptions import TeamValidationError
from partymanager.models import GamingSystem, Role
from partymanager.storage import SqliteRecordStore
from partymanager.teams import create_team

PRONOUNS = ["lui/lui", "lei/lei", "loro/loro"]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed Party Manager data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--bookings", type=int, default=40, help="Number of bookings")
    parser.add_argument("--teams", type=int, default=3, help="Teams to assemble from pending bookings")
    parser.add_argument("--db", default=Config.DB_PATH, help="SQLite file to fill")
    parser.add_argument("--reset", action="store_true", help="Delete existing DB before seeding")
    return parser.parse_args()


def fake_booking_fields(faker: Faker) -> dict:
    roles = random.choices(
        [[Role.player], [Role.master], [Role.master, Role.player]],
        weights=[0.7, 0.1, 0.2],
        k=1,
    )[0]
    systems = random.sample(list(GamingSystem), k=random.randint(1, 3))
    return {
        "email": faker.email(),
        "phone": faker.phone_number(),
        "first_name": faker.first_name(),
        "last_name": faker.last_name(),
        "pronouns": random.choice(PRONOUNS),
        "roles": [role.value for role in roles],
        "gaming_systems": [system.value for system in systems],
    }


def main() -> None:
    args = parse_args()
    random.seed(args.seed)
    faker = Faker("it_IT")
    Faker.seed(args.seed)

    db_path = Path(args.db)
    if args.reset and db_path.exists():
        db_path.unlink()

    init_db(str(db_path))
    store = SqliteRecordStore(get_runner(str(db_path)))
    try:
        for _ in range(args.bookings):
            create_booking(store, fake_booking_fields(faker))

        teams_created = 0
        for _ in range(args.teams):
            system = random.choice(list(GamingSystem))
            bookings = list_bookings(store)
            masters = eligible_masters(bookings, system)
            if not masters:
                continue
            master = masters[0]
            max_players = random.randint(2, 6)
            players = eligible_players(bookings, system, exclude_id=master.id)[:max_players]
            session_date = datetime.now().replace(minute=0, second=0, microsecond=0) + timedelta(
                days=random.randint(3, 30)
            )
            try:
                create_team(
                    store,
                    name=f"{faker.color_name()} {faker.last_name()}",
                    gaming_system=system,
                    master=master,
                    players=players,
                    max_players=max_players,
                    session_date=session_date,
                )
            except TeamValidationError as exc:
                print(f"Skipped team: {exc}")
                continue
            teams_created += 1

        bookings = list_bookings(store)
        print("Seed complete")
        print(f"Bookings: {len(bookings)}")
        print(f"Teams: {teams_created}")
    finally:
        store.close()


if __name__ == "__main__":
    main()
