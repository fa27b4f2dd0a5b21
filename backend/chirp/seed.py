"""
Chirp Backend — Demo Data Seeder
==================================

What:  Fills an empty database with demo users, follows, posts, likes and
       comments.
How:   Goes through the real services, so every notification in the
       seeded data comes from an actual follow, like or comment.
Usage: python -m chirp.seed [--create-tables] [--users 8] [--seed 42]

All demo accounts share the password "Chirp#2026".
"""

import argparse
import asyncio
import logging
import random
import sys
from typing import List

from chirp.database import Base, async_session_factory, dispose_engine, engine
from chirp.exceptions import ConflictError
from chirp.models.user import User
from chirp.schemas.post import CreatePostRequest
from chirp.schemas.user import SignupRequest
from chirp.services.auth_service import auth_service
from chirp.services.post_service import post_service
from chirp.services.user_service import user_service

logger = logging.getLogger("chirp.seed")

DEMO_PASSWORD = "Chirp#2026"

DEMO_PEOPLE = [
    ("Ada Lovelace", "ada"),
    ("Alan Turing", "alan"),
    ("Grace Hopper", "grace"),
    ("Edsger Dijkstra", "edsger"),
    ("Barbara Liskov", "barbara"),
    ("Donald Knuth", "donald"),
    ("Margaret Hamilton", "margaret"),
    ("Ken Thompson", "ken"),
    ("Frances Allen", "frances"),
    ("Dennis Ritchie", "dennis"),
]

DEMO_POSTS = [
    "First chirp! Hello everyone.",
    "Shipping on a Friday. Wish me luck.",
    "Coffee, code, repeat.",
    "Just finished a great book on compilers.",
    "Who else is debugging at midnight?",
    "Hot take: tabs are fine.",
    "Refactoring old code feels like archaeology.",
    "Tests passed on the first try. Suspicious.",
]

DEMO_COMMENTS = [
    "Love this!",
    "So true.",
    "Haha, been there.",
    "Great point.",
    "Following for updates.",
]


async def seed(user_count: int, rng: random.Random) -> None:
    users: List[User] = []
    async with async_session_factory() as db:
        for full_name, username in DEMO_PEOPLE[:user_count]:
            try:
                user, _ = await auth_service.signup(
                    db,
                    SignupRequest(
                        full_name=full_name,
                        username=username,
                        email=f"{username}@chirp.dev",
                        password=DEMO_PASSWORD,
                    ),
                )
            except ConflictError:
                logger.error("User %s already exists; seed an empty database", username)
                raise
            users.append(user)
        await db.commit()
        logger.info("Created %d users", len(users))

        for user in users:
            others = [u for u in users if u.id != user.id]
            for target in rng.sample(others, k=min(len(others), rng.randint(1, 4))):
                await user_service.follow_or_unfollow(db, user.id, target.id)
        await db.commit()

        post_ids = []
        for text in DEMO_POSTS:
            author = rng.choice(users)
            post = await post_service.create(db, author.id, CreatePostRequest(text=text))
            post_ids.append(post.id)
        await db.commit()
        logger.info("Created %d posts", len(post_ids))

        for post_id in post_ids:
            for liker in rng.sample(users, k=rng.randint(0, len(users))):
                await post_service.like_or_unlike(db, post_id, liker.id)
            for commenter in rng.sample(users, k=rng.randint(0, 2)):
                await post_service.comment(db, post_id, commenter.id, rng.choice(DEMO_COMMENTS))
        await db.commit()

    logger.info("Seed complete. Log in as any of %s with password %s",
                ", ".join(u.username for u in users), DEMO_PASSWORD)


async def main(argv: List[str]) -> None:
    parser = argparse.ArgumentParser(description="Seed the Chirp database with demo data")
    parser.add_argument("--create-tables", action="store_true",
                        help="Run metadata.create_all() first (no Alembic)")
    parser.add_argument("--users", type=int, default=8, choices=range(2, len(DEMO_PEOPLE) + 1),
                        metavar=f"[2-{len(DEMO_PEOPLE)}]")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        if args.create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        await seed(args.users, random.Random(args.seed))
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
