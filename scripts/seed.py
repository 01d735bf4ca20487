"""Database seeder: demo authors and posts with generated thumbnails."""
import asyncio
import argparse
import random
import time

from blog_api.config import settings
from blog_api.database import engine, async_session, Base
from blog_api.models import Category
from blog_api.repositories import post_repository, user_repository
from blog_api.security import CredentialService
from blog_api.storage import AssetStore

# Smallest valid PNG (1x1 transparent pixel).
PIXEL_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

TOPICS = ["harvest", "markets", "classrooms", "festivals", "galleries", "portfolios", "storms"]
DEMO_PASSWORD = "secret1"


async def seed(small: bool = False):
    num_users = 3 if small else 20
    posts_per_user = 2 if small else 10

    print(f"Seeding: {num_users} authors, ~{num_users * posts_per_user} posts")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    credentials = CredentialService(settings)
    store = AssetStore(settings)
    password_hash = await credentials.hash_password(DEMO_PASSWORD)
    categories = [c.value for c in Category]

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = await user_repository.create(
                session,
                name=f"Author {i}",
                email=f"author_{i:03d}@example.com",
                password=password_hash,
            )
            users.append(user)
        print(f"  Created {len(users)} authors (password: {DEMO_PASSWORD})")

        total_posts = 0
        for user in users:
            for j in range(random.randint(1, posts_per_user)):
                topic = random.choice(TOPICS)
                thumbnail = await store.store(PIXEL_PNG, f"{topic}.png", settings.MAX_THUMBNAIL_SIZE)
                await post_repository.create(
                    session,
                    title=f"Notes on {topic} #{j}",
                    category=random.choice(categories),
                    description=f"<p>{user.name} writes about {topic}. </p>" * 5,
                    thumbnail=thumbnail,
                    creator_id=user.id,
                )
                await user_repository.increment_posts(session, user.id, 1)
                total_posts += 1

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Authors: {num_users}")
    print(f"  Posts: {total_posts}")
    print(f"  Thumbnails in: {store.root.resolve()}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
