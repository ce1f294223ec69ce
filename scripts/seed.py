"""Seed the blog database with users, articles and page views for local use."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timezone, timedelta

from blogcms.database import engine, async_session, Base
from blogcms.models import Article, PageView, Tag, User
from blogcms.security import hash_password

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance"]

USER_AGENTS = [
    ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
     "Chrome/120.0.0.0 Safari/537.36", "desktop", "Windows 10", "Chrome 120.0.0"),
    ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
     "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1", "mobile", "iOS 17.0", "Mobile Safari 17.0"),
    ("Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
     "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1", "tablet", "iOS 16.0", "Mobile Safari 16.0"),
]

async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_articles = 50 if small else 5000
    max_views_per_article = 5 if small else 40

    print(f"Seeding: {num_users} users, {num_articles} articles, up to {max_views_per_article} views each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(tags)
        await session.flush()
        print(f"  Created {len(tags)} tags")

        # Every seeded account shares one password so it can log in.
        password_hash = hash_password("password123")
        users = []
        for i in range(num_users):
            user = User(name=f"User {i}", username=f"user_{i:04d}", password_hash=password_hash)
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        now = datetime.now(timezone.utc)
        total_views = 0
        for i in range(num_articles):
            created = now - timedelta(days=random.randint(0, 365))
            article = Article(
                title=f"Article {i}: How to optimize {random.choice(TAGS)} applications",
                content=f"This is the full content of article {i}. " * 20,
                status="published" if random.random() > 0.2 else "draft",
                author_id=random.choice(users).id,
                created_at=created,
                updated_at=created,
            )
            article.tags = random.sample(tags, k=random.randint(1, 3))
            session.add(article)
            await session.flush()

            if article.status != "published":
                continue
            for _ in range(random.randint(0, max_views_per_article)):
                ua, device_type, os_name, browser = random.choice(USER_AGENTS)
                session.add(PageView(
                    article_id=article.id,
                    viewed_at=created + timedelta(minutes=random.randint(0, 60 * 24 * 30)),
                    ip_address=f"10.0.{random.randint(0, 255)}.{random.randint(1, 254)}",
                    user_agent=ua,
                    device_type=device_type,
                    device_os=os_name,
                    device_browser=browser,
                ))
                total_views += 1

            if i and i % 500 == 0:
                await session.flush()
                print(f"  {i} articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users} (password: password123)")
    print(f"  Articles: {num_articles}")
    print(f"  Page views: {total_views}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (50 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
