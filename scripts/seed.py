"""Development data seeder for the blog API.

Drops and recreates every table, then fills it with users (all sharing one
known password), categories, articles and comments.  Every seeded user can
log in with ``--password``.
"""
import asyncio
import argparse
import random
import time

import bcrypt
from sqlalchemy import select

from blog_api.config import settings
from blog_api.database import engine, async_session, Base
from blog_api.models import User, Article, Comment, Category

CATEGORIES = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
              "react", "typescript", "aws", "devops", "testing", "performance",
              "security", "microservices", "graphql", "rest-api"]


async def seed(small: bool = False, password: str = "password123"):
    num_users = 10 if small else 50
    num_articles = 100 if small else 10000
    max_comments_per_article = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles, "
          f"up to {num_articles * max_comments_per_article} comments")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # One hash for everybody; hashing per user would dominate the run time.
    password_hash = bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt(settings.BCRYPT_ROUNDS)
    ).decode("utf-8")

    async with async_session() as session:
        categories = [Category(name=name) for name in CATEGORIES]
        session.add_all(categories)
        await session.flush()
        print(f"  Created {len(categories)} categories")

        users = [
            User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password_hash=password_hash,
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users")

        batch_size = 500
        total_comments = 0
        last_id = 0
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                topic = random.choice(CATEGORIES)
                article = Article(
                    title=f"Article {i}: How to optimize {topic} applications",
                    content=f"This is the full content of article {i}. " * 20,
                    view_count=random.randint(0, 10000),
                    author_id=random.choice(users).id,
                )
                article.categories = random.sample(categories, k=random.randint(1, 4))
                session.add(article)
            await session.flush()

            result = await session.execute(
                select(Article.id).where(Article.id > last_id).order_by(Article.id)
            )
            article_ids = [row[0] for row in result.all()]
            last_id = article_ids[-1]

            for article_id in article_ids:
                for _ in range(random.randint(1, max_comments_per_article)):
                    session.add(Comment(
                        content="Great article! Very helpful for understanding the topic.",
                        author_id=random.choice(users).id,
                        article_id=article_id,
                    ))
                    total_comments += 1
            await session.flush()

            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users} (password: {password!r})")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")
    print(f"  Categories: {len(CATEGORIES)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    parser.add_argument("--password", default="password123", help="Password for every seeded user")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, password=args.password))


if __name__ == "__main__":
    main()
