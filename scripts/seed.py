"""Database seeder for local forum development."""
import asyncio
import argparse
import random
import time
from datetime import timedelta

from forum.database import engine, async_session, Base
from forum.models import (
    Banner,
    BannerPosition,
    Poll,
    PollItem,
    Post,
    PrivateMessage,
    PrivateMessageStatus,
    Topic,
    User,
    utcnow,
)
from forum.security import activation_key, hash_password

SUBJECTS = ["python", "postgresql", "redis", "docker", "testing", "performance",
            "security", "hiking", "cooking", "music", "books", "travel"]

POLL_ITEMS = ["Yes", "No", "Maybe", "Only on weekends"]


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_topics = 10 if small else 1000
    max_replies = 3 if small else 20
    num_messages = 10 if small else 500

    print(f"Seeding: {num_users} users, {num_topics} topics, {num_messages} private messages")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # Everyone shares the password "password"
        password = hash_password("password")
        users = []
        for i in range(num_users):
            user = User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password=password,
                signature=f"-- user {i}",
                enabled=i % 10 != 9,
                uuid=activation_key(),
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        total_posts = 0
        now = utcnow()
        for i in range(num_topics):
            author = random.choice(users)
            subject = random.choice(SUBJECTS)
            created = now - timedelta(days=random.randint(0, 365))
            topic = Topic(title=f"Topic {i}: thoughts on {subject}", author=author, created_at=created)
            topic.posts.append(Post(body=f"Let's talk about {subject}.", author=author, created_at=created))
            for _ in range(random.randint(0, max_replies)):
                topic.posts.append(Post(body=f"Reply about {subject}.", author=random.choice(users)))
            total_posts += len(topic.posts)

            if i % 10 == 0:
                topic.poll = Poll(
                    title=f"Do you like {subject}?",
                    ending_date=now + timedelta(days=random.randint(-30, 30)),
                    items=[PollItem(name=name, votes_count=random.randint(0, 50)) for name in POLL_ITEMS],
                )
            session.add(topic)
        await session.flush()
        print(f"  Created {num_topics} topics, {total_posts} posts")

        statuses = list(PrivateMessageStatus)
        for i in range(num_messages):
            author, recipient = random.sample(users, k=2)
            status = random.choice(statuses)
            session.add(PrivateMessage(
                title=f"Message {i}",
                body=f"Hello {recipient.username}, this is message {i}.",
                author=author,
                recipient=recipient,
                status=status,
                read=status != PrivateMessageStatus.DRAFT and random.random() > 0.5,
            ))
        print(f"  Created {num_messages} private messages")

        for position in BannerPosition:
            session.add(Banner(
                uuid=activation_key(),
                position=position,
                content=f"<p>Welcome to the forum ({position.value.lower()} banner)</p>",
            ))

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the forum database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (10 topics)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
