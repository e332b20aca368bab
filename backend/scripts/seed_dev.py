"""
Seed script for local dev: one client with a public "demo" bucket and a sample file.
Prints the client credentials (the secret is not recoverable later).
Run from backend/: python scripts/seed_dev.py
"""
import asyncio
import os
import sys

from sqlalchemy import select

# Add parent to path so filebucket is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filebucket.core.security import generate_client_credentials, hash_secret
from filebucket.db import Bucket, Client, File, async_session_factory, create_schema, engine
from filebucket.db.models import utcnow
from filebucket.services import paths
from filebucket.services.storage import get_storage

SAMPLE_KEY = "public/hello.txt"
SAMPLE_CONTENT = b"Hello from filebucket\n"


async def seed():
    await create_schema()

    async with async_session_factory() as db:
        r = await db.execute(select(Client).where(Client.name == "dev"))
        if r.scalar_one_or_none():
            print("Already seeded. Skip.")
            return

        client_id, client_secret = generate_client_credentials()
        client = Client(name="dev", client_id=client_id, client_secret_hash=hash_secret(client_secret))
        db.add(client)
        await db.flush()
        bucket = Bucket(
            name="demo",
            client_id=client_id,
            cors_policy=[{"AllowedOrigins": ["*"], "AllowedMethods": ["GET"], "AllowedHeaders": [], "ExposeHeaders": []}],
            public_paths=["public/*"],
            archived=False,
        )
        db.add(bucket)
        await db.flush()

        written = get_storage().write_bytes(paths.resolve(client.name, bucket.name, SAMPLE_KEY), SAMPLE_CONTENT)
        db.add(
            File(
                file_name="hello.txt",
                file_size=written,
                mimetype="text/plain",
                client_id=client_id,
                bucket_id=bucket.id,
                key=SAMPLE_KEY,
                owner_entity_type="seed",
                owner_entity_id="dev",
                uploaded_at=utcnow(),
            )
        )
        await db.commit()
    await engine.dispose()

    print("Seeded client 'dev' with bucket 'demo'.")
    print(f"  client_id:     {client_id}")
    print(f"  client_secret: {client_secret}")
    print(f"  public file:   /files/demo/{SAMPLE_KEY}")


if __name__ == "__main__":
    asyncio.run(seed())
