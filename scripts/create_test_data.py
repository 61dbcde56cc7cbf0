#!/usr/bin/env python3
"""
Test Data Script for the Tubely upload service.

Inserts sample video records for a user and prints a bearer token for that
user, so the upload endpoints can be exercised locally:

    python scripts/create_test_data.py --count 2
    curl -X POST -H "Authorization: Bearer $TOKEN" \\
         -F "thumbnail=@thumb.png;type=image/png" \\
         http://localhost:8091/api/thumbnail_upload/$VIDEO_ID

Options:
    --user-id UUID   Owner of the created videos (default: random)
    --count INT      Number of videos to create (default: 1)
    --title TEXT     Title prefix (default: "Sample video")
    --clean          Delete the user's existing videos first
    --verbose        Display detailed operation logs

Connection settings (MONGODB_URI, MONGODB_DB_NAME, JWT_SECRET, ...) are read
through the application's Settings, including the `.env` file.
"""

import argparse
import sys
import uuid

from datetime import timedelta

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from app.config import get_settings
from app.core.auth import make_jwt
from app.core.database import VIDEOS_COLLECTION
from app.models.video import Video


CONNECTION_TIMEOUT_MS = 5000


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Create sample Tubely videos and a bearer token",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python create_test_data.py                        # One video, random user
    python create_test_data.py --count 3              # Three videos
    python create_test_data.py --user-id <uuid> --clean
        """,
    )
    parser.add_argument(
        "--user-id",
        type=uuid.UUID,
        default=None,
        help="Owner of the created videos (default: random UUID)",
    )
    parser.add_argument("--count", type=int, default=1, help="Number of videos (default: 1)")
    parser.add_argument(
        "--title", default="Sample video", help='Title prefix (default: "Sample video")'
    )
    parser.add_argument(
        "--clean", action="store_true", help="Delete the user's existing videos first"
    )
    parser.add_argument("--verbose", action="store_true", help="Display detailed operation logs")
    return parser.parse_args()


def main() -> int:
    """
    Entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_arguments()
    if args.count < 1:
        print("--count must be at least 1", file=sys.stderr)
        return 2

    settings = get_settings()
    user_id = args.user_id or uuid.uuid4()

    client: MongoClient = MongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
        tz_aware=True,
    )
    try:
        client.admin.command("ping")
        videos = client[settings.mongodb_db_name][VIDEOS_COLLECTION]

        if args.clean:
            result = videos.delete_many({"user_id": str(user_id)})
            if args.verbose:
                print(f"Deleted {result.deleted_count} existing videos")

        created: list[Video] = []
        for index in range(1, args.count + 1):
            video = Video(
                user_id=user_id,
                title=f"{args.title} {index}" if args.count > 1 else args.title,
                description="Created by create_test_data.py",
            )
            videos.insert_one(video.to_document())
            created.append(video)
            if args.verbose:
                print(f"Inserted video {video.id}")

    except (ServerSelectionTimeoutError, ConnectionFailure) as e:
        print(f"Could not connect to MongoDB at {settings.mongodb_uri}: {e}", file=sys.stderr)
        return 1
    except PyMongoError as e:
        print(f"MongoDB error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    token = make_jwt(
        user_id,
        settings.jwt_secret,
        timedelta(hours=settings.jwt_expiration_hours),
        issuer=settings.jwt_issuer,
    )

    print("=" * 60)
    print(f"User ID:  {user_id}")
    for video in created:
        print(f"Video ID: {video.id}  ({video.title})")
    print(f"Token:    {token}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
