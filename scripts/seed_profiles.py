#!/usr/bin/env python3
"""
Seed study profiles into the users table.

Usage:
    python scripts/seed_profiles.py scripts/sample_profiles.json

The file holds a JSON array of objects with "user_id" and any of
"name", "bio", "interests", "imageUrl".
"""
import os
import sys
import json
import argparse

# Load environment BEFORE any app imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from dotenv import load_dotenv
load_dotenv()

os.environ.setdefault('DYNAMODB_ENDPOINT_URL', os.getenv('AWS_ENDPOINT_URL', 'http://localhost:4566'))

from app.adapters.dynamodb import UserProfileRecord


def load_profiles(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Profiles file must contain a JSON array")
    return data


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed study profiles into DynamoDB")
    parser.add_argument("profiles", help="Path to a JSON array of profiles")
    args = parser.parse_args()

    profiles = load_profiles(args.profiles)
    written = 0
    with UserProfileRecord.batch_write() as batch:
        for item in profiles:
            if not item.get("user_id"):
                print(f"  [SKIP] entry without user_id: {item}")
                continue
            batch.save(UserProfileRecord(
                user_id=item["user_id"],
                name=item.get("name"),
                bio=item.get("bio"),
                interests=item.get("interests"),
                image_url=item.get("imageUrl"),
            ))
            written += 1

    print(f"Seeded {written}/{len(profiles)} profiles into {UserProfileRecord.Meta.table_name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
