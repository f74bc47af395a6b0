#!/usr/bin/env python
"""
Initialize the DynamoDB users table for the study buddy service.
Run this after LocalStack container starts to ensure the table exists.

Usage:
    python scripts/init_dynamodb.py
"""
import os
import sys
import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv

load_dotenv(override=True)

DYNAMODB_ENDPOINT = os.getenv('AWS_ENDPOINT_URL', 'http://localhost:4566')
REGION = os.getenv('AWS_REGION', 'us-east-1')
TABLE_NAME = os.getenv('DYNAMO_PROFILE_TABLE_NAME', 'study-buddy-users')


def create_users_table(resource) -> bool:
    """Create the users table keyed by user_id if it doesn't exist."""
    try:
        table = resource.create_table(
            TableName=TABLE_NAME,
            KeySchema=[{'AttributeName': 'user_id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'user_id', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST'
        )
        table.wait_until_exists()
        print(f"  [OK] Created {TABLE_NAME}")
        return True
    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceInUseException':
            print(f"  [OK] {TABLE_NAME} already exists")
            return True
        print(f"  [FAIL] Error creating {TABLE_NAME}: {e}")
        return False


def main():
    print("=" * 60)
    print("DYNAMODB TABLE INITIALIZATION")
    print("=" * 60)
    print(f"Endpoint: {DYNAMODB_ENDPOINT}")

    resource = boto3.resource(
        'dynamodb',
        endpoint_url=DYNAMODB_ENDPOINT,
        region_name=REGION,
        aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID', 'test'),
        aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY', 'test')
    )
    return create_users_table(resource)


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
