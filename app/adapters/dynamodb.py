"""DynamoDB adapter for user profile reads."""
import logging
import os
from typing import Any, List, Optional

from dotenv import load_dotenv
from pynamodb.attributes import UnicodeAttribute, ListAttribute
from pynamodb.models import Model

from app.schemas.profile import DEFAULT_NAME, UserProfile

load_dotenv()

logger = logging.getLogger(__name__)


class UserProfileRecord(Model):
    """PynamoDB model for the users table.

    Every attribute is nullable: records are written by the client apps and
    may be incomplete, so reads fall back to defaults in `to_profile`.
    """

    class Meta:
        table_name = os.getenv('DYNAMO_PROFILE_TABLE_NAME', 'study-buddy-users')
        # Support both AWS_DEFAULT_REGION and AWS_REGION (fallback)
        region = os.getenv('AWS_DEFAULT_REGION') or os.getenv('AWS_REGION', 'us-east-1')
        # Only set host for local development (LocalStack)
        host = os.getenv('DYNAMODB_ENDPOINT_URL') or os.getenv('AWS_ENDPOINT_URL')
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    user_id = UnicodeAttribute(hash_key=True)
    name = UnicodeAttribute(null=True)
    bio = UnicodeAttribute(null=True)
    interests = ListAttribute(null=True)
    image_url = UnicodeAttribute(null=True, attr_name='imageUrl')

    def to_profile(self) -> UserProfile:
        """Convert to the domain snapshot, applying field defaults."""
        return build_profile(
            self.user_id,
            name=self.name,
            bio=self.bio,
            interests=self.interests,
            image_url=self.image_url,
        )


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def build_profile(
    user_id: str,
    name: Any = None,
    bio: Any = None,
    interests: Any = None,
    image_url: Any = None,
) -> UserProfile:
    """Build a UserProfile from raw stored fields, reading each one defensively."""
    if isinstance(interests, (list, tuple)):
        clean_interests = tuple(i for i in interests if isinstance(i, str))
    else:
        clean_interests = ()
    return UserProfile(
        id=user_id,
        name=_text(name, DEFAULT_NAME),
        bio=_text(bio, ""),
        interests=clean_interests,
        image_url=_text(image_url, ""),
    )


class DynamoProfileStore:
    """Profile store backed by the DynamoDB users table."""

    def __init__(self, model=UserProfileRecord):
        self.model = model

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Key lookup. Returns None when the record does not exist."""
        try:
            record = self.model.get(user_id)
        except self.model.DoesNotExist:
            logger.info(f"Profile not found: {user_id}")
            return None
        return record.to_profile()

    def list_profiles(self) -> List[UserProfile]:
        """Full-table scan, in scan order."""
        profiles = [record.to_profile() for record in self.model.scan()]
        logger.debug(f"Scanned {len(profiles)} profiles from {self.model.Meta.table_name}")
        return profiles


# Singleton instance
_profile_store: Optional[DynamoProfileStore] = None


def get_profile_store() -> DynamoProfileStore:
    """Get or create the profile store singleton."""
    global _profile_store
    if _profile_store is None:
        _profile_store = DynamoProfileStore()
    return _profile_store
