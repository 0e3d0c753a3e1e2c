"""Input validation for CLI arguments."""
import re
import sys

from ..domains.models import SECRET_NAME_PREFIX

# GCP Secret Manager ids: letters, digits, underscores, hyphens; at most 255 chars
SECRET_ID_PATTERN = r'^[a-zA-Z0-9_-]+$'
SECRET_ID_MAX_LENGTH = 255


def validate_profile(profile: str) -> None:
    """
    Validate that a profile name yields a valid Secret Manager secret id.

    The secret read for a profile is webflux-mongodb-rest-{profile}, so the
    profile may only contain: [a-zA-Z0-9_-]

    Args:
        profile: Profile name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not profile:
        print("Error: Profile name cannot be empty", file=sys.stderr)
        sys.exit(2)

    secret_id = SECRET_NAME_PREFIX + profile
    if not re.match(SECRET_ID_PATTERN, profile) or len(secret_id) > SECRET_ID_MAX_LENGTH:
        print(f"Error: Invalid profile '{profile}'", file=sys.stderr)
        print(f"\nThe profile is part of the secret id '{secret_id}'.", file=sys.stderr)
        print("Allowed characters: letters, numbers, underscores (_), hyphens (-)", file=sys.stderr)
        print("\nExamples of valid profiles:", file=sys.stderr)
        print("  ✓ dev", file=sys.stderr)
        print("  ✓ uat-eu", file=sys.stderr)
        print("\nExamples of invalid profiles:", file=sys.stderr)
        print("  ✗ dev.eu (contains dot)", file=sys.stderr)
        print("  ✗ dev,prod (use a single profile)", file=sys.stderr)
        sys.exit(2)
