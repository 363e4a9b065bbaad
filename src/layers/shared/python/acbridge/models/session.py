"""Server-side visitor session holding captured attribution.

The session id travels in the ``acbridge_sid`` cookie.

DynamoDB keys:
    PK: SESSION#{session_id}
    SK: ATTRIBUTION
"""

from pydantic import Field

from acbridge.models.attribution import AttributionState
from acbridge.models.base import BaseModel, generate_ulid


class VisitorSession(BaseModel):
    """Attribution stored for one browser session."""

    session_id: str = Field(default_factory=generate_ulid)
    attribution: AttributionState | None = None

    # DynamoDB TTL attribute (epoch seconds); housekeeping only, freshness is
    # checked against attribution.timestamp on read
    ttl: int | None = None

    def get_pk(self) -> str:
        """Get the partition key."""
        return f"SESSION#{self.session_id}"

    def get_sk(self) -> str:
        """Get the sort key."""
        return "ATTRIBUTION"
