"""User administration API schemas."""

from booking_auth.api.v1.schemas import ApiModel


class RevokeSessionsResponse(ApiModel):
    """Result of an admin session revocation."""

    user_id: str
    revoked_refresh_tokens: int
