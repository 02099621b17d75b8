"""User profile and credit balance."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from ..enums import SubscriptionStatus, SubscriptionTier
from .base import CamelModel, now_ms

GUEST_STARTING_CREDITS = 50.0


class UserProfile(CamelModel):
    """Identity, subscription, and the non-negative credit balance."""

    id: Optional[str] = None
    name: str = "Guest Writer"
    bio: str = "A traveler in the realm of imagination."
    avatar_color: str = "#60A5FA"
    avatar_url: Optional[str] = None
    joined_date: int = Field(default_factory=now_ms)
    credits: float = Field(GUEST_STARTING_CREDITS, ge=0)
    stripe_customer_id: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    is_admin: bool = False

    @property
    def tier(self) -> str:
        return self.subscription_tier.value
