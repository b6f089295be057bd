from pydantic import Field

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionPayload(BaseModel):
    """Browser PushSubscription.toJSON() shape"""

    endpoint: str = Field(..., min_length=1, max_length=1000)
    keys: PushSubscriptionKeys


class SubscribeRequest(BaseModel):
    subscription: PushSubscriptionPayload


class UnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


class TestPushRequest(BaseModel):
    message: str = Field("Test notification from LifeStock!", max_length=500)
