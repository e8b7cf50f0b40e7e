from datetime import datetime

from pydantic import BaseModel, field_serializer

from settlement_webhook.utils.time import EAT


class HealthResponse(BaseModel):
    status: str
    current_time: datetime

    @field_serializer("current_time", when_used="json")
    def serialize_eat(self, value: datetime) -> datetime:
        return value.astimezone(EAT)
