from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from expense_insights.api.dependencies import get_change_feed
from expense_insights.services.notifications import CLAIMS_TOPIC, ChangeFeed

router = APIRouter()


class ChangeEvent(BaseModel):
    topic: str = CLAIMS_TOPIC
    record_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


@router.post("/changes")
def publish_change(event: ChangeEvent, feed: ChangeFeed = Depends(get_change_feed)):
    delivered = feed.publish(event.topic, {"record_id": event.record_id, **event.payload})
    return {"status": "PUBLISHED", "delivered": delivered}
