from typing import Any, Dict, Optional

from pydantic import BaseModel


class Event(BaseModel):
    """
    Data contract for all events flowing through the EventBus.

    Attributes:
        event_type (str): The type of the event (e.g., "GENERATION_STARTED").
        project_id (str, optional): Project the event concerns, when it concerns one.
        payload (Dict[str, Any]): The data associated with the event.
    """
    event_type: str
    project_id: Optional[str] = None
    payload: Dict[str, Any] = {}
