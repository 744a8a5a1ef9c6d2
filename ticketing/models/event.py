from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase names the booking site sends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pass(CamelModel):
    id: str
    name: str
    price: float = 0.0


class EventDay(CamelModel):
    id: str
    day_number: int = Field(1, ge=1)
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    venue: Optional[str] = None
    passes: List[Pass] = []


class EventBase(CamelModel):
    title: str
    description: Optional[str] = None
    date: str
    time: str = "00:00"
    venue: str = "TBD"
    image: Optional[str] = None
    is_multi_day: bool = False
    passes: List[Pass] = []
    event_days: List[EventDay] = []


class EventCreate(EventBase):
    pass


class Event(EventBase):
    id: str

    def find_pass(self, pass_id: Optional[str]) -> Optional[Pass]:
        """Look a pass up on the event itself and then on each of its days."""
        if not pass_id:
            return None
        for candidate in self.passes:
            if candidate.id == pass_id:
                return candidate
        for day in self.event_days:
            for candidate in day.passes:
                if candidate.id == pass_id:
                    return candidate
        return None

    def day_for_pass(self, pass_id: Optional[str]) -> Optional[EventDay]:
        for day in self.event_days:
            if any(candidate.id == pass_id for candidate in day.passes):
                return day
        return None

    def first_pass(self) -> Optional[Pass]:
        if self.passes:
            return self.passes[0]
        for day in self.event_days:
            if day.passes:
                return day.passes[0]
        return None
