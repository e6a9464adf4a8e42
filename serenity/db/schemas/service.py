from pydantic import BaseModel, Field, model_validator

from .common import Money


def _check_price_lists(durations, prices) -> None:
    if durations is None and prices is None:
        return
    if durations is None or prices is None:
        raise ValueError("durations and prices must be supplied together")
    if len(durations) != len(prices):
        raise ValueError("durations and prices must have the same length")
    if not durations:
        raise ValueError("durations and prices must not be empty")


class ServiceCreate(BaseModel):
    service_id: str | None = Field(default=None, min_length=1, max_length=50)
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    duration: int | None = Field(default=None, ge=15, le=300)
    price: Money | None = None
    durations: list[int] | None = None
    prices: list[Money] | None = None
    is_popular: bool = False

    @model_validator(mode="after")
    def check_pricing(self):
        _check_price_lists(self.durations, self.prices)
        if self.durations:
            if self.duration is None:
                self.duration = self.durations[0]
            if self.price is None:
                self.price = self.prices[0]
        if self.duration is None or self.price is None:
            raise ValueError("duration and price are required")
        if not 15 <= self.duration <= 300:
            raise ValueError("Duration must be between 15 and 300 minutes")
        return self


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1)
    duration: int | None = Field(default=None, ge=15, le=300)
    price: Money | None = None
    durations: list[int] | None = None
    prices: list[Money] | None = None
    is_popular: bool | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def check_pricing(self):
        _check_price_lists(self.durations, self.prices)
        return self
