from typing import Annotated, Literal

from pydantic import Field

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

TimeOfDay = Annotated[str, Field(pattern=TIME_OF_DAY_PATTERN)]
Money = Annotated[float, Field(ge=0)]
PaymentStatus = Literal["pending", "paid", "refunded"]
