"""
Payloads carried inside cancellation links.

Field order is part of the link format: payloads are serialised in
declaration order with camelCase keys.
"""

import datetime
from typing import Union

from pydantic import ConfigDict, Field

from ._strict_base import StrictModel

DateType = datetime.date


class BookingCancelPayload(StrictModel):
    model_config = ConfigDict(extra="ignore")

    tenant_id: str = Field(min_length=1)
    event_id: str = Field(min_length=1)
    date: DateType


class WebinarCancelPayload(StrictModel):
    model_config = ConfigDict(extra="ignore")

    tenant_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    email: str = Field(min_length=1)


CancelTokenPayload = Union[BookingCancelPayload, WebinarCancelPayload]
