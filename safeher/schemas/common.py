from decimal import Decimal
from typing import Annotated

from pydantic import Field, PlainSerializer

# Fixed-point coordinate rendered with 8 fractional digits, e.g. "12.97160000"
Coordinate = Annotated[Decimal, PlainSerializer(lambda v: f"{v:.8f}", return_type=str, when_used="always")]

Latitude = Annotated[float, Field(ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180, le=180, allow_inf_nan=False)]
