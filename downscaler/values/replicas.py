"""Replica targets applied while a workload is downscaled."""

import re
from typing import Literal, Union

from pydantic import BaseModel, Field

from downscaler.values.errors import InvalidReplicasError


class AbsoluteReplicas(BaseModel):
    """A fixed replica count."""

    kind: Literal["absolute"] = "absolute"
    value: int = Field(ge=0, description="Replica count")

    model_config = {"frozen": True}

    def as_int(self) -> int:
        return self.value

    def as_int_or_str(self) -> int:
        """Value in the shape of a Kubernetes IntOrString."""
        return self.value

    def __str__(self) -> str:
        return str(self.value)


class PercentageReplicas(BaseModel):
    """A replica target relative to the workload's own replica count."""

    kind: Literal["percentage"] = "percentage"
    value: int = Field(ge=0, le=100, description="Percentage between 0 and 100")

    model_config = {"frozen": True}

    def as_int(self) -> int:
        """
        Percentages have no absolute count on their own.

        Raises:
            InvalidReplicasError: Always
        """
        raise InvalidReplicasError("percentage replicas cannot be converted to an absolute count", str(self))

    def as_int_or_str(self) -> str:
        """Value in the shape of a Kubernetes IntOrString."""
        return str(self)

    def __str__(self) -> str:
        return f"{self.value}%"


Replicas = Union[AbsoluteReplicas, PercentageReplicas]

REPLICAS_REGEX = re.compile(r"(-?\d+)(%?)", re.ASCII)


def parse_replicas(value: str) -> Replicas:
    """
    Parse a replica target.

    Plain integers are absolute counts and must not be negative. Integers
    followed by '%' are percentages between 0% and 100%.

    Raises:
        InvalidReplicasError: If the value is malformed or out of range
    """
    text = value.strip()

    match = REPLICAS_REGEX.fullmatch(text)
    if match is None:
        raise InvalidReplicasError("invalid replica value", value)

    number, percent = int(match.group(1)), match.group(2)
    if not percent:
        if number < 0:
            raise InvalidReplicasError("downscale replicas has to be a positive integer", value)
        return AbsoluteReplicas(value=number)

    if number < 0 or number > 100:
        raise InvalidReplicasError("downscale replicas must be a percentage between 0% and 100%", value)
    return PercentageReplicas(value=number)
