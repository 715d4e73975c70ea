"""Request models for the API."""

from typing import Dict, List
from pydantic import BaseModel, field_validator


class InferRequest(BaseModel):
    """Named input vectors for a single forward pass."""

    inputs: Dict[str, List[float]]

    @field_validator("inputs")
    @classmethod
    def _not_empty(cls, value: Dict[str, List[float]]) -> Dict[str, List[float]]:
        if not value:
            raise ValueError("inputs must not be empty")
        return value
