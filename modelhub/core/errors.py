"""Domain errors raised by the model store and the inference engine."""

from typing import List


class ModelHubError(Exception):
    """Base class for all service errors."""


class LoadError(ModelHubError):
    """The uploaded bytes could not be read as any supported model format."""


class NotFoundError(ModelHubError):
    """No model is registered under the requested id."""

    def __init__(self, model_id: str):
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class InferenceError(ModelHubError):
    """The framework rejected the forward pass or produced an unusable output."""


class MissingInputError(InferenceError):
    """A declared model input was absent from the request (strict mode only)."""

    def __init__(self, model_id: str, missing: List[str]):
        super().__init__(
            f"Model {model_id} is missing required inputs: {', '.join(missing)}"
        )
        self.model_id = model_id
        self.missing = list(missing)
