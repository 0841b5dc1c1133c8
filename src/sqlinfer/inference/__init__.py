"""Type inference for source queries."""
from .models import InferenceResult, InputParam, OutputColumn, TypedQuery
from .inferrer import TypeInferrer

__all__ = [
    "InferenceResult",
    "InputParam",
    "OutputColumn",
    "TypedQuery",
    "TypeInferrer",
]
