"""
Response metadata models.

Provides standard metadata for negotiation responses to enable
tracing, debugging, and performance monitoring.
"""

import time
from typing import Optional

from pydantic import Field

from src.__version__ import __version__

from .shared import CamelModel


class ResponseMetadata(CamelModel):
    """
    Standard metadata included in negotiation responses.

    Attributes:
        request_id: Correlation id for request tracing
        computation_time_ms: Time taken for computation in milliseconds
        engine_version: Engine version
        algorithm: Method used for computation
    """

    request_id: str = Field(
        ...,
        description="Correlation id for tracing",
        min_length=1,
        max_length=200,
    )

    computation_time_ms: float = Field(
        ...,
        description="Computation time in milliseconds",
        ge=0.0,
    )

    engine_version: str = Field(
        default=__version__,
        description="Engine version",
    )

    algorithm: Optional[str] = Field(
        None,
        description="Method used (e.g., 'multi-objective-weighted')",
        max_length=100,
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "requestId": "corr_a1b2c3d4e5f6",
                "computationTimeMs": 3.21,
                "engineVersion": "0.1.0",
                "algorithm": "multi-objective-weighted",
            }
        }
    }


class MetadataBuilder:
    """Helper class for building metadata objects."""

    def __init__(self, request_id: str):
        """
        Initialize metadata builder.

        Args:
            request_id: Request identifier
        """
        self.request_id = request_id
        self.start_time = time.perf_counter()

    def elapsed_ms(self) -> float:
        """Milliseconds since the builder was created."""
        return (time.perf_counter() - self.start_time) * 1000

    def build(self, algorithm: Optional[str] = None) -> ResponseMetadata:
        """
        Build metadata object with computed timing.

        Args:
            algorithm: Algorithm used for computation

        Returns:
            ResponseMetadata object
        """
        return ResponseMetadata(
            request_id=self.request_id,
            computation_time_ms=self.elapsed_ms(),
            algorithm=algorithm,
        )
