"""
Shared path parameter types.
"""

from typing import Annotated

from fastapi import Path

from everjourney.services.listing import INT64_MAX

# Primary keys are bound as signed 64-bit integers
RecordId = Annotated[int, Path(ge=1, le=INT64_MAX)]
