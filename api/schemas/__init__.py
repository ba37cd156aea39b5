"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import StartSessionRequest
    from api.schemas.session_schemas import SubmitAnswersRequest
"""

from api.schemas.session_schemas import (
    ProviderHealthResponse,
    StartSessionRequest,
    SubmitAnswersRequest,
)

__all__ = [
    "ProviderHealthResponse",
    "StartSessionRequest",
    "SubmitAnswersRequest",
]
