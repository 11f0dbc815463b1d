"""
Response envelope shared by all endpoints.

Every response reports ``success`` plus, depending on the endpoint, a
human‑readable ``message``, a ``count`` for lists and the ``data``
payload.  Error responses are produced by the exception handlers in
``main.py`` and use the same ``success``/``message`` keys.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[DataT] = None
