"""Root of the error taxonomy shared by stores, the sync client and the service."""

import logging
import re
from typing import Any

from pydantic import ValidationError

from ..context import get_operation_id
from .schemas import ErrorDetail, ErrorPayload

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _code_for(class_name: str) -> str:
    """``SyncError`` -> ``SYNC``, ``NotFoundError`` -> ``NOT_FOUND``."""
    stem = class_name.removesuffix("Error").removesuffix("Exception")
    return _CAMEL_BOUNDARY.sub("_", stem).upper()


def _normalise_details(details: dict[str, Any] | ErrorDetail | None) -> dict[str, Any]:
    if details is None:
        return {}
    if isinstance(details, ErrorDetail):
        return details.model_dump(exclude_none=True)
    try:
        return ErrorDetail(**details).model_dump(exclude_none=True)
    except ValidationError as e:
        # Keep the caller's dict rather than lose context about the failure
        logger.warning(f"Error details did not match ErrorDetail: {e}")
        return dict(details)


class AppError(Exception):
    """Internal error

    Subclasses get ``code`` from their class name and ``default_message``
    from the first docstring line, so declaring a new error is one class
    with one line of text. Every instance remembers the operation that was
    running when it was raised, which ties a failed mirror task or a
    fallback read back to the service call that started it.
    """

    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | ErrorDetail | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = _normalise_details(details)
        if code is not None:
            self.code = code
        self._operation_id = get_operation_id()
        super().__init__(self.message)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "code" not in cls.__dict__:
            cls.code = _code_for(cls.__name__)
        if "default_message" not in cls.__dict__ and cls.__doc__:
            cls.default_message = cls.__doc__.strip().splitlines()[0]

    @property
    def operation_id(self) -> str:
        return self._operation_id

    def to_payload(self) -> ErrorPayload:
        """Shape handed to the UI layer."""
        return ErrorPayload(
            error=self.code,
            message=self.message,
            details=self.details,
            operation_id=self.operation_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.to_payload().model_dump()
