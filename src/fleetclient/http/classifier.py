# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP status classification for completed transfers."""

from __future__ import annotations

from ..config import StatusPolicy
from ..errors import (
    BadRequest,
    ClientError,
    Conflict,
    Forbidden,
    HttpStatusError,
    NotFound,
    ServerError,
)
from .models import ParsedResponse, RawResponse

_STRICT_SUBTYPES: dict[int, type[HttpStatusError]] = {
    400: BadRequest,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
}


class ErrorClassifier:
    """
    Decide whether a status code is a success under one fixed policy.

    STRICT accepts 2xx only and raises a specific subtype for 400/403/404/409
    (ClientError / ServerError for other 4xx / 5xx). LENIENT accepts 2xx and
    3xx and raises a plain HttpStatusError for everything else.
    """

    def __init__(self, policy: StatusPolicy = StatusPolicy.STRICT):
        self.policy = StatusPolicy(policy)

    def is_success(self, status: int) -> bool:
        upper = 300 if self.policy is StatusPolicy.STRICT else 400
        return 200 <= status < upper

    def error_type(self, status: int) -> type[HttpStatusError]:
        if self.policy is StatusPolicy.LENIENT:
            return HttpStatusError
        if status in _STRICT_SUBTYPES:
            return _STRICT_SUBTYPES[status]
        if 400 <= status < 500:
            return ClientError
        if 500 <= status < 600:
            return ServerError
        return HttpStatusError

    def check(
        self,
        raw: RawResponse,
        method: str,
        url: str,
        response: ParsedResponse | None = None,
    ) -> None:
        """Raise the matching HttpStatusError when `raw` is not a success."""
        status = raw.status_code
        if self.is_success(status):
            return
        error_cls = self.error_type(status)
        raise error_cls(status, method, url, raw.content, response=response)


__all__ = ["ErrorClassifier"]
