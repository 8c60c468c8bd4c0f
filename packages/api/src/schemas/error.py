# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details body returned by every error response."""

from http import HTTPStatus

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Problem Details for HTTP APIs (https://datatracker.ietf.org/doc/html/rfc7807)."""

    type: str = Field(default="about:blank", description="URI identifying the problem type.")
    title: str = Field(description="Reason phrase of the status code.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(default="", description="What went wrong on this request.")
    request_id: str = Field(default="", description="Correlation id, echoed from X-Request-ID.")
    instance: str = Field(default="", description="Path of the request that failed.")

    @classmethod
    def for_status(
        cls, status_code: int, detail: str, *, request_id: str = "", instance: str = ""
    ) -> "ErrorResponse":
        try:
            title = HTTPStatus(status_code).phrase
        except ValueError:
            title = "Error"
        return cls(
            title=title,
            status=status_code,
            detail=detail,
            request_id=request_id,
            instance=instance,
        )
