"""RFC 7807 style problem documents returned by the HTTP surface."""

from typing import Optional

from pydantic import BaseModel


class AdditionalInfo(BaseModel):
    requestId: Optional[str] = None


class ProblemResponse(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    additional: Optional[AdditionalInfo] = None

    @classmethod
    def for_request(
        cls,
        status: int,
        title: str,
        detail: str,
        instance: Optional[str] = None,
        type_uri: str = "about:blank",
    ) -> "ProblemResponse":
        return cls(type=type_uri, title=title, status=status, detail=detail, instance=instance)

    def with_request_id(self, request_id: str) -> "ProblemResponse":
        """Copy carrying the request id; the receiver is left untouched."""
        base = self.additional or AdditionalInfo()
        return self.model_copy(
            update={"additional": base.model_copy(update={"requestId": request_id})}
        )

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
