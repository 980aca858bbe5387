from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")

class ErrorInfo(BaseModel):
    msg: str
    field: Optional[str] = None
    code: Optional[str] = None

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class ApiResponse(BaseModel, Generic[T]):
    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    errors: List[ErrorInfo] = []
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with JSON-serializable values."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def ok(cls, data: T, message: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, message=message, metadata=metadata or {})

    @classmethod
    def fail(cls, message: str, errors: Optional[List[ErrorInfo]] = None, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=errors or [], metadata=metadata or {})


class PageParams(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pagination(self, total: int) -> Pagination:
        pages = (total + self.limit - 1) // self.limit if total else 0
        return Pagination(page=self.page, limit=self.limit, total=total, pages=pages)
