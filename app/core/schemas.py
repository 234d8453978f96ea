from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ErrorItem(BaseModel):
    msg: str
    code: Optional[str] = None
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    errors: List[ErrorItem]
    retryable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)