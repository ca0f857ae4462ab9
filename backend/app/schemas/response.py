from typing import Any
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

class ApiResponse(BaseModel):
    """
    Success envelope: {statusCode, data, message, success}
    """
    status_code: int = Field(serialization_alias="statusCode")
    data: Any = None
    message: str = "Success"
    success: bool = True

class ApiErrorResponse(BaseModel):
    """
    Error envelope: {statusCode, success, message, errors}
    """
    status_code: int = Field(serialization_alias="statusCode")
    success: bool = False
    message: str
    errors: list[Any] = Field(default_factory=list)

def success_response(status_code: int, data: Any = None, message: str = "Success") -> JSONResponse:
    body = ApiResponse(status_code=status_code, data=data, message=message, success=status_code < 400)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
