from typing import Optional

from pydantic import BaseModel, Field


class SubmitOrderResponse(BaseModel):
    success: bool = True
    message: str = "Order processed successfully"
    orderNumber: str = Field(..., description="Order number, generated when the form did not send one")


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = Field(
        default=None, description="Traceback, only outside production"
    )


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str
