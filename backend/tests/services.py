"""Request models and endpoints the HTTP tests run against.

Response types follow the naming rule the shape resolver relies on:
CreateUser -> CreateUserResponse (has a status slot),
DeleteUser -> DeleteUserResponse (no status slot),
GetOrder -> GetOrderResponse (has a status slot and required fields),
RegisterGuest -> none, so errors use the generic ErrorResponse.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from faultline.exceptions import (
    AccessDeniedError,
    ArgumentNullError,
    ArgumentOutOfRangeError,
    AuthenticationError,
    NotSupportedError,
    OptimisticConcurrencyError,
    ValidationError,
)
from faultline.http_error import HttpError
from faultline.routing import ServiceRoute
from faultline.schemas.error import ResponseError, ResponseStatus

router = APIRouter(route_class=ServiceRoute)


class CreateUser(BaseModel):
    name: str = ""
    age: int = 0
    fail_with: str | None = None


class CreateUserResponse(BaseModel):
    id: int | None = None
    name: str | None = None
    response_status: ResponseStatus | None = None


class DeleteUser(BaseModel):
    user_id: int


class DeleteUserResponse(BaseModel):
    deleted: bool = False


class RegisterGuest(BaseModel):
    name: str = ""


class GetOrder(BaseModel):
    order_id: int = 0


class GetOrderResponse(BaseModel):
    order_id: int
    total: float
    response_status: ResponseStatus | None = None


def _failure_for(kind: str) -> Exception | None:
    failures: dict[str, Exception] = {
        "conflict": OptimisticConcurrencyError("Row was updated by someone else"),
        "boom": RuntimeError("boom"),
        "http_exception": HTTPException(status_code=404, detail="No such team"),
        "group": ExceptionGroup("wrapped", [AuthenticationError("Login required")]),
        "http_error": HttpError(
            402,
            "Top up your balance",
            error_code="PaymentRequired",
            headers={"X-Reason": "quota"},
        ),
        "validation": ValidationError(
            [
                ResponseError(error_code="Required", field_name="name", message="Name is required"),
                ResponseError(error_code="Range", field_name="age", message="Age is too low"),
            ]
        ),
    }
    return failures.get(kind)


@router.post("/users")
async def create_user(request: CreateUser) -> CreateUserResponse:
    if request.fail_with == "return_http_error":
        return HttpError.conflict("User already exists")  # type: ignore[return-value]
    if request.fail_with is not None:
        failure = _failure_for(request.fail_with)
        if failure is not None:
            raise failure
    if not request.name:
        raise ArgumentNullError("Name is required", param_name="Name")
    if request.age < 0:
        raise ArgumentOutOfRangeError("Age must be positive", param_name="Age")
    return CreateUserResponse(id=1, name=request.name)


@router.post("/users/delete")
def delete_user(request: DeleteUser) -> DeleteUserResponse:
    raise AccessDeniedError("Admins only")


@router.post("/guests")
async def register_guest(request: RegisterGuest) -> dict[str, str]:
    if not request.name:
        raise ArgumentNullError("Name is required", param_name="Name")
    return {"name": request.name}


@router.post("/orders")
async def get_order(request: GetOrder) -> GetOrderResponse:
    if request.order_id <= 0:
        raise ArgumentNullError("Order id is required", param_name="order_id")
    return GetOrderResponse(order_id=request.order_id, total=9.5)


@router.get("/ping")
def ping() -> dict[str, str]:
    raise NotSupportedError("Ping is disabled")


@router.get("/items/{item_id}")
async def get_item(item_id: int) -> dict[str, int]:
    return {"item_id": item_id}


def broken_dependency() -> None:
    raise RuntimeError("dependency down")


@router.get("/guarded", dependencies=[Depends(broken_dependency)])
async def guarded() -> dict[str, str]:
    return {"status": "unreachable"}
