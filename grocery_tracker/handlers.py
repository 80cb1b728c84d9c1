"""
Request Handlers

Thin POST-style handlers: authenticate the caller, run one flow, and
shape the result as (status_code, JSON body).

Status mapping:
- 401: missing bearer token or unknown user
- 400/403/404: HouseholdError subclasses carry their own status
- 400: malformed budget payload
- 500: anything else, with {"error": message}
"""

from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from grocery_tracker.audit import AuditLogger, create_correlation_id
from grocery_tracker.household import HouseholdError
from grocery_tracker.models.budget import Budget, Receipt
from grocery_tracker.models.household import User
from grocery_tracker.orchestrator import BudgetComparisonFlow, HouseholdFlow
from grocery_tracker.services.identity import (
    IdentityProviderInterface,
    extract_bearer_token,
)


logger = structlog.get_logger(__name__)


class HandlerRequest(BaseModel):
    """An incoming request: the Authorization header and the JSON body."""

    authorization: Optional[str] = None
    body: dict[str, Any] = Field(default_factory=dict)


class HandlerResponse(BaseModel):
    """An outgoing response."""

    status_code: int = 200
    body: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def error(cls, status_code: int, message: str) -> "HandlerResponse":
        return cls(status_code=status_code, body={"error": message})


class RequestHandlers:
    """Binds the flows to an identity provider and exposes one method per endpoint."""

    def __init__(
        self,
        identity: IdentityProviderInterface,
        household_flow: HouseholdFlow,
        budget_flow: Optional[BudgetComparisonFlow] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._identity = identity
        self._household_flow = household_flow
        self._budget_flow = budget_flow or BudgetComparisonFlow()
        self._audit_logger = audit_logger

    async def _authenticate(
        self,
        request: HandlerRequest,
    ) -> tuple[Optional[User], Optional[HandlerResponse]]:
        token = extract_bearer_token(request.authorization)
        if token is None:
            return None, HandlerResponse.error(401, "Missing Authorization Bearer token")

        user = await self._identity.get_current_user(token)
        if user is None:
            return None, HandlerResponse.error(401, "Unauthorized")
        return user, None

    async def _fail(self, name: str, error: Exception, correlation_id) -> HandlerResponse:
        logger.error(f"{name}_failed", error=str(error), exc_info=True)
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"handler": name},
                correlation_id=correlation_id,
            )
        return HandlerResponse.error(500, str(error) or "Internal error")

    async def get_my_household(self, request: HandlerRequest) -> HandlerResponse:
        correlation_id = create_correlation_id()
        try:
            user, failure = await self._authenticate(request)
            if failure:
                return failure

            result = await self._household_flow.get_my_household(
                user, correlation_id=correlation_id
            )
            return HandlerResponse(body=result.to_response_dict())
        except Exception as e:
            return await self._fail("get_my_household", e, correlation_id)

    async def generate_household_code(self, request: HandlerRequest) -> HandlerResponse:
        correlation_id = create_correlation_id()
        try:
            user, failure = await self._authenticate(request)
            if failure:
                return failure

            result = await self._household_flow.generate_household_code(
                user,
                request.body.get("household_id"),
                correlation_id=correlation_id,
            )
            return HandlerResponse(body=result.to_response_dict())
        except HouseholdError as e:
            return HandlerResponse.error(e.status_code, e.message)
        except Exception as e:
            return await self._fail("generate_household_code", e, correlation_id)

    async def join_household_by_code(self, request: HandlerRequest) -> HandlerResponse:
        correlation_id = create_correlation_id()
        try:
            user, failure = await self._authenticate(request)
            if failure:
                return failure

            invite_code = request.body.get("invite_code")
            if invite_code is not None and not isinstance(invite_code, str):
                return HandlerResponse.error(400, "invite_code must be a string")

            result = await self._household_flow.join_household_by_code(
                user,
                invite_code,
                correlation_id=correlation_id,
            )
            return HandlerResponse(body=result.to_response_dict())
        except HouseholdError as e:
            return HandlerResponse.error(e.status_code, e.message)
        except Exception as e:
            return await self._fail("join_household_by_code", e, correlation_id)

    async def budget_periods(self, request: HandlerRequest) -> HandlerResponse:
        """
        Body: {"budget": {...} | null, "preset": str, "receipts": [...]}

        A null budget is a valid request with an empty answer.
        """
        correlation_id = create_correlation_id()
        try:
            _, failure = await self._authenticate(request)
            if failure:
                return failure

            raw_budget = request.body.get("budget")
            try:
                budget = Budget.model_validate(raw_budget) if raw_budget is not None else None
                receipts = [
                    Receipt.model_validate(r)
                    for r in request.body.get("receipts") or []
                ]
            except ValidationError as e:
                return HandlerResponse.error(400, f"Invalid request: {e.error_count()} errors")

            periods, spending = self._budget_flow.compare(
                budget,
                request.body.get("preset"),
                receipts,
            )
            return HandlerResponse(body={
                **periods.to_response_dict(),
                "spending": spending.model_dump(mode="json"),
            })
        except Exception as e:
            return await self._fail("budget_periods", e, correlation_id)
