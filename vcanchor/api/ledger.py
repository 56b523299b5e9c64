"""Public read-only ledger lookups.

- GET /v1/plans/{plan_key}/price   subscription plan price in wei
- GET /v1/dids/{did}/status        whether the DID's address is registered
"""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Path
from pydantic import BaseModel

from vcanchor.models.identity import Did, DidError
from vcanchor.services.errors import ValidationFailed
from vcanchor.services.ledger_client import ledger_client

router = APIRouter(prefix="/v1", tags=["ledger"])


class PlanPriceOut(BaseModel):
    plan_key: int
    price_wei: str  # decimal string; uint256 overflows JSON numbers


class DidStatusOut(BaseModel):
    did: str
    address: str
    registered: bool


@router.get("/plans/{plan_key}/price", response_model=PlanPriceOut)
async def plan_price(
    plan_key: Annotated[int, Path(ge=0, le=255)],
) -> PlanPriceOut:
    price = await asyncio.to_thread(ledger_client.read_plan_price, plan_key)
    if price == 0:
        raise ValidationFailed(f"Unknown plan key {plan_key}")
    return PlanPriceOut(plan_key=plan_key, price_wei=str(price))


@router.get("/dids/{did}/status", response_model=DidStatusOut)
async def did_status(did: str) -> DidStatusOut:
    try:
        parsed = Did.parse(did)
    except DidError as exc:
        raise ValidationFailed(str(exc)) from None
    registered = await asyncio.to_thread(ledger_client.has_identity, parsed.address)
    return DidStatusOut(did=str(parsed), address=parsed.address, registered=registered)
