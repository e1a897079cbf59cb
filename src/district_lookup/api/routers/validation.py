"""Address validation endpoints."""

from typing import Any

from fastapi import APIRouter

from district_lookup.api.dependencies import ReconcilerDep, SettingsDep
from district_lookup.api.schemas import ValidateAddressRequest

router = APIRouter(tags=["validation"])


@router.post("/validate-address")
async def validate_address(
    body: ValidateAddressRequest, reconciler: ReconcilerDep, settings: SettingsDep
) -> dict[str, Any]:
    """Validate an address with the requested methods and compare districts.

    Provider failures are part of a 200 response; only malformed input
    (400) and an unavailable geometry store (503) are errors.
    """
    methods = body.methods if body.methods is not None else settings.default_methods
    report = await reconciler.reconcile(body.to_address_input(), methods)
    return report.as_dict()


@router.get("/validation-status")
async def validation_status(reconciler: ReconcilerDep) -> dict[str, Any]:
    """Which validation methods are available and configured."""
    return {"success": True, "methods": reconciler.provider_status()}
