"""Pharmacy API - own pharmacy status and the post-rejection reset"""
from fastapi import APIRouter, Depends

from ..deps import envelope, get_current_user_id, get_state, maybe_fail
from ..state import DevState, WIRE_STATUS
from ...domain.errors import AuthorizationError

router = APIRouter()


def _require_pharmacy(state: DevState, user_id: str) -> None:
    if user_id not in state.pharmacies:
        raise AuthorizationError("Pharmacy account required")


@router.get("/my-pharmacy")
async def get_my_pharmacy(
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Own pharmacy with its verification status"""
    _require_pharmacy(state, user_id)
    maybe_fail(state, "pharmacy.my_pharmacy")
    pharmacy = state.pharmacy_for(user_id)
    return envelope({"pharmacy": dict(pharmacy), "status": pharmacy["status"]})


@router.post("/reset-onboarding")
async def reset_onboarding(
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """REJECTED -> ONBOARDING_REQUIRED so the application can be resubmitted"""
    _require_pharmacy(state, user_id)
    maybe_fail(state, "pharmacy.reset_onboarding")
    status = state.reset_onboarding(user_id)
    return envelope(
        {"status": WIRE_STATUS[status], "user": state.user_payload(user_id)},
        message="Onboarding reset"
    )
