"""Pharmacy Repository - onboarding workflow status endpoints"""
from typing import Any, Dict

from .api_client import ApiClient
from ..domain.enums import WorkflowStatus
from ..domain.models import parse_workflow_status
from ..domain.errors import ApiResponseError


class PharmacyRepository:
    """Re-check and reset the pharmacy approval status"""

    def __init__(self, api: ApiClient):
        self._api = api

    async def get_my_pharmacy(self) -> Dict[str, Any]:
        data = await self._api.get("/pharmacy/my-pharmacy")
        if not isinstance(data, dict):
            raise ApiResponseError("Pharmacy payload is not an object")
        return data

    async def reset_onboarding(self) -> WorkflowStatus:
        """Ask the server to move a REJECTED pharmacy back to ONBOARDING_REQUIRED"""
        data = await self._api.post("/pharmacy/reset-onboarding")
        status = _status_from(data if isinstance(data, dict) else {})
        if status == WorkflowStatus.NONE:
            raise ApiResponseError("Reset response does not carry a workflow status")
        return status


def _status_from(data: Dict[str, Any]) -> WorkflowStatus:
    user = data.get("user") if isinstance(data.get("user"), dict) else {}
    pharmacy = data.get("pharmacy") if isinstance(data.get("pharmacy"), dict) else {}
    return parse_workflow_status(data.get("status") or user.get("status") or pharmacy.get("status"))
