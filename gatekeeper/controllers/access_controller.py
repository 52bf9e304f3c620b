"""
Access controller — read-only checks used by the portal front-end
before it shows the login form (client address, business hours,
whether this address may log in at all).
"""

import logging

from fastapi import APIRouter, Depends, Request

from gatekeeper.core.config import Settings
from gatekeeper.core.network import client_address, is_address_allowed
from gatekeeper.dependencies import get_access_window, get_settings
from gatekeeper.schemas import BusinessHoursOut, IpAccessOut, IpOut
from gatekeeper.services.access_window import AccessWindowEvaluator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Access"])


@router.get("/ip", response_model=IpOut)
async def get_ip(request: Request):
    return IpOut(ip=client_address(request))


@router.get("/business-hours", response_model=BusinessHoursOut)
async def business_hours(access_window: AccessWindowEvaluator = Depends(get_access_window)):
    status = access_window.evaluate()
    return BusinessHoursOut(
        is_business_hours=status.within_window,
        current_time=status.formatted_time,
        day=status.weekday,
        hour=status.hour,
    )


@router.get("/check-ip-access", response_model=IpAccessOut)
async def check_ip_access(request: Request, config: Settings = Depends(get_settings)):
    address = client_address(request)
    authorized = is_address_allowed(address, config.allowed_ips)
    logger.info("IP check: %s | authorized: %s", address, authorized)
    return IpAccessOut(
        authorized=authorized,
        ip=address,
        required_ip=config.primary_allowed_ip,
    )
