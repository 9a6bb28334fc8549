"""Driver profile endpoint.

Endpoint:
  - GET /deliveryme
"""

from __future__ import annotations

from pycourier._api._common import ensure_object, require_session
from pycourier._constants import PROFILE_ENDPOINT
from pycourier._transport import Transport
from pycourier.models.profile import DriverProfile
from pycourier.session import Session


async def fetch_profile(session: Session | None, transport: Transport) -> DriverProfile:
    active = require_session(session, "fetch_profile")
    response = await transport.request("GET", PROFILE_ENDPOINT, token=active.bearer_token)
    payload = ensure_object(response, PROFILE_ENDPOINT)
    # Some deployments wrap the profile as {"status": ..., "data": {...}}
    nested = payload.get("data")
    if isinstance(nested, dict):
        payload = nested
    return DriverProfile.model_validate(payload)
