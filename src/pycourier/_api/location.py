"""Location telemetry endpoint.

Endpoint:
  - POST /delivery/update-location (or /deliveryupdate)
"""

from __future__ import annotations

from pycourier._api._common import require_session
from pycourier._transport import Transport
from pycourier.config import CourierConfig
from pycourier.models.location import TelemetrySample
from pycourier.session import Session


async def post_location(
    config: CourierConfig,
    session: Session | None,
    transport: Transport,
    sample: TelemetrySample,
    *,
    status: str | None = None,
) -> None:
    active = require_session(session, "post_location")
    await transport.request(
        "POST",
        config.location_endpoint,
        token=active.bearer_token,
        json_body=sample.to_payload(status),
    )
