"""Constants for the dsiot bridge."""

from __future__ import annotations

from datetime import timedelta

ENDPOINT = "/dsiot/multireq"
USER_AGENT = "RemoteApp/9.9.2 CFNetwork/3860.200.71 Darwin/25.1.0"

OP_READ = 2
OP_WRITE = 3

# Response status codes accepted for write requests.
SUCCESS_STATUS_CODES = frozenset({2000, 2004})

FRAME_ADAPTER_INFO = "/dsiot/edge.adp_i"
FRAME_ADAPTER_DETAIL = "/dsiot/edge.adp_d"
FRAME_ADAPTER_FUNCTION = "/dsiot/edge.adp_f"
FRAME_DEVICE_INFO = "/dsiot/edge.dev_i"
FRAME_INDOOR_STATUS = "/dsiot/edge/adr_0100.dgc_status"
FRAME_OUTDOOR_STATUS = "/dsiot/edge/adr_0200.dgc_status"

STATUS_ROOT_NAME = "dgc_status"

# Info frames only need present values; status frames carry the metadata
# required to encode commands.
FILTERED_FRAMES: tuple[str, ...] = (
    FRAME_ADAPTER_INFO,
    FRAME_ADAPTER_DETAIL,
    FRAME_ADAPTER_FUNCTION,
    FRAME_DEVICE_INFO,
)
STATUS_FRAMES: tuple[str, ...] = (FRAME_INDOOR_STATUS, FRAME_OUTDOOR_STATUS)

DEFAULT_REFRESH_INTERVAL = timedelta(seconds=6)
DEFAULT_LOCK_TIMEOUT = timedelta(seconds=4)
DEFAULT_REQUEST_TIMEOUT = timedelta(seconds=3)
