import json
from logging import getLogger

from tiyende.src import openobserve
from tiyende.src.constants import OPENOBSERVE_ENABLED
from tiyende.src.schemas import RequestInfo

eventLogger = getLogger("tiyende.events")


def logEvent(vendorId: int, requestInfo: RequestInfo, data: dict) -> None:
    """
    Log an audit event with request and vendor context.

    Args:
        vendorId (int): Vendor performing the action.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Event-specific details, typically the affected record.
            Must not contain password hashes or session tokens.

    Notes:
        - Automatically attaches `_method`, `_path` and `_vendor_id`.
        - Events go to OpenObserve when OPENOBSERVE_ENABLED is set,
          otherwise to the `tiyende.events` logger.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_vendor_id": vendorId,
    }
    logDetails.update(data)

    if OPENOBSERVE_ENABLED:
        openobserve.logEvent(logDetails)
    else:
        eventLogger.info(json.dumps(logDetails, default=str))
