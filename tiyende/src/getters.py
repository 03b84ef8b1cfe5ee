from fastapi import Request

from tiyende.src import schemas
from tiyende.src.storage import Storage


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
    """
    return schemas.RequestInfo(method=request.method, path=request.url.path)


def storage(request: Request) -> Storage:
    """Fetch the data-access layer the application was built with."""
    return request.app.state.storage
