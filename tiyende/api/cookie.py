from fastapi.security import APIKeyCookie

from tiyende.src.constants import SESSION_COOKIE_NAME

# Session cookie scheme, a missing cookie is answered with 401 by the validators
cookie_vendor = APIKeyCookie(
    name=SESSION_COOKIE_NAME, scheme_name="Vendor session", auto_error=False
)
