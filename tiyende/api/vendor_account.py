from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Header, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr
from pydantic_extra_types.phone_numbers import PhoneNumber
from psycopg2.errorcodes import UNIQUE_VIOLATION
from sqlalchemy.exc import IntegrityError

from tiyende.api.cookie import cookie_vendor
from tiyende.src.constants import (
    REGEX_PASSWORD,
    REGEX_USERNAME,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SESSION_MAX_IDLE,
)
from tiyende.src.db import Vendor
from tiyende.src import argon2, exceptions, validators, getters
from tiyende.src.loggers import logEvent
from tiyende.src.functions import makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class VendorSchema(BaseModel):
    id: int
    username: str
    name: str
    email: str
    phone: Optional[str]
    company_name: Optional[str]
    address: Optional[str]
    city: Optional[str]
    profile_image: Optional[str]
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class RegisterForm(BaseModel):
    username: str = Field(pattern=REGEX_USERNAME, min_length=4, max_length=32)
    password: str = Field(pattern=REGEX_PASSWORD, min_length=8, max_length=32)
    name: str = Field(min_length=1, max_length=64)
    email: EmailStr = Field(description="Email in RFC 5322 format")
    phone: PhoneNumber | None = Field(
        default=None, description="Phone number in RFC3966 format"
    )
    company_name: str | None = Field(max_length=128, default=None)
    address: str | None = Field(max_length=256, default=None)
    city: str | None = Field(max_length=64, default=None)
    profile_image: str | None = Field(max_length=2048, default=None)


class LoginForm(BaseModel):
    username: str = Field(max_length=32)
    password: str = Field(max_length=32)


class ProfileUpdateForm(BaseModel):
    name: str | None = Field(min_length=1, max_length=64, default=None)
    email: EmailStr | None = Field(default=None, description="Email in RFC 5322 format")
    phone: PhoneNumber | None = Field(
        default=None, description="Phone number in RFC3966 format"
    )
    company_name: str | None = Field(max_length=128, default=None)
    address: str | None = Field(max_length=256, default=None)
    city: str | None = Field(max_length=64, default=None)
    profile_image: str | None = Field(max_length=2048, default=None)


class ChangePasswordForm(BaseModel):
    current_password: str = Field(max_length=32)
    new_password: str = Field(pattern=REGEX_PASSWORD, min_length=8, max_length=32)


## Function
def openSession(
    storage: Storage, vendor: Vendor, response: Response, clientDetails: str | None
) -> None:
    """Start a session for the vendor and hand its token to the client as a cookie."""
    if clientDetails is not None:
        clientDetails = clientDetails[:1024]
    session = storage.createSession(vendor.id, SESSION_MAX_IDLE, clientDetails)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session.access_token,
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )


def currentVendor(accessToken: str | None, storage: Storage) -> Vendor:
    token = validators.vendorSession(accessToken, storage)
    vendor = storage.getVendor(token.vendor_id)
    if vendor is None:
        raise exceptions.Unauthorized()
    return vendor


def duplicateIdentity(e: IntegrityError) -> exceptions.DuplicateIdentity | None:
    """Name the vendor column behind a unique violation, if it is one."""
    if exceptions.integrityErrorCode(e) != UNIQUE_VIOLATION:
        return None
    message = str(e.orig).lower()
    if any(key in message for key in ("vendor.email", "(email)", "vendor_email")):
        return exceptions.DuplicateIdentity(Vendor.email)
    return exceptions.DuplicateIdentity(Vendor.username)


## API endpoints [Vendor]
@route_vendor.post(
    "/register",
    tags=["Account"],
    response_model=VendorSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.DuplicateIdentity, exceptions.ValidationFailed]
    ),
    description="""
    Registers a new vendor account and logs it in.

    - Username and email must not be in use by another vendor.
    - The password is stored as an Argon2 hash, never in plain text.
    - A session cookie is set on success; the password is never returned.
    - Logs the account creation activity.
    """,
)
async def register(
    fParam: RegisterForm,
    response: Response,
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
    user_agent: str | None = Header(default=None),
):
    try:
        if storage.getVendorByUsername(fParam.username) is not None:
            raise exceptions.DuplicateIdentity(Vendor.username)
        if storage.getVendorByEmail(fParam.email) is not None:
            raise exceptions.DuplicateIdentity(Vendor.email)

        try:
            vendor = storage.createVendor(
                username=fParam.username,
                password=argon2.makePassword(fParam.password),
                name=fParam.name,
                email=fParam.email,
                phone=fParam.phone,
                company_name=fParam.company_name,
                address=fParam.address,
                city=fParam.city,
                profile_image=fParam.profile_image,
            )
        except IntegrityError as e:
            duplicate = duplicateIdentity(e)
            if duplicate is None:
                raise
            raise duplicate from e
        openSession(storage, vendor, response, user_agent)

        logEvent(vendor.id, request_info, jsonable_encoder(vendor, exclude={"password"}))
        return vendor
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/login",
    tags=["Account"],
    response_model=VendorSchema,
    responses=makeExceptionResponses([exceptions.InvalidCredentials]),
    description="""
    Authenticates a vendor with username and password.

    - Unknown usernames and wrong passwords are rejected alike.
    - A new session cookie is set on success.
    - Logs the authentication event.
    """,
)
async def login(
    fParam: LoginForm,
    response: Response,
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
    user_agent: str | None = Header(default=None),
):
    try:
        vendor = storage.getVendorByUsername(fParam.username)
        if vendor is None:
            raise exceptions.InvalidCredentials()
        if not argon2.checkPassword(fParam.password, vendor.password):
            raise exceptions.InvalidCredentials()

        openSession(storage, vendor, response, user_agent)
        logEvent(vendor.id, request_info, {"username": vendor.username})
        return vendor
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/logout",
    tags=["Account"],
    description="""
    Ends the current session and clears the session cookie.
    Calling it without a valid session is harmless.
    """,
)
async def logout(
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        if cookie:
            storage.deleteSession(cookie)
        response = Response(status_code=status.HTTP_200_OK)
        response.delete_cookie(
            key=SESSION_COOKIE_NAME,
            httponly=True,
            samesite="lax",
            secure=SESSION_COOKIE_SECURE,
        )
        return response
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/vendor",
    tags=["Account"],
    response_model=VendorSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="Returns the vendor bound to the current session.",
)
async def fetch_vendor(
    cookie=Depends(cookie_vendor), storage: Storage = Depends(getters.storage)
):
    try:
        return currentVendor(cookie, storage)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/profile",
    tags=["Profile"],
    response_model=VendorSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="Returns the profile of the logged in vendor.",
)
async def fetch_profile(
    cookie=Depends(cookie_vendor), storage: Storage = Depends(getters.storage)
):
    try:
        return currentVendor(cookie, storage)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/profile",
    tags=["Profile"],
    response_model=VendorSchema,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.DuplicateIdentity]
    ),
    description="""
    Updates the profile of the logged in vendor.

    - Supports partial updates; omitted fields are left untouched.
    - Username and password cannot be changed through this endpoint.
    - The new email must not belong to another vendor.
    - Logs the profile update if anything changed.
    """,
)
async def update_profile(
    fParam: ProfileUpdateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        vendor = currentVendor(cookie, storage)

        updates = fParam.model_dump(exclude_none=True)
        if "email" in updates:
            other = storage.getVendorByEmail(updates["email"])
            if other is not None and other.id != vendor.id:
                raise exceptions.DuplicateIdentity(Vendor.email)

        updatedVendor = storage.updateVendor(vendor.id, updates)
        if updatedVendor is None:
            raise exceptions.NotFound(Vendor)

        if updates:
            logEvent(
                vendor.id,
                request_info,
                jsonable_encoder(updatedVendor, exclude={"password"}),
            )
        return updatedVendor
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/profile/change-password",
    tags=["Profile"],
    response_model=VendorSchema,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.InvalidCredentials]
    ),
    description="""
    Changes the password of the logged in vendor.

    - The current password must be supplied and correct.
    - Every other session of the vendor is closed; the current one stays open.
    - Logs the password change (never the password itself).
    """,
)
async def change_password(
    fParam: ChangePasswordForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        vendor = currentVendor(cookie, storage)
        if not argon2.checkPassword(fParam.current_password, vendor.password):
            raise exceptions.InvalidCredentials()

        updatedVendor = storage.updateVendor(
            vendor.id, {"password": argon2.makePassword(fParam.new_password)}
        )
        storage.deleteVendorSessions(vendor.id, keep=cookie)

        logEvent(vendor.id, request_info, {"password_changed": True})
        return updatedVendor
    except Exception as e:
        exceptions.handle(e)
