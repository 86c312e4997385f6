"""
PetProject Backend - Shared Route Dependencies
================================================

Caller identity:
    Authentication happens upstream (Firebase Auth on the client, verified
    by the gateway). The backend receives the authenticated uid in the
    X-Account-ID header and trusts it.
"""

from typing import Optional

from fastapi import Header

from petproject.exceptions import AuthenticationRequiredError, InvalidArgumentError


async def get_account_id(
    x_account_id: Optional[str] = Header(
        default=None,
        alias="X-Account-ID",
        description="uid of the signed-in account",
    ),
) -> str:
    """
    Required caller uid.

    Raises:
        AuthenticationRequiredError (401): header missing or blank.
        InvalidArgumentError (400): the uid contains "/" and cannot name a document.
    """
    account_id = (x_account_id or "").strip()
    if not account_id:
        raise AuthenticationRequiredError()
    if "/" in account_id:
        raise InvalidArgumentError(message="Invalid account id", field="X-Account-ID")
    return account_id

