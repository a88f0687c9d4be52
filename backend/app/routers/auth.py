# app/routers/auth.py
#
# This router handles all authentication-related endpoints,
# such as user login and token generation.

from typing import Optional
from fastapi import APIRouter, Body, HTTPException, Request, status

from ..models import LoginResponse, CognitoToken
from ..crud import db_get_profile_for_account
from ..security import (
    get_authorizer_claims,
    verify_cognito_id_token,
    create_final_api_token,
)

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse, tags=["Authentication"])
async def cognito_login(
    request: Request,
    cognito_token: Optional[CognitoToken] = Body(default=None)
):
    """
    Exchanges a Cognito identity for the backend's own API session token.

    Behind API Gateway the authorizer has already validated the token and the
    claims are read from the request context. Without it, the client must send
    its Cognito ID token in the body and it is verified against the user pool.
    The profile is returned when onboarding is complete, otherwise null.
    """
    claims = get_authorizer_claims(request)
    if claims is None and cognito_token is not None:
        claims = await verify_cognito_id_token(cognito_token.idToken)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials (no authorizer context or ID token)"
        )

    account_id = claims["sub"]
    profile = db_get_profile_for_account(account_id)
    final_api_token = create_final_api_token(account_id, profile.id if profile else None)

    if profile is None:
        print(f"AUTH: Account {account_id} logged in without a profile; onboarding required.")
        return LoginResponse(message="Onboarding required.", api_token=final_api_token, profile=None)

    print(f"AUTH: Account {account_id} logged in as {profile.role} {profile.id}")
    return LoginResponse(message="Login successful.", api_token=final_api_token, profile=profile)
