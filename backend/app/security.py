# app/security.py
#
# This module handles security-related functions, such as token verification
# and the authentication dependencies that resolve the caller's profile.

import os
import time
from typing import Dict, Any, Optional, List

import boto3
import httpx
import jwt as pyjwt
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer

from .crud import db_get_profile_for_account
from .errors import NotFound
from .models import Profile

# --- Configuration ---
# Function to fetch the secret from SSM Parameter Store or environment
def get_api_jwt_secret():
    """Retrieves the API JWT secret from SSM or environment variables."""
    if "API_JWT_SECRET" in os.environ:
        return os.environ["API_JWT_SECRET"]

    try:
        ssm_client = boto3.client('ssm')
        parameter_name = os.environ['API_JWT_SECRET_NAME']
        response = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
        secret = response['Parameter']['Value']
        os.environ["API_JWT_SECRET"] = secret # Cache it
        return secret
    except Exception as e:
        # Fallback for local testing if SSM is not available
        print(f"WARN: Could not read API JWT secret from SSM ({type(e).__name__}); using local default.")
        return "default_secret_for_local_testing"

# --- Constants ---
API_JWT_SECRET = get_api_jwt_secret()
JWT_ALGORITHM = "HS256"
API_TOKEN_AUDIENCE = "api_access"
API_TOKEN_EXPIRY_MINUTES = 60

# --- Cognito Configuration ---
COGNITO_REGION = os.getenv("COGNITO_REGION")
COGNITO_USERPOOL_ID = os.getenv("COGNITO_USERPOOL_ID")
COGNITO_APP_CLIENT_ID = os.getenv("COGNITO_APP_CLIENT_ID")
COGNITO_ISSUER = f"https://cognito-idp.{COGNITO_REGION}.amazonaws.com/{COGNITO_USERPOOL_ID}"
COGNITO_JWKS_URL = f"{COGNITO_ISSUER}/.well-known/jwks.json"

jwks_cache: Optional[List[Dict[str, Any]]] = None

async def get_jwks() -> List[Dict[str, Any]]:
    """Fetches and caches Cognito JSON Web Keys."""
    global jwks_cache
    if jwks_cache is None:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(COGNITO_JWKS_URL)
                response.raise_for_status()
                jwks_cache = response.json()["keys"]
            except (httpx.HTTPError, KeyError, ValueError) as e:
                print(f"AUTH: Could not fetch Cognito JWKS: {e}")
                raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Could not fetch auth keys")
    return jwks_cache


async def verify_cognito_id_token(id_token: str) -> Dict[str, Any]:
    """
    Verifies a Cognito ID token against the user pool's JWKS. Used when the
    request did not pass through the API Gateway authorizer (local runs).
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate Cognito ID token",
    )
    keys = await get_jwks()
    try:
        kid = pyjwt.get_unverified_header(id_token).get("kid")
        key_data = next((k for k in keys if k.get("kid") == kid), None)
        if key_data is None:
            raise credentials_exception
        claims = pyjwt.decode(
            id_token,
            pyjwt.PyJWK(key_data).key,
            algorithms=["RS256"],
            audience=COGNITO_APP_CLIENT_ID,
            issuer=COGNITO_ISSUER,
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Cognito ID token has expired")
    except pyjwt.PyJWTError:
        raise credentials_exception

    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="User identifier missing from token")
    return claims


def get_authorizer_claims(request: Request) -> Optional[Dict[str, Any]]:
    """
    Extracts user claims from the Cognito authorizer context provided by
    API Gateway. Returns None when the request did not come through it.
    """
    try:
        # The claims are added to the request scope by the Mangum adapter
        claims = request.scope['aws.event']['requestContext']['authorizer']['claims']
    except KeyError:
        return None
    return claims if claims.get("sub") else None


# --- Token Generation ---
def create_final_api_token(account_id: str, profile_id: Optional[str] = None) -> str:
    """Creates the API session JWT. `sub` is the authenticated account id."""
    payload = {
        "sub": account_id,
        "profile_id": profile_id,
        "aud": API_TOKEN_AUDIENCE,
        "exp": time.time() + (API_TOKEN_EXPIRY_MINUTES * 60),
        "iat": time.time()
    }
    token = pyjwt.encode(payload, API_JWT_SECRET, algorithm=JWT_ALGORITHM)
    print(f"JWT: Generated API token for account: {account_id}")
    return token

# --- Authentication Dependencies ---
oauth2_scheme_api = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

async def verify_api_token(token: str) -> Dict[str, Any]:
    """Verifies the backend's own API session token and returns its payload."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate API credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = pyjwt.decode(
            token,
            API_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=API_TOKEN_AUDIENCE
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API token has expired")
    except pyjwt.InvalidAudienceError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token audience")
    except pyjwt.PyJWTError:
        raise credentials_exception

    if not payload.get("sub"):
        raise credentials_exception
    return payload


async def get_current_account_id(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme_api)
) -> str:
    """
    Resolves the authenticated account: API Gateway authorizer claims first,
    then the bearer API token issued by /auth/login.
    """
    claims = get_authorizer_claims(request)
    if claims:
        return claims["sub"]
    if token:
        payload = await verify_api_token(token)
        return payload["sub"]
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_profile(account_id: str = Depends(get_current_account_id)) -> Profile:
    """The caller's profile, passed explicitly into every operation."""
    profile = db_get_profile_for_account(account_id)
    if not profile:
        raise NotFound("No profile exists for this account. Complete onboarding first.")
    return profile
