# app/routers/profiles.py
#
# This router handles endpoints related to the caller's own profile:
# onboarding (creation), retrieval and partial updates.

from fastapi import APIRouter, Depends, status

from ..models import Profile, ProfileCreate, ProfileUpdate
from ..crud import db_create_profile, db_update_profile
from ..security import get_current_account_id, get_current_profile

router = APIRouter(tags=["Profiles"])


@router.post("/profiles", response_model=Profile, status_code=status.HTTP_201_CREATED)
def create_profile(
    profile_data: ProfileCreate,
    account_id: str = Depends(get_current_account_id)
):
    """
    First-login onboarding. Each account gets exactly one role-tagged profile;
    a second attempt is rejected with 409.
    """
    return db_create_profile(account_id, profile_data)


@router.get("/profiles/me", response_model=Profile)
def read_profile_me(profile: Profile = Depends(get_current_profile)):
    """Get the profile of the currently authenticated account."""
    return profile


@router.patch("/profiles/me", response_model=Profile)
def update_profile_me(
    updates: ProfileUpdate,
    profile: Profile = Depends(get_current_profile)
):
    """Updates the given fields. The role cannot be changed."""
    return db_update_profile(profile.id, profile.account_id, updates)
