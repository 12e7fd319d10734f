# dalali/routes/profile.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import current_user
from ..services.items import catalog
from ..services.profiles import get_profile, update_profile

router = APIRouter(tags=["profile"])


class ProfileIn(BaseModel):
    company_name: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = None
    pan_number: Optional[str] = Field(None, max_length=10)
    mobile_number: Optional[str] = Field(None, max_length=15)


class ProfileOut(ProfileIn):
    id: str
    complete: bool


@router.get("/profile", response_model=ProfileOut)
async def read_profile(user_id: str = Depends(current_user)):
    return await get_profile(user_id)


@router.put("/profile", response_model=ProfileOut)
async def write_profile(body: ProfileIn, user_id: str = Depends(current_user)):
    return await update_profile(user_id, body.model_dump(exclude_unset=True))


@router.get("/catalog")
async def read_catalog(user_id: str = Depends(current_user)):
    """Items, categories and stakeholders for the order screen, fetched in parallel."""
    return await catalog(user_id)
