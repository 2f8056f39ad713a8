# -*- coding: utf-8 -*-
"""Request bodies for the HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from plate_palette.services.catalog_client import FoodRecord


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    weekly_goal: Optional[int] = None
    timezone: Optional[str] = Field(None, description="IANA zone, e.g. 'Europe/Berlin'")


class BatchLogRequest(BaseModel):
    foods: List[FoodRecord] = Field(..., min_length=1, max_length=50)


class FriendRequestBody(BaseModel):
    email: Optional[str] = None
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "FriendRequestBody":
        if bool(self.email) == bool(self.user_id):
            raise ValueError("provide exactly one of 'email' or 'user_id'")
        return self


class RespondRequest(BaseModel):
    accept: bool


class ReactionRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)
