"""Caller identity handed over by the authentication layer."""

from __future__ import annotations

from pydantic import BaseModel


class Identity(BaseModel):
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    access_token: str  # bearer credential for the bot API
