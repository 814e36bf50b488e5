"""
Request bodies for the RPC endpoints.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    reddit_id: str = Field(min_length=1)
    reddit_username: str = Field(min_length=1)
    avatar_url: str | None = None


class WagerRequest(BaseModel):
    reddit_id: str = Field(min_length=1)
    side: str
    amount: int


class HotPotatoWagerRequest(BaseModel):
    reddit_id: str = Field(min_length=1)
    predicted_hours: int
    amount: int


class BuyRequest(BaseModel):
    reddit_id: str = Field(min_length=1)
    stock_id: int
    chip_amount: int


class SellRequest(BaseModel):
    reddit_id: str = Field(min_length=1)
    stock_id: int
    shares: int
