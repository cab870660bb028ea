"""Pydantic request schemas for the HTTP invocation surface."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class InitRequest(BaseModel):
    args: List[str] = Field(default_factory=list, description="Exactly [key, value]")


class InvokeRequest(BaseModel):
    function: str = Field(..., description="set | get | set_addipfs | get_catipfs")
    args: List[str] = Field(default_factory=list, description="Positional string arguments")
