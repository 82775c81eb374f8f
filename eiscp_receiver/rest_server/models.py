# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Request and response bodies of the receiver REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..internal_types import *

class CommandRequest(BaseModel):
    """A high-level command, e.g. "main.system-power=on"."""

    command: str = Field(min_length=1)

class RawRequest(BaseModel):
    """A raw ISCP message, e.g. "PWR01"."""

    message: str = Field(min_length=3)

class SendResponse(BaseModel):
    result: bool
    iscp_command: str
    msg: str = ""

class StatusResponse(BaseModel):
    version: str
    state: str
    connected: bool
    host: Optional[str] = None
    port: Optional[int] = None
    model: Optional[str] = None
    uptime_secs: float

class CommandListResponse(BaseModel):
    zone: str
    commands: List[str]

class ValueListResponse(BaseModel):
    zone: str
    command: str
    values: List[str]
