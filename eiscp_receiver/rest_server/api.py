# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Routes of the receiver REST API, mounted under /api/v1.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Request

from .logger import logger
from ..internal_types import *
from .. import __version__ as pkg_version
from ..client import EiscpReceiverClient, SendResult
from .models import (
    CommandRequest,
    RawRequest,
    SendResponse,
    StatusResponse,
    CommandListResponse,
    ValueListResponse,
  )

router = APIRouter(prefix="/api/v1")

def get_receiver_client(request: Request) -> EiscpReceiverClient:
    return request.app.state.receiver_client

def _send_response(result: SendResult) -> SendResponse:
    if not result:
        raise HTTPException(status_code=503, detail=result.msg or "Receiver not connected")
    return SendResponse(**result.to_jsonable())

@router.get("/status")
async def get_status(
        request: Request,
        client: EiscpReceiverClient = Depends(get_receiver_client),
      ) -> StatusResponse:
    launch_time: float = getattr(request.app.state, "launch_time", time.monotonic())
    return StatusResponse(
        version=pkg_version,
        state=client.state.value,
        connected=client.is_connected,
        host=client.host,
        port=client.port,
        model=client.model,
        uptime_secs=time.monotonic() - launch_time,
      )

@router.get("/zones/{zone}/commands")
async def get_commands(
        zone: str,
        client: EiscpReceiverClient = Depends(get_receiver_client),
      ) -> CommandListResponse:
    return CommandListResponse(zone=zone, commands=client.get_commands(zone))

@router.get("/zones/{zone}/commands/{command}")
async def get_command_values(
        zone: str,
        command: str,
        client: EiscpReceiverClient = Depends(get_receiver_client),
      ) -> ValueListResponse:
    return ValueListResponse(zone=zone, command=command, values=client.get_command(f"{zone}.{command}"))

@router.post("/command")
async def post_command(
        body: CommandRequest,
        client: EiscpReceiverClient = Depends(get_receiver_client),
      ) -> SendResponse:
    # Unresolvable commands raise CommandResolutionError, which the app maps to 400
    result = await client.command(body.command)
    logger.debug(f"REST command {body.command!r}: {result}")
    return _send_response(result)

@router.post("/raw")
async def post_raw(
        body: RawRequest,
        client: EiscpReceiverClient = Depends(get_receiver_client),
      ) -> SendResponse:
    return _send_response(await client.raw(body.message))
