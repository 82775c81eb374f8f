#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an eISCP receiver.

Run with, e.g.:

    uvicorn eiscp_receiver.rest_server:receiver_api
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import time
import os
import json

from contextlib import asynccontextmanager

from .logger import logger
from ..internal_types import *
from ..exceptions import CommandResolutionError
from .. import (
    EiscpReceiverClient,
    EiscpClientConfig,
  )

from .api import router as api_router

def load_raw_config() -> JsonableDict:
    """Reads the JSON config named by EISCP_RECEIVER_CONFIG, or ./eiscp_receiver_config.json
       if it exists. Missing config is an empty dict."""
    config_file = os.environ.get("EISCP_RECEIVER_CONFIG", None)
    if config_file is None:
        if os.path.exists("eiscp_receiver_config.json"):
            config_file = "eiscp_receiver_config.json"
    if config_file is None:
        return {}
    with open(config_file, "r") as f:
        raw_config: JsonableDict = json.load(f)
    return raw_config

@asynccontextmanager
async def fastapi_lifetime(app: FastAPI) -> AsyncIterator[None]:
    """
    A context manager that initializes and cleans up for FastAPI.
    """
    receiver_client: Optional[EiscpReceiverClient] = None
    try:
        logger.info("Receiver REST server starting up--initializing...")
        raw_config = load_raw_config()
        app.state.raw_config = raw_config
        # The server stays up while the receiver is unreachable, and reconnects when it returns
        receiver_config = EiscpClientConfig.from_jsonable(raw_config)
        if not 'reconnect' in raw_config:
            receiver_config.reconnect = True
        app.state.receiver_config = receiver_config
        app.state.launch_time = time.monotonic()
        receiver_client = EiscpReceiverClient(config=receiver_config)
        app.state.receiver_client = receiver_client
        if await receiver_client.connect():
            logger.info(f"Serving API for receiver at {receiver_client}...")
        else:
            logger.warning(f"Receiver not connected at startup ({receiver_client}); serving anyway")

        logger.info("Receiver REST server initialization done; starting server...")
        yield
    finally:
        logger.info("Receiver REST server shutting down--cleaning up...")
        if receiver_client is not None:
            await receiver_client.disconnect()

receiver_api = FastAPI(lifespan=fastapi_lifetime)
receiver_api.include_router(api_router)

@receiver_api.exception_handler(CommandResolutionError)
async def command_resolution_error_handler(request: Request, exc: CommandResolutionError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=dict(detail=str(exc), error=exc.__class__.__name__),
      )

