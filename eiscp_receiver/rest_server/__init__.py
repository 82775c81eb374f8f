# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an eISCP receiver.
"""
from .app import receiver_api
from .api import router, get_receiver_client
