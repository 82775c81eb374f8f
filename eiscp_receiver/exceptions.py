# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

class EiscpError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class EiscpProtocolError(EiscpError):
  """A frame received from (or passed as) a receiver packet is malformed or uses an unsupported layout."""
  pass

class CommandResolutionError(EiscpError):
  """Base class for failures translating a high-level command into an ISCP message."""
  pass

class ParseError(CommandResolutionError):
  """A high-level command string cannot be split into zone, command and argument."""
  pass

class UnknownZoneError(CommandResolutionError):
  """The zone is not present in the command dictionary."""
  pass

class UnknownCommandError(CommandResolutionError):
  """No command name or alias in the zone matches."""
  pass

class UnknownValueError(CommandResolutionError):
  """The argument is neither a named value nor an integer accepted by the command."""
  pass

class ValueOutOfRangeError(UnknownValueError):
  """The argument is an integer, but no integer range of the command contains it."""
  pass

class UnsupportedForModelError(CommandResolutionError):
  """The argument is valid for the command, but not for the connected receiver model."""
  pass

class NotConnectedError(EiscpError):
  """A message was sent while the client is not connected to a receiver."""
  pass

class NetworkError(EiscpError):
  """A socket-level failure on the receiver connection."""
  pass
