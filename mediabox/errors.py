"""
Exception hierarchy for the media store.

Bookkeeping lookups report "not there" with None/False. These exceptions
cover the cases where the caller has to be told why an operation was refused.
"""


class MediaboxError(Exception):
	"""Base exception for all media store errors."""
	pass


class NotFoundError(MediaboxError):
	"""Raised when a file id or folder path does not exist."""
	pass


class InvalidInputError(MediaboxError, ValueError):
	"""Raised for malformed PINs, empty names or illegal path segments."""
	pass


class StorageError(MediaboxError):
	"""Raised when a disk operation fails and nothing was committed."""
	pass


class RemoteFetchError(MediaboxError):
	"""Raised when downloading a file from a URL fails."""
	pass
