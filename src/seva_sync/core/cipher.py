"""
Public-key sealing of secret values.

GitHub only accepts secret values sealed (libsodium sealed box) with the
destination's current public key. Keys are fetched immediately before
each encryption and never cached, since key IDs rotate.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from nacl import exceptions as nacl_exceptions
from nacl.public import PublicKey as NaclPublicKey, SealedBox

from seva_sync.integrations.github import get_public_key
from seva_sync.models.secret import Provider, PublicKey
from seva_sync.utils.logging import get_logger

KEY_SIZE = 32


class EncryptionError(ValueError):
	"""A secret value could not be sealed."""


def encrypt(key: PublicKey | str, plaintext: str) -> str:
	"""
	Seal ``plaintext`` for the holder of ``key``'s private half.

	Parameters:
		key: PublicKey model or its base64 ``key`` string.
		plaintext: Secret value.

	Returns:
		Base64-encoded sealed box.

	Raises:
		EncryptionError: If the key is not base64 or not 32 bytes.
	"""
	encoded = key.key if isinstance(key, PublicKey) else key
	try:
		raw = base64.b64decode(encoded, validate=True)
	except (binascii.Error, ValueError, TypeError) as exc:
		raise EncryptionError(f"public key is not valid base64: {exc}") from exc
	if len(raw) != KEY_SIZE:
		raise EncryptionError(
		    f"public key must be {KEY_SIZE} bytes, got {len(raw)}")
	try:
		box = SealedBox(NaclPublicKey(raw))
		sealed = box.encrypt(plaintext.encode("utf-8"))
	except (nacl_exceptions.CryptoError, UnicodeEncodeError) as exc:
		raise EncryptionError(f"sealing failed: {exc}") from exc
	return base64.b64encode(sealed).decode("ascii")


class PublicKeyCipher:
	"""Fetches provider public keys and seals values against them."""

	def __init__(self, api: Any, logger: logging.Logger | None = None):
		self.api = api
		self.logger = logger or get_logger(__name__)

	def fetch_key(self, owner: str, provider: Provider,
	              repo: str | None = None) -> PublicKey:
		target = f"{owner}/{repo}" if repo else owner
		self.logger.debug("getting %s public key for %s", provider.value,
		                  target)
		return get_public_key(self.api, owner, provider, repo)

	def encrypt(self, key: PublicKey, plaintext: str) -> str:
		return encrypt(key, plaintext)

	def seal(self, owner: str, provider: Provider, plaintext: str,
	         repo: str | None = None) -> tuple[str, str]:
		"""Fetch the destination key and seal ``plaintext``.

		Returns:
			(key_id, encrypted_value)
		"""
		key = self.fetch_key(owner, provider, repo)
		return key.key_id, self.encrypt(key, plaintext)


__all__ = ["PublicKeyCipher", "EncryptionError", "encrypt", "KEY_SIZE"]
