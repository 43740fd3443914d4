"""
TOTP authorization for outbound requests.
[CTX:PBI-1:1-2:AUTH]

Every authenticated request carries ``Authorization: GFAPI <key>:<code>``
where ``code`` is a time-based one-time passcode derived from the shared
secret. Codes are a pure function of the secret and the current time bucket.
"""
import base64
import hashlib
import time
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

import pyotp

from .errors import ConfigurationError

AUTH_SCHEME = "GFAPI"

ENVIRONMENTS = ("production", "test", "development")

SUPPORTED_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}

SUPPORTED_ENCODINGS = ("base32", "ascii", "hex")


@dataclass(frozen=True)
class Credential:
    """
    API key plus TOTP secret configuration.

    Attributes:
        key: Public API key, optionally prefixed with ``<env>-``
        secret: Shared TOTP secret in ``encoding``
        algorithm: HMAC digest name (sha1, sha256, sha512)
        encoding: Secret encoding (base32, ascii, hex)
        digits: Passcode length
        period: Time step in seconds
    """

    key: str
    secret: str
    algorithm: str = "sha1"
    encoding: str = "base32"
    digits: int = 6
    period: int = 30

    @classmethod
    def build(
        cls,
        key: str,
        secret: Union[str, Mapping[str, Any]],
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> "Credential":
        """
        Create a credential from a key and a secret string or mapping.

        Mapping fields override ``defaults``, which override the class
        defaults, e.g. ``{"secret": "JBSW...", "digits": 6}``.
        """
        options: dict[str, Any] = dict(defaults or {})
        if isinstance(secret, Mapping):
            options.update(secret)
        else:
            options["secret"] = secret

        if not key:
            raise ConfigurationError("API key must not be empty")
        if not options.get("secret"):
            raise ConfigurationError("TOTP secret must not be empty")

        return cls(
            key=key,
            secret=str(options["secret"]),
            algorithm=str(options.get("algorithm", cls.algorithm)).lower(),
            encoding=str(options.get("encoding", cls.encoding)).lower(),
            digits=int(options.get("digits", cls.digits)),
            period=int(options.get("period", cls.period)),
        )

    @property
    def environment(self) -> str:
        """Server environment selected by the key prefix."""
        parts = self.key.split("-")
        if len(parts) == 1:
            return "production"
        if parts[0] not in ENVIRONMENTS:
            raise ConfigurationError(
                f"Unknown environment prefix '{parts[0]}' in API key"
            )
        return parts[0]


def _base32_secret(credential: Credential) -> str:
    """Re-encode the secret as base32, which is what pyotp consumes."""
    secret = credential.secret
    if credential.encoding == "base32":
        return secret.replace(" ", "").upper()
    if credential.encoding == "ascii":
        raw = secret.encode("utf-8")
    elif credential.encoding == "hex":
        try:
            raw = bytes.fromhex(secret)
        except ValueError as e:
            raise ConfigurationError(f"TOTP secret is not valid hex: {e}") from e
    else:
        raise ConfigurationError(
            f"Unsupported TOTP encoding '{credential.encoding}', "
            f"expected one of {', '.join(SUPPORTED_ENCODINGS)}"
        )
    return base64.b32encode(raw).decode("ascii")


def _utc(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def totp_for(credential: Credential) -> pyotp.TOTP:
    """
    Build a pyotp TOTP generator for the credential.

    Raises:
        ConfigurationError: If algorithm, encoding or secret is unusable
    """
    digest = SUPPORTED_ALGORITHMS.get(credential.algorithm)
    if digest is None:
        raise ConfigurationError(
            f"Unsupported TOTP algorithm '{credential.algorithm}'"
        )
    if credential.digits <= 0 or credential.period <= 0:
        raise ConfigurationError("TOTP digits and period must be positive")

    try:
        totp = pyotp.TOTP(
            _base32_secret(credential),
            digits=credential.digits,
            digest=digest,
            interval=credential.period,
        )
        # Decode once so a malformed secret fails here, not mid-request
        totp.byte_secret()
    except ValueError as e:
        raise ConfigurationError(
            f"TOTP secret is malformed for encoding '{credential.encoding}': {e}"
        ) from e
    return totp


def sign(credential: Credential, now_fn: Callable[[], float] = time.time) -> str:
    """
    Compute the Authorization header value for the current time bucket.

    Args:
        credential: Key and TOTP secret
        now_fn: Clock returning seconds since epoch

    Returns:
        Header value ``GFAPI <key>:<code>``

    Raises:
        ConfigurationError: If the secret cannot be used
    """
    code = totp_for(credential).at(_utc(now_fn()))
    return f"{AUTH_SCHEME} {credential.key}:{code}"


class Authenticator:
    """
    Holds a validated TOTP generator for one credential.

    Validation happens in the constructor so configuration errors surface
    when the client is created.
    """

    def __init__(
        self,
        credential: Credential,
        now_fn: Callable[[], float] = time.time,
    ):
        self.credential = credential
        self.now_fn = now_fn
        self._totp = totp_for(credential)

    def header(self) -> str:
        """Authorization header value for the current instant."""
        code = self._totp.at(_utc(self.now_fn()))
        return f"{AUTH_SCHEME} {self.credential.key}:{code}"
