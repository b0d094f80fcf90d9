"""Encryption of image layer optsdata and generation of the key provider annotation."""

from __future__ import annotations

import base64
import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

log = logging.getLogger(__name__)

# Only for the sample key provider.
HARDCODED_KEY = bytes(
    [
        217, 155, 119, 5, 176, 186, 122, 22, 130, 149, 179, 163, 54, 114, 112, 176,
        221, 155, 55, 27, 245, 20, 202, 139, 155, 167, 240, 163, 55, 17, 218, 234,
    ]
)

HARD_CODED_KEYID = "kbs:///default/test-key/1"
DEFAULT_KEY_REPO_PATH = "default/image-kek"
KBS_RESOURCE_URL_PREFIX = "kbs://"

_KEY_LENGTH = 32
_IV_LENGTH = 12


class Algorithm(str, Enum):
    """Encryption algorithm written into the annotation's ``wrap_type``."""

    A256GCM = "A256GCM"
    A256CTR = "A256CTR"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AnnotationPacket:
    """Content of an encrypted layer's attestation-agent annotation."""

    kid: str
    wrapped_data: str
    iv: str
    wrap_type: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str | bytes) -> AnnotationPacket:
        data = json.loads(text)
        try:
            return cls(
                kid=data["kid"],
                wrapped_data=data["wrapped_data"],
                iv=data["iv"],
                wrap_type=data["wrap_type"],
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid annotation packet: {exc}") from exc


@dataclass
class InputParams:
    """Parameters of an encryption request."""

    sample: bool = False
    keyid: str | None = None
    keypath: str | None = None
    algorithm: Algorithm = field(default=Algorithm.A256GCM)


def encrypt(data: bytes, key: bytes, iv: bytes, algorithm: Algorithm) -> bytes:
    """Encrypt ``data`` with a 32-byte key; GCM output carries the tag appended."""
    if len(key) != _KEY_LENGTH:
        raise ValueError(f"key must be {_KEY_LENGTH} bytes, got {len(key)}")
    algorithm = Algorithm(algorithm)
    if algorithm is Algorithm.A256GCM:
        return AESGCM(bytes(key)).encrypt(bytes(iv), bytes(data), None)
    encryptor = Cipher(algorithms.AES(bytes(key)), modes.CTR(bytes(iv))).encryptor()
    return encryptor.update(bytes(data)) + encryptor.finalize()


def parse_input_params(text: str) -> InputParams:
    """Parse ``key1=value1::key2=value2::...`` into request parameters."""
    fields: dict[str, str] = {}
    for item in text.split("::"):
        name, sep, value = item.partition("=")
        if sep:
            fields[name] = value
    log.debug("Get new request: %r", fields)

    algorithm = Algorithm.A256GCM
    # The algorithm is read from the keypath field.
    selector = fields.get("keypath")
    if selector is not None:
        try:
            algorithm = Algorithm(selector)
        except ValueError:
            pass

    return InputParams(
        sample=fields.get("sample") == "true",
        keyid=fields.get("keyid"),
        keypath=fields.get("keypath"),
        algorithm=algorithm,
    )


def _random_kid() -> str:
    log.debug("no kid input, generate a random kid")
    return f"{DEFAULT_KEY_REPO_PATH}/{uuid.uuid4()}"


def generate_key_parameters(params: InputParams) -> tuple[bytes, bytes, str]:
    """Return ``(key, iv, kid)`` for the given request parameters."""
    if params.sample:
        log.info("Use sample keyprovider (HARDCODED KEY and IV)")
        return HARDCODED_KEY, bytes(_IV_LENGTH), HARD_CODED_KEYID

    if params.keypath is not None:
        log.debug("use given key from: %s", params.keypath)
        key = Path(params.keypath).read_bytes()
    else:
        log.debug("no key input, generate a random key")
        key = os.urandom(_KEY_LENGTH)
    iv = os.urandom(_IV_LENGTH)
    kid = params.keyid if params.keyid is not None else _random_kid()
    return key, iv, kid


def enc_optsdata_gen_anno(optsdata: bytes, params: list[str]) -> str:
    """Encrypt ``optsdata`` as requested by ``params[0]`` and return the annotation JSON."""
    if not params:
        raise ValueError("missing encryption parameters")
    input_params = parse_input_params(params[0])
    key, iv, kid = generate_key_parameters(input_params)
    algorithm = input_params.algorithm
    encrypted = encrypt(optsdata, key, iv, algorithm)

    packet = AnnotationPacket(
        kid=f"{KBS_RESOURCE_URL_PREFIX}/{kid}",
        wrapped_data=base64.b64encode(encrypted).decode("ascii"),
        iv=base64.b64encode(iv).decode("ascii"),
        wrap_type=str(algorithm),
    )
    return packet.to_json()