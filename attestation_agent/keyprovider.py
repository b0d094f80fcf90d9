"""Extraction of the KBC name, KBS URI and annotation from key provider requests."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from attestation_agent.message import ERR_ANNOTATION_EMPTY, KeyProviderInput, MessageError

AGENT_NAME = "attestation-agent"

ERR_ANNOTATION_NOT_BASE64 = "annotation is not base64 encoded"
ERR_DC_EMPTY = "missing Dc value"
ERR_KBC_KBS_NOT_BASE64 = "KBC/KBS pair not base64 encoded"
ERR_KBC_KBS_NOT_FOUND = "KBC/KBS pair not found"
ERR_NO_KBC_NAME = "missing KBC name"
ERR_NO_KBS_URI = "missing KBS URI"
ERR_WRONG_DC_PARAM = "Dc parameter not destined for agent"

KBC_KBS_PAIR_SEP = "::"


class KeyProviderError(MessageError):
    """Raised when a key provider request lacks what the agent needs."""


def _b64decode(value: str, error: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise KeyProviderError(f"{error}: {exc!r}") from exc


def _utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise KeyProviderError(f"invalid utf-8 sequence: {exc}") from exc


def get_annotation(kpi: KeyProviderInput) -> str:
    """Return the base64-decoded annotation of an unwrap request."""
    encoded = kpi.keyunwrapparams.annotation
    if encoded is None:
        raise KeyProviderError(ERR_ANNOTATION_EMPTY)
    annotation = _utf8(_b64decode(encoded, ERR_ANNOTATION_NOT_BASE64))
    if not annotation:
        raise KeyProviderError(ERR_ANNOTATION_EMPTY)
    return annotation


def str_to_kbc_kbs(value: str) -> tuple[str, str]:
    """Split ``KBC_NAME::KBS_URI`` at the first separator."""
    kbc_name, sep, kbs_uri = value.partition(KBC_KBS_PAIR_SEP)
    if not sep:
        raise KeyProviderError(ERR_KBC_KBS_NOT_FOUND)
    if not kbc_name:
        raise KeyProviderError(ERR_NO_KBC_NAME)
    if not kbs_uri:
        raise KeyProviderError(ERR_NO_KBS_URI)
    return kbc_name, kbs_uri


def get_kbc_kbs_pair(kpi: KeyProviderInput) -> tuple[str, str]:
    """Return ``(kbc_name, kbs_uri)`` from the Dc parameter destined for the agent.

    The expected Dc is ``{"Parameters": {"attestation-agent": [base64("KBC::URI")]}}``.
    """
    dc = kpi.keyunwrapparams.dc
    if dc is None:
        raise KeyProviderError(ERR_DC_EMPTY)
    values = dc.parameters.get(AGENT_NAME)
    if values is None:
        raise KeyProviderError(ERR_WRONG_DC_PARAM)
    if not values:
        raise KeyProviderError(ERR_DC_EMPTY)
    pair = _utf8(_b64decode(values[0], ERR_KBC_KBS_NOT_BASE64))
    return str_to_kbc_kbs(pair)


@dataclass(frozen=True)
class InputPayload:
    """What the agent needs to unwrap a key; ``kbs_uri`` carries no scheme prefix."""

    kbc_name: str = ""
    kbs_uri: str = ""
    annotation: str = ""

    @classmethod
    def from_key_provider_input(cls, kpi: KeyProviderInput) -> InputPayload:
        annotation = get_annotation(kpi)
        kbc_name, kbs_uri = get_kbc_kbs_pair(kpi)
        return cls(kbc_name=kbc_name, kbs_uri=kbs_uri, annotation=annotation)

    @classmethod
    def from_bytes(cls, data: bytes) -> InputPayload:
        """Parse and validate a JSON request, then extract the payload."""
        return cls.from_key_provider_input(KeyProviderInput.from_bytes(data))