"""Key provider service that unwraps image layer keys through the attestation agent."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from attestation_agent.keyprovider import AGENT_NAME, InputPayload
from attestation_agent.message import KeyUnwrapOutput, KeyUnwrapResults, MessageError

log = logging.getLogger(__name__)

CODE_INTERNAL = "internal"
CODE_UNIMPLEMENTED = "unimplemented"

Unwrapper = Callable[[str, str, str], bytes]


class ServiceError(Exception):
    """An RPC failure carrying a status code and a message for the caller."""

    def __init__(self, message: str, code: str = CODE_INTERNAL) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


def unwrap_output_bytes(optsdata: bytes) -> bytes:
    """Serialise decrypted optsdata as the key unwrap protocol output."""
    output = KeyUnwrapOutput(keyunwrapresults=KeyUnwrapResults(optsdata=bytes(optsdata)))
    return output.to_json().encode("utf-8")


class KeyProvider:
    """Serves key unwrap requests.

    ``unwrapper`` is called as ``unwrapper(kbc_name, kbs_uri, annotation)`` and
    returns the decrypted optsdata. Calls to it are serialised by a lock.
    """

    def __init__(self, unwrapper: Unwrapper) -> None:
        self._unwrapper = unwrapper
        self._lock = threading.Lock()

    def un_wrap_key(self, request: bytes) -> bytes:
        """Handle a serialised key unwrap request and return the serialised reply."""
        log.debug("The UnWrapKey API is called...")
        try:
            payload = InputPayload.from_bytes(request)
        except MessageError as exc:
            log.error("Parse request failed: %s", exc)
            raise ServiceError(
                f"[ERROR:{AGENT_NAME}] Parse request failed: {exc}", CODE_INTERNAL
            ) from exc

        log.debug("Call AA-KBC to decrypt...")
        with self._lock:
            try:
                optsdata = self._unwrapper(
                    payload.kbc_name, payload.kbs_uri, payload.annotation
                )
            except Exception as exc:
                log.error("Call AA-KBC to provide key failed: %s", exc)
                raise ServiceError(
                    f"[ERROR:{AGENT_NAME}] AA-KBC key provider failed: {exc}",
                    CODE_INTERNAL,
                ) from exc

        log.debug("Provide key successfully, get the plain PLBCO")
        output = unwrap_output_bytes(optsdata)
        log.debug("UnWrapKey API output: %s", output.decode("utf-8"))
        log.debug("Reply successfully!")
        return output

    def wrap_key(self, request: bytes) -> bytes:
        """Key wrapping is not offered by the agent; always raises."""
        log.debug("The WrapKey API is called...")
        log.debug("WrapKey API is unimplemented!")
        raise ServiceError(
            f"WrapKey API of {AGENT_NAME} is unimplemented!", CODE_UNIMPLEMENTED
        )