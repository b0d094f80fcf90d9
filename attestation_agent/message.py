"""Messages of the key provider protocol exchanged with image decryption clients."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field, replace
from typing import Any

ERR_INVALID_OP = "invalid operator"
ERR_ANNOTATION_EMPTY = "annotation cannot be empty"
ERR_MISSING_OP = "missing operator"
ERR_UNSUPPORTED_OP = "unsupported operator"
ERR_UNWRAP_PARAMS_NO_ANNOTATION = "keyunwrap parameters must include annotation"
ERR_UNWRAP_PARAMS_NO_DC = "keyunwrap parameters must include Dc"
ERR_WRAP_PARAMS_EXPECT_EMPTY_EC = "keywrap parameters should not include Ec"
ERR_WRAP_PARAMS_EXPECT_EMPTY_OPTSDATA = "keywrap parameters should not include optsdata"
OP_KEY_UNWRAP = "keyunwrap"
OP_KEY_WRAP = "keywrap"


class MessageError(ValueError):
    """Raised when a key provider message is malformed or invalid."""


def _quoted(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


def _expect_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise MessageError(f"invalid type for {what}: expected an object")
    return data


def _required(data: dict, name: str) -> Any:
    if name not in data:
        raise MessageError(f"missing field `{name}`")
    return data[name]


def _optional_str(data: dict, name: str) -> str | None:
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise MessageError(f"invalid type for `{name}`: expected a string")
    return value


def _parameters(data: dict) -> dict[str, list[str]]:
    raw = _expect_dict(_required(data, "Parameters"), "`Parameters`")
    parameters: dict[str, list[str]] = {}
    for name, values in raw.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise MessageError(
                f"invalid type for parameter {_quoted(name)}: expected a list of strings"
            )
        parameters[name] = list(values)
    return parameters


@dataclass(frozen=True)
class Dc:
    """Decryption config; values for the agent are expected to be base64 encoded."""

    parameters: dict[str, list[str]] = field(default_factory=dict)

    def empty(self) -> bool:
        return not self.parameters

    def to_dict(self) -> dict:
        return {"Parameters": {k: list(v) for k, v in self.parameters.items()}}

    @classmethod
    def from_dict(cls, data: Any) -> Dc:
        data = _expect_dict(data, "Dc")
        return cls(parameters=_parameters(data))


@dataclass(frozen=True)
class Ec:
    """Encryption config."""

    parameters: dict[str, list[str]] = field(default_factory=dict)
    decrypt_config: Dc = field(default_factory=Dc)

    def empty(self) -> bool:
        return not self.parameters and self.decrypt_config.empty()

    def to_dict(self) -> dict:
        return {
            "Parameters": {k: list(v) for k, v in self.parameters.items()},
            "DecryptConfig": self.decrypt_config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Ec:
        data = _expect_dict(data, "Ec")
        return cls(
            parameters=_parameters(data),
            decrypt_config=Dc.from_dict(_required(data, "DecryptConfig")),
        )


@dataclass(frozen=True)
class KeyWrapParams:
    """Parameters of a key wrap request; both are expected to be empty here."""

    ec: Ec | None = None
    optsdata: str | None = None

    def valid(self) -> None:
        if self.ec is not None and not self.ec.empty():
            raise MessageError(ERR_WRAP_PARAMS_EXPECT_EMPTY_EC)
        if self.optsdata:
            raise MessageError(ERR_WRAP_PARAMS_EXPECT_EMPTY_OPTSDATA)

    def with_ec(self, ec: Ec) -> KeyWrapParams:
        return replace(self, ec=ec)

    def with_opts_data(self, data: str) -> KeyWrapParams:
        return replace(self, optsdata=data)

    def to_dict(self) -> dict:
        return {
            "ec": None if self.ec is None else self.ec.to_dict(),
            "optsdata": self.optsdata,
        }

    @classmethod
    def from_dict(cls, data: Any) -> KeyWrapParams:
        data = _expect_dict(data, "keywrapparams")
        ec = data.get("ec")
        return cls(
            ec=None if ec is None else Ec.from_dict(ec),
            optsdata=_optional_str(data, "optsdata"),
        )


@dataclass(frozen=True)
class KeyUnwrapParams:
    """Parameters of a key unwrap request: decryption config and annotation."""

    dc: Dc | None = None
    annotation: str | None = None

    def valid(self) -> None:
        if self.dc is None or self.dc.empty():
            raise MessageError(ERR_UNWRAP_PARAMS_NO_DC)
        if not self.annotation:
            raise MessageError(ERR_UNWRAP_PARAMS_NO_ANNOTATION)

    def with_dc(self, dc: Dc) -> KeyUnwrapParams:
        return replace(self, dc=dc)

    def with_base64_annotation(self, base64_annotation: str) -> KeyUnwrapParams:
        return replace(self, annotation=base64_annotation)

    def with_annotation(self, annotation: str) -> KeyUnwrapParams:
        encoded = base64.b64encode(annotation.encode("utf-8")).decode("ascii")
        return self.with_base64_annotation(encoded)

    def to_dict(self) -> dict:
        return {
            "dc": None if self.dc is None else self.dc.to_dict(),
            "annotation": self.annotation,
        }

    @classmethod
    def from_dict(cls, data: Any) -> KeyUnwrapParams:
        data = _expect_dict(data, "keyunwrapparams")
        dc = data.get("dc")
        return cls(
            dc=None if dc is None else Dc.from_dict(dc),
            annotation=_optional_str(data, "annotation"),
        )


@dataclass(frozen=True)
class KeyProviderInput:
    """A key provider request; only the ``keyunwrap`` operation is served."""

    op: str = ""
    keywrapparams: KeyWrapParams = field(default_factory=KeyWrapParams)
    keyunwrapparams: KeyUnwrapParams = field(default_factory=KeyUnwrapParams)

    def valid(self) -> None:
        if self.op == OP_KEY_WRAP:
            raise MessageError(
                f"{ERR_UNSUPPORTED_OP}: {_quoted(self.op)}: "
                "use a different key provider to encrypt images"
            )
        if self.op == "":
            raise MessageError(ERR_MISSING_OP)
        if self.op != OP_KEY_UNWRAP:
            raise MessageError(f"{ERR_INVALID_OP}: {_quoted(self.op)}")
        self.keywrapparams.valid()
        self.keyunwrapparams.valid()

    def with_op(self, op: str) -> KeyProviderInput:
        return replace(self, op=op)

    def with_key_wrap_params(self, params: KeyWrapParams) -> KeyProviderInput:
        return replace(self, keywrapparams=params)

    def with_key_unwrap_params(self, params: KeyUnwrapParams) -> KeyProviderInput:
        return replace(self, keyunwrapparams=params)

    def to_dict(self) -> dict:
        return {
            "op": self.op,
            "keywrapparams": self.keywrapparams.to_dict(),
            "keyunwrapparams": self.keyunwrapparams.to_dict(),
        }

    def to_json(self) -> str:
        return _compact(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> KeyProviderInput:
        data = _expect_dict(data, "KeyProviderInput")
        op = _required(data, "op")
        if not isinstance(op, str):
            raise MessageError("invalid type for `op`: expected a string")
        return cls(
            op=op,
            keywrapparams=KeyWrapParams.from_dict(_required(data, "keywrapparams")),
            keyunwrapparams=KeyUnwrapParams.from_dict(_required(data, "keyunwrapparams")),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> KeyProviderInput:
        """Parse a JSON request and check that it is a valid unwrap request."""
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MessageError(f"invalid utf-8 sequence: {exc}") from exc
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MessageError(str(exc)) from exc
        message = cls.from_dict(raw)
        message.valid()
        return message


@dataclass(frozen=True)
class KeyWrapResults:
    annotation: bytes


@dataclass(frozen=True)
class KeyWrapOutput:
    keywrapresults: KeyWrapResults

    def to_json(self) -> str:
        return _compact({"keywrapresults": {"annotation": list(self.keywrapresults.annotation)}})


@dataclass(frozen=True)
class KeyUnwrapResults:
    optsdata: bytes


@dataclass(frozen=True)
class KeyUnwrapOutput:
    keyunwrapresults: KeyUnwrapResults

    def to_json(self) -> str:
        return _compact({"keyunwrapresults": {"optsdata": list(self.keyunwrapresults.optsdata)}})