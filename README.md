# attestation_agent

This package provides building blocks for the key provider side of encrypted
container images:

- decrypting and encrypting image layer keys;
- parsing and validating key provider protocol messages;
- a request handler for key unwrap calls;
- helpers for the SEV secret kernel module.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `attestation_agent.crypto`

Decrypts wrapped keys.

- `decrypt(key, ciphertext, iv, wrap_type)` accepts `"A256GCM"` or
  `"A256CTR"` as the wrap type. These are the values of `WrapType`.
- It raises `DecryptionError` for an unknown wrap type, for a key that is not
  32 bytes long, and for a failed decryption.
- `decrypt_aes256_gcm` and `decrypt_aes256_ctr` can also be called directly.
  GCM input must carry its 16-byte tag at the end.

### `attestation_agent.encryption`

Encrypts data and produces an annotation.

`enc_optsdata_gen_anno(optsdata, params)` parses `params[0]` with
`parse_input_params`. The string has the form `key=value::key=value::...` and
the recognised keys are `sample`, `keyid` and `keypath`.

- With `sample=true`, it uses the fixed `HARDCODED_KEY`, an all-zero 12-byte
  IV and the key id `HARD_CODED_KEYID`.
- Otherwise it reads the key from `keypath`, or generates a random 32-byte key
  if no path is given.
- It always generates a random IV in this case.
- It uses the given `keyid`, or generates `default/image-kek/<uuid>` if none
  is given.

The data is then encrypted with `encrypt`. The result is returned as an
`AnnotationPacket` serialised to JSON. The packet fields are `kid`,
`wrapped_data`, `iv` and `wrap_type`, and the wrap type is an `Algorithm`
value.

The algorithm defaults to `A256GCM`. `parse_input_params` only selects
`A256CTR` when the `keypath` value is exactly `A256CTR`.

### `attestation_agent.message`

Contains the key provider protocol messages:

- `KeyProviderInput`, `KeyWrapParams`, `KeyUnwrapParams`, `Dc` and `Ec`;
- the output types `KeyWrapOutput`, `KeyWrapResults`, `KeyUnwrapOutput` and
  `KeyUnwrapResults`.

`KeyProviderInput.from_bytes` parses and validates a JSON request. It raises
`MessageError` when:

- the operation is missing, invalid or `keywrap`;
- the wrap parameters are not empty;
- the unwrap parameters lack a Dc or an annotation.

### `attestation_agent.keyprovider`

`InputPayload.from_bytes` and `InputPayload.from_key_provider_input` turn a
request into the KBC name, the KBS URI and the decoded annotation. The helpers
`get_annotation`, `get_kbc_kbs_pair` and `str_to_kbc_kbs` are also available.

The expected Dc is `{"Parameters": {"attestation-agent": [base64("KBC::URI")]}}`.

### `attestation_agent.service`

`KeyProvider(unwrapper)` handles serialised unwrap requests.

- `un_wrap_key` calls `unwrapper(kbc_name, kbs_uri, annotation)` under a lock.
- It returns the reply body built by `unwrap_output_bytes`.
- Failures are raised as `ServiceError`, which has `code` and `message`
  attributes.
- `wrap_key` always raises `ServiceError` with code `"unimplemented"`.

### `attestation_agent.sev`

- `SecretKernelModule` loads the `efi_secret` kernel module with
  `/sbin/modprobe`. It unloads the module on `unload()` or at the end of a
  `with` block.
- `mount_security_fs` mounts securityfs at `/sys/kernel/security`.
- Failures raise `SevError`. Both need root privileges.

## Example

```python
import base64

from attestation_agent.crypto import decrypt
from attestation_agent.encryption import HARDCODED_KEY, AnnotationPacket, enc_optsdata_gen_anno

annotation_json = enc_optsdata_gen_anno(b"layer key", ["sample=true"])
packet = AnnotationPacket.from_json(annotation_json)
plain = decrypt(
    HARDCODED_KEY,
    base64.b64decode(packet.wrapped_data),
    base64.b64decode(packet.iv),
    packet.wrap_type,
)
assert plain == b"layer key"
```

## What this package does not do

- There is no command-line program and no network server. `KeyProvider` only
  handles request bytes passed to it; listening on a socket is left to the
  caller.
- No key broker clients are included. The caller supplies the function that
  actually fetches or unwraps keys.
- Generated keys are not registered with a key broker service.