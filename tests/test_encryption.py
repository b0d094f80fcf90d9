import base64
import json

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from attestation_agent.encryption import (
    HARDCODED_KEY,
    Algorithm,
    AnnotationPacket,
    InputParams,
    enc_optsdata_gen_anno,
    encrypt,
    generate_key_parameters,
    parse_input_params,
)

OPTSDATA = b"layer key material"


def test_parse_input_params():
    params = parse_input_params("sample=true::keyid=kbs:///default/key/test-tag")
    assert params.sample is True
    assert params.keyid == "kbs:///default/key/test-tag"
    assert params.keypath is None
    assert params.algorithm is Algorithm.A256GCM


def test_parse_input_params_non_boolean_sample():
    assert parse_input_params("sample=yes").sample is False


def test_parse_input_params_ignores_fields_without_equals_and_last_wins():
    params = parse_input_params("junk::keyid=a::keyid=b")
    assert params.keyid == "b"
    assert params.sample is False


def test_input_params_defaults():
    params = InputParams()
    assert (params.sample, params.keyid, params.keypath, params.algorithm) == (
        False,
        None,
        None,
        Algorithm.A256GCM,
    )


def test_generate_sample_parameters():
    key, iv, kid = generate_key_parameters(InputParams(sample=True))
    assert key == HARDCODED_KEY
    assert iv == bytes(12)
    assert kid == "kbs:///default/test-key/1"


def test_generate_random_parameters():
    key, iv, kid = generate_key_parameters(InputParams())
    assert len(key) == 32
    assert len(iv) == 12
    assert kid.startswith("default/image-kek/")
    other_key, _, other_kid = generate_key_parameters(InputParams())
    assert other_key != key and other_kid != kid


def test_generate_parameters_from_keypath(tmp_path):
    key_file = tmp_path / "kek"
    key_file.write_bytes(bytes(range(32)))
    key, iv, kid = generate_key_parameters(InputParams(keypath=str(key_file), keyid="my-kid"))
    assert key == bytes(range(32))
    assert len(iv) == 12
    assert kid == "my-kid"


def test_generate_parameters_missing_keyfile(tmp_path):
    with pytest.raises(OSError):
        generate_key_parameters(InputParams(keypath=str(tmp_path / "missing")))


def test_encrypt_gcm_round_trip():
    key = bytes(range(32))
    iv = bytes(12)
    ciphertext = encrypt(OPTSDATA, key, iv, Algorithm.A256GCM)
    assert len(ciphertext) == len(OPTSDATA) + 16
    assert AESGCM(key).decrypt(iv, ciphertext, None) == OPTSDATA


def test_encrypt_ctr_is_involution():
    key = bytes(range(32))
    iv = bytes(16)
    ciphertext = encrypt(OPTSDATA, key, iv, Algorithm.A256CTR)
    assert len(ciphertext) == len(OPTSDATA)
    assert encrypt(ciphertext, key, iv, Algorithm.A256CTR) == OPTSDATA


def test_encrypt_rejects_short_key():
    with pytest.raises(ValueError):
        encrypt(OPTSDATA, bytes(16), bytes(12), Algorithm.A256GCM)


def test_annotation_packet_round_trip():
    packet = AnnotationPacket(kid="k", wrapped_data="d", iv="i", wrap_type="A256CTR")
    text = packet.to_json()
    assert list(json.loads(text)) == ["kid", "wrapped_data", "iv", "wrap_type"]
    assert AnnotationPacket.from_json(text) == packet


def test_annotation_packet_missing_field():
    with pytest.raises(ValueError):
        AnnotationPacket.from_json('{"kid":"k"}')


def test_enc_optsdata_sample():
    packet = AnnotationPacket.from_json(enc_optsdata_gen_anno(OPTSDATA, ["sample=true"]))
    assert packet.kid == "kbs:////kbs:///default/test-key/1"
    assert packet.wrap_type == "A256GCM"
    assert packet.iv == base64.b64encode(bytes(12)).decode()
    wrapped = base64.b64decode(packet.wrapped_data)
    assert AESGCM(HARDCODED_KEY).decrypt(bytes(12), wrapped, None) == OPTSDATA


def test_enc_optsdata_with_keypath(tmp_path):
    key = bytes(range(100, 132))
    key_file = tmp_path / "kek"
    key_file.write_bytes(key)
    text = enc_optsdata_gen_anno(OPTSDATA, [f"keypath={key_file}::keyid=default/key/test-tag"])
    packet = AnnotationPacket.from_json(text)
    assert packet.kid == "kbs:///default/key/test-tag"
    iv = base64.b64decode(packet.iv)
    wrapped = base64.b64decode(packet.wrapped_data)
    assert AESGCM(key).decrypt(iv, wrapped, None) == OPTSDATA


def test_enc_optsdata_requires_params():
    with pytest.raises(ValueError):
        enc_optsdata_gen_anno(OPTSDATA, [])