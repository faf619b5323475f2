"""
otpauth URI 解析测试
"""

import pytest

from conftest import RFC_SECRET_B32
from provisioning import (
    ProvisioningDescriptor,
    build_provisioning_uri,
    parse_provisioning_uri,
)
from utotp import (
    Algorithm,
    MalformedDescriptor,
    TotpParameters,
    decode_secret,
    normalize_parameters,
)


def test_parse_full_uri():
    descriptor = parse_provisioning_uri(
        "otpauth://totp/FooCorp:alice@example.com?secret=JBSWY3DPEHPK3PXP"
        "&issuer=FooCorp&algorithm=SHA256&digits=8&period=60"
    )
    assert descriptor == ProvisioningDescriptor(
        secret="JBSWY3DPEHPK3PXP",
        label="alice@example.com",
        issuer="FooCorp",
        algorithm="SHA256",
        digits=8,
        period=60,
    )


def test_parse_minimal_uri_leaves_defaults_to_normalization():
    descriptor = parse_provisioning_uri("otpauth://totp/door?secret=JBSWY3DPEHPK3PXP")
    assert descriptor.label == "door"
    assert descriptor.issuer is None
    assert descriptor.algorithm is None
    assert descriptor.digits is None
    assert descriptor.period is None
    assert normalize_parameters(descriptor) == TotpParameters()


def test_parse_uri_with_quoted_label_and_uppercase_keys():
    descriptor = parse_provisioning_uri(
        "otpauth://totp/ACME%20Co:john.doe%40email.com?SECRET=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ&ALGORITHM=SHA-1"
    )
    assert descriptor.issuer == "ACME Co"
    assert descriptor.label == "john.doe@email.com"
    assert descriptor.algorithm == "SHA-1"
    assert decode_secret(descriptor.secret) == b"=\xc6\xca\xa4\x82Jm(\x87g\xb23\x1e \xb41f\xcb\x85\xd9"


def test_query_issuer_wins_over_path_issuer():
    descriptor = parse_provisioning_uri("otpauth://totp/Old:bob?secret=JBSWY3DPEHPK3PXP&issuer=New")
    assert descriptor.issuer == "New"
    assert descriptor.label == "bob"


@pytest.mark.parametrize("uri", [
    "",
    "https://totp/door?secret=JBSWY3DPEHPK3PXP",
    "otpauth://hotp/door?secret=JBSWY3DPEHPK3PXP&counter=1",
    "otpauth://totp/door?issuer=ACME",
    "otpauth://totp/door?secret=",
    "otpauth://totp/door?secret=JBSWY3DPEHPK3PXP&digits=six",
    "otpauth://totp/door?secret=JBSWY3DPEHPK3PXP&period=30s",
])
def test_malformed_uris(uri):
    with pytest.raises(MalformedDescriptor):
        parse_provisioning_uri(uri)


def test_build_uri_can_be_parsed_back():
    params = TotpParameters(Algorithm.SHA512, 8, 60)
    uri = build_provisioning_uri(RFC_SECRET_B32, params, label="alice", issuer="SmartLock")
    assert uri.startswith("otpauth://totp/")

    descriptor = parse_provisioning_uri(uri)
    assert descriptor.secret == RFC_SECRET_B32
    assert descriptor.label == "alice"
    assert descriptor.issuer == "SmartLock"
    assert normalize_parameters(descriptor) == params


def test_build_uri_rejects_bad_secret():
    with pytest.raises(MalformedDescriptor):
        build_provisioning_uri("!!!", TotpParameters(), label="alice")
