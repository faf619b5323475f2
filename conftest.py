"""
测试公用的fixture
"""

import pytest

from account_store import SecretStore
from provisioning import ProvisioningDescriptor
from replay_guard import ReplayGuard
from utotp import encode_secret
from verifier import Verifier

# RFC 4226 附录D 的测试密钥
RFC_SECRET = b"12345678901234567890"
RFC_SECRET_B32 = encode_secret(RFC_SECRET)

# RFC 4226 附录D：计数器0~9对应的6位HOTP
RFC_HOTP = ["755224", "287082", "359152", "969429", "338314",
            "254676", "287922", "162583", "399871", "520489"]


class FakeClock:
    """可以手动拨动的时钟"""

    def __init__(self, now: float = 0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingActuator:
    """记录开门调用，不真正开门"""

    def __init__(self, error: Exception = None):
        self.opened = []
        self.error = error

    def open(self, account: str) -> None:
        if self.error is not None:
            raise self.error
        self.opened.append(account)


@pytest.fixture
def accounts_file(tmp_path):
    return tmp_path / "storage" / "accounts.json"


@pytest.fixture
def store(accounts_file):
    return SecretStore(accounts_file)


@pytest.fixture
def rfc_descriptor():
    return ProvisioningDescriptor(secret=RFC_SECRET_B32, label="alice", issuer="ACME")


@pytest.fixture
def verifier(store, rfc_descriptor):
    store.provision("door", rfc_descriptor)
    return Verifier(store, ReplayGuard(store))
