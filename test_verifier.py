"""
验证码校验测试

conftest 里的 verifier 已经用 RFC 4226 的密钥给 "door" 入网（SHA1 / 6位 / 30秒），
所以第N个时间步的验证码就是 RFC_HOTP[N]
"""

import pytest

from conftest import RFC_HOTP
from provisioning import ProvisioningDescriptor
from verifier import Decision

# 第5个时间步中间
NOW = 5 * 30 + 10


def test_current_code_is_accepted(verifier):
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.ACCEPTED


def test_immediate_replay_is_rejected(verifier):
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.ACCEPTED
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.REJECTED_REPLAY
    assert verifier.verify("door", RFC_HOTP[5], NOW + 0.001) is Decision.REJECTED_REPLAY


@pytest.mark.parametrize("step", [4, 6])
def test_one_step_skew_is_accepted_once(verifier, step):
    assert verifier.verify("door", RFC_HOTP[step], NOW) is Decision.ACCEPTED
    assert verifier.verify("door", RFC_HOTP[step], NOW) is Decision.REJECTED_REPLAY


@pytest.mark.parametrize("step", [3, 7])
def test_two_step_skew_is_invalid(verifier, step):
    assert verifier.verify("door", RFC_HOTP[step], NOW) is Decision.REJECTED_INVALID_CODE


def test_nothing_at_or_below_mark_is_accepted_again(verifier):
    assert verifier.verify("door", RFC_HOTP[6], NOW) is Decision.ACCEPTED
    # 水位已经到6，当前步和上一步的码都不能再用
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.REJECTED_REPLAY
    assert verifier.verify("door", RFC_HOTP[4], NOW) is Decision.REJECTED_REPLAY
    # 时间往前走到第7步，新的码可以用
    assert verifier.verify("door", RFC_HOTP[7], 7 * 30) is Decision.ACCEPTED


def test_wrong_code(verifier):
    assert verifier.verify("door", "000000", NOW) is Decision.REJECTED_INVALID_CODE


@pytest.mark.parametrize("code", ["", "abcdef", "25467", "2546760", None])
def test_malformed_codes_are_invalid_not_errors(verifier, code):
    assert verifier.verify("door", code, NOW) is Decision.REJECTED_INVALID_CODE


def test_surrounding_whitespace_is_ignored(verifier):
    assert verifier.verify("door", f" {RFC_HOTP[5]}\n", NOW) is Decision.ACCEPTED


@pytest.mark.parametrize("code", [RFC_HOTP[5], "000000", ""])
def test_unknown_account(verifier, code):
    assert verifier.verify("nobody", code, NOW) is Decision.REJECTED_UNKNOWN_ACCOUNT


def test_invalid_code_does_not_move_mark(verifier, store):
    verifier.verify("door", "000000", NOW)
    assert verifier.verify("door", RFC_HOTP[4], NOW) is Decision.ACCEPTED


def test_first_time_step_has_no_previous_step(verifier):
    # 计数器0的时候 -1 被跳过
    assert verifier.verify("door", RFC_HOTP[1], 0) is Decision.ACCEPTED


def test_reprovision_with_new_secret_rejects_old_codes(verifier, store):
    store.provision("door", ProvisioningDescriptor(secret="JBSWY3DPEHPK3PXP"))
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.REJECTED_INVALID_CODE


def test_revoked_account_is_unknown(verifier, store):
    store.revoke("door")
    assert verifier.verify("door", RFC_HOTP[5], NOW) is Decision.REJECTED_UNKNOWN_ACCOUNT


def test_decision_accepted_flag():
    assert Decision.ACCEPTED.accepted
    assert not Decision.REJECTED_REPLAY.accepted
    assert not Decision.REJECTED_INVALID_CODE.accepted
    assert not Decision.REJECTED_UNKNOWN_ACCOUNT.accepted
